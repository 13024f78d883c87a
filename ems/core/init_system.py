import logging

from ems.core import security
from ems.core.config import settings
from ems.database import session_scope
from ems.models.user import User, UserRole

logger = logging.getLogger(__name__)


def init_system_data():
    """
    Creates the bootstrap admin login from ADMIN_EMAIL / ADMIN_PASSWORD when
    no user with that email exists yet. Does nothing when either is unset.
    Failures are logged and never block start-up.
    """
    if not settings.admin_email or not settings.admin_password:
        logger.info("System initialization check: no bootstrap admin configured.")
        return

    email = settings.admin_email.strip().lower()
    try:
        with session_scope() as db:
            if db.query(User).filter(User.email == email).first():
                logger.info(f"System initialization check: admin {email} already present.")
                return
            db.add(User(
                email=email,
                hashed_password=security.get_password_hash(settings.admin_password),
                full_name="Administrator",
                role=UserRole.ADMIN,
                is_active=True,
            ))
            db.commit()
            logger.info(f"✓ Created bootstrap admin: {email}")
    except Exception as e:
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
