import argparse
import getpass
import logging

from ems.core.exceptions import ValidationFailedError
from ems.database import init_db, session_scope
from ems.models.user import UserRole
from ems.services.identity import AuthEventBus, IdentityService

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def create_admin_user(email: str, password: str, full_name: str):
    init_db()
    try:
        with session_scope() as db:
            user = IdentityService(db, AuthEventBus()).create_user(email, password, full_name, UserRole.ADMIN)
            logger.info(f"Admin user created successfully: {user.email}")
    except ValidationFailedError as e:
        logger.warning(e.message)
    except Exception as e:
        logger.error(f"Error creating admin user: {e}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an admin login")
    parser.add_argument("email")
    parser.add_argument("--name", default="System Administrator")
    args = parser.parse_args()
    create_admin_user(args.email, getpass.getpass("Password: "), args.name)
