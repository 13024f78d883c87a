import logging
from typing import List, Optional

from ems.core.cache import Entity, user_scope
from ems.core.exceptions import NotFoundError
from ems.core.schemas import Notice
from ems.models.notification import Notification, NotificationType
from ems.schemas.notification import NotificationResponse
from ems.services.base import CrudService, MutationResult

logger = logging.getLogger(__name__)


def queue_notification(
    db,
    user_id: int,
    title: str,
    message: str,
    type: str = NotificationType.INFO.value,
    link: Optional[str] = None
) -> Notification:
    """
    Add a notification to the caller's unit of work without committing.
    The caller commits and invalidates ``Entity.NOTIFICATIONS``.
    """
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        link=link
    )
    db.add(notification)
    return notification


class NotificationService(CrudService):
    model = Notification
    entity = Entity.NOTIFICATIONS
    label = "notification"
    response_schema = NotificationResponse

    def list_mine(self, user_id: int, unread_only: bool = False) -> List[NotificationResponse]:
        criteria = [Notification.user_id == user_id]
        if unread_only:
            criteria.append(Notification.is_read == False)  # noqa: E712
        return self.fetch(
            user_scope(user_id, unread=True if unread_only else None),
            *criteria,
            order_by=[Notification.created_at.desc(), Notification.id.desc()],
        )

    def unread_count(self, user_id: int) -> int:
        return len(self.list_mine(user_id, unread_only=True))

    def notify_user(self, user_id: int, title: str, message: str,
                    type: str = NotificationType.INFO.value, link: Optional[str] = None) -> NotificationResponse:
        notification = queue_notification(self.db, user_id, title, message, type, link)
        self.commit_or_fail(self.entity, "Failed to create notification")
        self.db.refresh(notification)
        return self.to_response(notification)

    def mark_read(self, user_id: int, notification_id: int) -> MutationResult:
        row = self._own(user_id, notification_id)
        row.is_read = True
        self.commit_or_fail(self.entity, "Failed to mark notification as read")
        self.db.refresh(row)
        return MutationResult(self.to_response(row), Notice(title="Marked as read", description="Notification marked as read."))

    def mark_all_read(self, user_id: int) -> MutationResult:
        count = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self.commit_or_fail(self.entity, "Failed to mark notifications as read")
        return MutationResult(count, Notice(title="All caught up", description="All notifications marked as read."))

    def delete_own(self, user_id: int, notification_id: int) -> MutationResult:
        row = self._own(user_id, notification_id)
        self.db.delete(row)
        self.commit_or_fail(self.entity, "Failed to delete notification")
        return MutationResult(notification_id, Notice(title="Deleted", description="Notification deleted."))

    def clear_all(self, user_id: int) -> MutationResult:
        count = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.commit_or_fail(self.entity, "Failed to clear notifications")
        return MutationResult(count, Notice(title="Cleared", description="All notifications cleared."))

    def _own(self, user_id: int, notification_id: int) -> Notification:
        row = self.get_or_404(notification_id)
        if row.user_id != user_id:
            # Another user's row is reported as missing
            raise NotFoundError("Notification")
        return row
