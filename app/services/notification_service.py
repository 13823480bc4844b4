"""
Notification Service - stores notifications for users and admins

Emission is best-effort: each notification is written in its own session,
after the caller's state change has been committed, and any failure is
logged and swallowed. Callers never see a notification error.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from typing import Iterable, List, Optional, Tuple

from app.core.config import settings
from app.core.exceptions import NotificationNotFoundError
from app.core.logging_config import logger
from app.core.types import is_valid_uuid
from app.models.notification import Notification, COLLABORATION_KINDS
from app.models.user import User, Admin, Role
from app.schemas.notification import NotificationMessage


class NotificationService:
    """Emit and read notifications"""

    # ==================== EMISSION ====================

    async def emit(
        self,
        db: AsyncSession,
        recipient_id: str,
        notification: NotificationMessage,
    ) -> bool:
        """
        Store one notification for one recipient.

        Returns True when stored, False when the write failed (already logged).
        """
        kind = notification.kind.value
        try:
            await self._store(db, str(recipient_id), notification)
        except Exception as exc:
            logger.log_notification(
                kind, str(recipient_id), delivered=False,
                reason=f"{type(exc).__name__}: {exc}",
            )
            return False

        logger.log_notification(kind, str(recipient_id), delivered=True)
        return True

    async def fan_out(
        self,
        db: AsyncSession,
        recipient_ids: Iterable[str],
        notification: NotificationMessage,
    ) -> int:
        """One notification per distinct recipient; returns how many were stored"""
        delivered = 0
        seen = set()
        for recipient_id in recipient_ids:
            if recipient_id in seen:
                continue
            seen.add(recipient_id)
            if await self.emit(db, recipient_id, notification):
                delivered += 1
        return delivered

    async def notify_admins(self, db: AsyncSession, notification: NotificationMessage) -> int:
        admin_ids = await self.list_admin_ids(db)
        return await self.fan_out(db, admin_ids, notification)

    async def list_admin_ids(self, db: AsyncSession) -> List[str]:
        """Ids of every account that can moderate, from both account tables"""
        moderator_roles = [Role.ADMIN, Role.SUPERADMIN]
        admins = await db.execute(select(Admin.id).where(Admin.role.in_(moderator_roles)))
        users = await db.execute(select(User.id).where(User.role.in_(moderator_roles)))
        return [row[0] for row in admins.all()] + [row[0] for row in users.all()]

    async def _store(self, db: AsyncSession, recipient_id: str, notification: NotificationMessage) -> None:
        # Separate session so a failed insert cannot roll back or expire the caller's objects
        async with AsyncSession(db.bind, expire_on_commit=False) as session:
            session.add(Notification(
                user_id=recipient_id,
                type=notification.kind.value,
                title=notification.title,
                message=notification.message,
                data=notification.data or None,
            ))
            await session.commit()

    # ==================== READING ====================

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        limit: Optional[int] = None,
        exclude_collaboration: bool = False,
    ) -> Tuple[List[Notification], int]:
        """Newest notifications first, plus the recipient's unread count"""
        query = select(Notification).where(Notification.user_id == user_id)
        if exclude_collaboration:
            query = query.where(Notification.type.notin_([k.value for k in COLLABORATION_KINDS]))
        query = query.order_by(Notification.created_at.desc()).limit(limit or settings.NOTIFICATION_LIST_LIMIT)
        result = await db.execute(query)
        notifications = list(result.scalars().all())

        unread = await db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.read.is_(False),
            )
        )
        return notifications, unread or 0

    async def mark_read(self, db: AsyncSession, user_id: str, notification_id: str) -> Notification:
        if not is_valid_uuid(notification_id):
            raise NotificationNotFoundError(notification_id)

        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotificationNotFoundError(notification_id)

        if not notification.read:
            notification.read = True
            await db.commit()
        return notification

    async def mark_all_read(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        await db.commit()
        return result.rowcount or 0


# Singleton instance
notification_service = NotificationService()
