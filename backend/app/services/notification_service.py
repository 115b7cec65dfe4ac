"""
Notification service using PostgreSQL LISTEN/NOTIFY for real-time updates.
Clients listening on a project's channel refresh their design lists from the
server instead of patching local state.
"""
import json
import logging
from typing import Any, Dict, Optional

import asyncpg

from app.config import settings

logger = logging.getLogger(__name__)


class DesignEvent:
    """Design event names"""
    UPLOADED = 'design_uploaded'
    STATUS_CHANGED = 'design_status_changed'
    FROZEN = 'design_frozen'
    UNFROZEN = 'design_unfrozen'
    DELETED = 'design_deleted'
    COMMENT_ADDED = 'design_comment_added'


class NotificationService:
    """
    PostgreSQL LISTEN/NOTIFY based notification service.

    Channels:
    - project_{id}: design workflow events for a project
    """

    def __init__(self):
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def is_ready(self) -> bool:
        return self._pool is not None

    async def initialize(self):
        """Initialize the connection pool."""
        if self._pool is not None:
            return

        try:
            # Parse DATABASE_URL for asyncpg
            db_url = settings.DATABASE_URL
            if db_url.startswith("postgresql://"):
                db_url = db_url.replace("postgresql://", "postgres://", 1)

            self._pool = await asyncpg.create_pool(
                db_url,
                min_size=1,
                max_size=5,
                command_timeout=60
            )
            logger.info("NotificationService: Connection pool created")
        except Exception as e:
            logger.error(f"NotificationService: Failed to create pool: {e}")
            raise

    async def close(self):
        """Close the connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("NotificationService: Connection pool closed")

    async def notify(self, channel: str, payload: Dict[str, Any]):
        """
        Send a notification to a channel.

        Never raises: a lost notification must not fail the mutation that
        triggered it.

        Args:
            channel: Channel name (e.g., "project_12")
            payload: JSON-serializable data to send
        """
        if not self._pool:
            logger.warning("NotificationService: Pool not initialized, skipping notify")
            return

        try:
            async with self._pool.acquire() as conn:
                await conn.execute(
                    "SELECT pg_notify($1, $2)",
                    channel,
                    json.dumps(payload, default=str)
                )
                logger.debug(f"NotificationService: Sent to {channel}: {payload.get('event', 'unknown')}")
        except Exception as e:
            logger.error(f"NotificationService: Failed to notify {channel}: {e}")

    # Convenience methods for design events

    async def notify_design_event(
        self,
        event: str,
        project_id: int,
        design_file_id: Optional[int] = None,
        category: Optional[str] = None,
        **details: Any
    ):
        """Publish a design workflow event on the project's channel."""
        await self.notify(f"project_{project_id}", {
            "event": event,
            "project_id": project_id,
            "design_file_id": design_file_id,
            "category": category,
            **details
        })

    async def notify_status_changed(self, design):
        """Notify that a review decision was taken on a design file."""
        await self.notify_design_event(
            DesignEvent.STATUS_CHANGED,
            design.project_id,
            design.id,
            design.category,
            status=design.approval_status,
            version_number=design.version_number,
            is_current_approved=design.is_current_approved,
            uploaded_by=design.uploaded_by
        )


# Global singleton instance
_notification_service = NotificationService()


def get_notification_service() -> NotificationService:
    """Get the global notification service instance."""
    return _notification_service


async def start_notification_service():
    """Open the pool when notifications are enabled and the database is PostgreSQL."""
    if not settings.ENABLE_NOTIFICATIONS or not settings.DATABASE_URL.startswith("postgres"):
        logger.info("NotificationService: disabled")
        return
    await _notification_service.initialize()


async def shutdown_notification_service():
    """Shutdown the global notification service."""
    await _notification_service.close()
