from datetime import datetime, timezone

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from .models import Base, DriveNotification, UserCredentials, WatchChannel


class Repository:
    def __init__(self, database_url: str) -> None:
        self._engine = create_async_engine(database_url, echo=False)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    async def init_db(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self._engine.dispose()

    # -- WatchChannel --

    async def get_active_watch_channel(self, channel_id: str) -> WatchChannel | None:
        """Return the active, unexpired channel registered under channel_id."""
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            stmt = select(WatchChannel).where(
                WatchChannel.channel_id == channel_id,
                WatchChannel.is_active.is_(True),
                or_(WatchChannel.expiration.is_(None), WatchChannel.expiration > now),
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def add_watch_channel(
        self,
        channel_id: str,
        user_id: str,
        folder_id: str,
        *,
        webhook_url: str | None = None,
        resource_id: str | None = None,
        expiration: datetime | None = None,
        is_active: bool = True,
    ) -> WatchChannel:
        async with self._session_factory() as session:
            channel = WatchChannel(
                channel_id=channel_id,
                user_id=user_id,
                folder_id=folder_id,
                webhook_url=webhook_url,
                resource_id=resource_id,
                expiration=expiration,
                is_active=is_active,
            )
            session.add(channel)
            await session.commit()
            return channel

    async def list_watch_channels(self, limit: int = 5) -> list[WatchChannel]:
        """Most recently created channels first, active or not."""
        async with self._session_factory() as session:
            stmt = (
                select(WatchChannel)
                .order_by(WatchChannel.created_at.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    # -- UserCredentials --

    async def get_access_token(self, user_id: str) -> str | None:
        async with self._session_factory() as session:
            creds = await session.get(UserCredentials, user_id)
            return creds.google_access_token if creds else None

    async def upsert_credentials(
        self,
        user_id: str,
        access_token: str | None,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
    ) -> None:
        async with self._session_factory() as session:
            existing = await session.get(UserCredentials, user_id)
            if existing:
                existing.google_access_token = access_token
                existing.google_refresh_token = refresh_token
                existing.token_expires_at = expires_at
            else:
                session.add(
                    UserCredentials(
                        user_id=user_id,
                        google_access_token=access_token,
                        google_refresh_token=refresh_token,
                        token_expires_at=expires_at,
                    )
                )
            await session.commit()

    # -- DriveNotification --

    async def insert_notification(
        self,
        channel_id: str,
        *,
        watch_channel_id: str | None,
        user_id: str | None,
        resource_state: str | None,
        resource_uri: str | None,
        changed_files: str | None,
        notification_data: dict,
    ) -> str:
        """Insert one notification row and return its generated id."""
        async with self._session_factory() as session:
            notification = DriveNotification(
                channel_id=channel_id,
                watch_channel_id=watch_channel_id,
                user_id=user_id,
                resource_state=resource_state,
                resource_uri=resource_uri,
                changed_files=changed_files,
                notification_data=notification_data,
                processed_at=datetime.now(timezone.utc),
            )
            session.add(notification)
            await session.commit()
            return notification.id

    async def get_notification(self, notification_id: str) -> DriveNotification | None:
        async with self._session_factory() as session:
            return await session.get(DriveNotification, notification_id)

    async def count_notifications(self, channel_id: str) -> int:
        async with self._session_factory() as session:
            stmt = select(func.count()).select_from(DriveNotification).where(
                DriveNotification.channel_id == channel_id
            )
            result = await session.execute(stmt)
            return result.scalar_one()

    async def get_pending_notifications(
        self, user_id: str, limit: int = 50
    ) -> list[DriveNotification]:
        async with self._session_factory() as session:
            stmt = (
                select(DriveNotification)
                .where(
                    DriveNotification.user_id == user_id,
                    DriveNotification.processed.is_(False),
                )
                .order_by(DriveNotification.created_at.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def mark_notifications_processed(self, notification_ids: list[str]) -> int:
        """Flag notifications as processed. Returns the number of rows updated."""
        async with self._session_factory() as session:
            result = await session.execute(
                update(DriveNotification)
                .where(DriveNotification.id.in_(notification_ids))
                .values(processed=True, processed_at=datetime.now(timezone.utc))
            )
            await session.commit()
            return result.rowcount
