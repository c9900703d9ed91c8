"""Diagnostics CLI: report on the health of registered Drive watch channels.

For the most recent channels, flags the ones that are inactive, expired or
about to expire, whose owner has no stored Google access token, and shows
how many notifications each channel has delivered so far.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from fitlegal_api.config import Settings
from fitlegal_api.db.models import WatchChannel
from fitlegal_api.db.repository import Repository

logger = logging.getLogger(__name__)

EXPIRY_WARNING_WINDOW = timedelta(hours=24)


@dataclass
class ChannelReport:
    channel_id: str
    user_id: str
    folder_id: str
    notification_count: int
    problems: list[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return not self.problems


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def check_channel(
    channel: WatchChannel,
    has_credentials: bool,
    notification_count: int,
    now: datetime,
) -> ChannelReport:
    report = ChannelReport(
        channel_id=channel.channel_id,
        user_id=channel.user_id,
        folder_id=channel.folder_id,
        notification_count=notification_count,
    )
    if not channel.is_active:
        report.problems.append("channel is marked inactive")
    if channel.expiration is not None:
        expiration = _as_utc(channel.expiration)
        if expiration <= now:
            report.problems.append(f"channel expired at {expiration.isoformat()}")
        elif expiration - now < EXPIRY_WARNING_WINDOW:
            report.problems.append(f"channel expires soon ({expiration.isoformat()})")
    if not has_credentials:
        report.problems.append("owner has no Google access token")
    return report


async def diagnose(limit: int) -> list[ChannelReport]:
    settings = Settings()
    repo = Repository(settings.database_url)
    await repo.init_db()

    try:
        channels = await repo.list_watch_channels(limit)
        now = datetime.now(timezone.utc)
        reports = []
        for channel in channels:
            token = await repo.get_access_token(channel.user_id)
            count = await repo.count_notifications(channel.channel_id)
            reports.append(check_channel(channel, bool(token), count, now))
        return reports
    finally:
        await repo.close()


def main():
    parser = argparse.ArgumentParser(description="Check Drive watch channel health")
    parser.add_argument("--limit", type=int, default=5, help="channels to inspect")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    reports = asyncio.run(diagnose(args.limit))
    if not reports:
        logger.warning("No watch channels registered")
        sys.exit(1)

    for report in reports:
        if report.healthy:
            logger.info(
                "Channel %s (user %s, folder %s) OK, %d notifications",
                report.channel_id, report.user_id, report.folder_id,
                report.notification_count,
            )
        else:
            logger.warning(
                "Channel %s (user %s, folder %s): %s; %d notifications",
                report.channel_id, report.user_id, report.folder_id,
                "; ".join(report.problems), report.notification_count,
            )

    if not any(r.healthy for r in reports):
        sys.exit(1)


if __name__ == "__main__":
    main()
