"""Post a relay-shaped Drive notification to a running instance."""

import argparse
import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone

import httpx

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:8000/api/webhook/drive-notifications"
DEFAULT_RESOURCE_URI = "https://www.googleapis.com/drive/v3/files/test-file-id?alt=json"


def build_payload(
    channel_id: str,
    resource_state: str = "update",
    changed: str | None = "children",
    resource_uri: str = DEFAULT_RESOURCE_URI,
    message_number: int = 1,
) -> dict:
    """Build the body the relay forwards for one Drive push notification."""
    expiration = datetime.now(timezone.utc) + timedelta(days=1)
    headers = {
        "x-goog-channel-id": channel_id,
        "x-goog-channel-expiration": expiration.strftime("%a, %d %b %Y %H:%M:%S GMT"),
        "x-goog-resource-state": resource_state,
        "x-goog-message-number": str(message_number),
        "x-goog-resource-id": "simulated-resource-id",
        "x-goog-resource-uri": resource_uri,
    }
    if changed:
        headers["x-goog-changed"] = changed
    return {"headers": headers, "body": {}}


async def send(url: str, payload: dict) -> httpx.Response:
    async with httpx.AsyncClient(timeout=30.0) as client:
        return await client.post(url, json=payload)


def main():
    parser = argparse.ArgumentParser(description="Send a simulated Drive notification")
    parser.add_argument("--url", default=DEFAULT_URL)
    parser.add_argument("--channel-id", required=True)
    parser.add_argument("--state", default="update")
    parser.add_argument("--changed", default="children")
    parser.add_argument("--resource-uri", default=DEFAULT_RESOURCE_URI)
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    payload = build_payload(args.channel_id, args.state, args.changed, args.resource_uri)
    logger.info("Posting notification for channel %s to %s", args.channel_id, args.url)
    resp = asyncio.run(send(args.url, payload))

    try:
        body = json.dumps(resp.json(), indent=2)
    except ValueError:
        body = resp.text
    logger.info("Status %d\n%s", resp.status_code, body)


if __name__ == "__main__":
    main()
