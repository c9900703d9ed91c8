import logging
from dataclasses import asdict, dataclass, field

import httpx

logger = logging.getLogger(__name__)

DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FILE_FIELDS = "id,name,mimeType,size,createdTime,modifiedTime,parents,owners,webViewLink"


@dataclass
class FileMetadata:
    id: str
    name: str | None = None
    mime_type: str | None = None
    size: str | None = None
    created_time: str | None = None
    modified_time: str | None = None
    parents: list[str] = field(default_factory=list)
    owners: list[dict] = field(default_factory=list)
    web_view_link: str | None = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @classmethod
    def from_api(cls, data: dict) -> "FileMetadata":
        return cls(
            id=data["id"],
            name=data.get("name"),
            mime_type=data.get("mimeType"),
            size=data.get("size"),
            created_time=data.get("createdTime"),
            modified_time=data.get("modifiedTime"),
            parents=data.get("parents", []),
            owners=data.get("owners", []),
            web_view_link=data.get("webViewLink"),
        )

    def to_json(self) -> dict:
        """Serialize using the Drive API's camelCase field names."""
        raw = asdict(self)
        return {
            "id": raw["id"],
            "name": raw["name"],
            "mimeType": raw["mime_type"],
            "size": raw["size"],
            "createdTime": raw["created_time"],
            "modifiedTime": raw["modified_time"],
            "parents": raw["parents"],
            "owners": raw["owners"],
            "webViewLink": raw["web_view_link"],
            "isFolder": self.is_folder,
        }


class DriveClient:
    """Read-only Drive v3 client authenticated per call with a user token."""

    def __init__(
        self,
        base_url: str = DRIVE_API_BASE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Content-Type": "application/json"},
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def get_file_metadata(
        self, file_id: str, access_token: str
    ) -> FileMetadata | None:
        """Fetch metadata for a file or folder.

        Best effort: any failure is logged and None is returned.
        """
        try:
            resp = await self._client.get(
                f"/files/{file_id}",
                params={"fields": FILE_FIELDS},
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Drive request for file %s failed: %s", file_id, exc)
            return None

        if resp.status_code != 200:
            logger.warning(
                "Drive returned %d for file %s: %s",
                resp.status_code, file_id, resp.text[:200],
            )
            return None

        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning("Invalid JSON from Drive for file %s: %s", file_id, exc)
            return None

        if not isinstance(data, dict) or "id" not in data:
            logger.warning("Unexpected Drive response for file %s: %r", file_id, data)
            return None
        return FileMetadata.from_api(data)
