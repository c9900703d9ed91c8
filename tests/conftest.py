import httpx
import pytest

from fitlegal_api.config import Settings
from fitlegal_api.db.repository import Repository
from fitlegal_api.drive.client import FileMetadata
from fitlegal_api.main import create_app


class FakeDriveClient:
    """Records metadata lookups and answers from a fixed table."""

    def __init__(self, files: dict[str, FileMetadata] | None = None, error: Exception | None = None):
        self.files = files or {}
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def get_file_metadata(self, file_id: str, access_token: str) -> FileMetadata | None:
        self.calls.append((file_id, access_token))
        if self.error:
            raise self.error
        return self.files.get(file_id)

    async def close(self) -> None:
        pass


@pytest.fixture
async def repo(tmp_path):
    repo = Repository(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await repo.init_db()
    yield repo
    await repo.close()


@pytest.fixture
def settings():
    return Settings(_env_file=None, database_url="sqlite+aiosqlite://")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
async def http(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
