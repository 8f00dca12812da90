# tests/conftest.py
import pytest

from cloudtunes.core.config import Settings
from cloudtunes.schemas.dropbox import DropboxCredentials
from cloudtunes.services.dropbox.auth import CredentialStore
from cloudtunes.services.dropbox.service import DropboxService
from tests.mocks import MEDIA_ENDPOINT, METADATA_ENDPOINT, MockDropboxClient, RecordingTagReader


@pytest.fixture
def settings(tmp_path):
    """Provide test settings"""
    return Settings(
        DROPBOX_APP_KEY="app-key",
        DROPBOX_APP_SECRET="app-secret",
        DROPBOX_METADATA_ENDPOINT=METADATA_ENDPOINT,
        DROPBOX_MEDIA_ENDPOINT=MEDIA_ENDPOINT,
        DROPBOX_CREDENTIALS_FILE=str(tmp_path / "dropbox.json"),
        DROPBOX_RESOLVE_TIMEOUT=5.0,
    )

@pytest.fixture
def credentials():
    return DropboxCredentials(
        access_token="token",
        access_token_secret="token-secret",
        account_name="Test User",
    )

@pytest.fixture
def mock_client():
    return MockDropboxClient()

@pytest.fixture
def tag_reader():
    return RecordingTagReader()

@pytest.fixture
def credential_store(settings):
    return CredentialStore.from_settings(settings)

@pytest.fixture
def make_service(settings, credentials, mock_client, tag_reader):
    """Factory so tests can override credentials, settings or hooks"""
    def _make(**overrides):
        kwargs = dict(
            credentials=credentials,
            tag_reader=tag_reader,
            settings=settings,
            client=mock_client,
        )
        kwargs.update(overrides)
        return DropboxService(**kwargs)
    return _make
