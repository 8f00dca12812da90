from tests.mocks.mock_dropbox import (
    MEDIA_ENDPOINT,
    METADATA_ENDPOINT,
    MockDropboxClient,
    RecordingTagReader,
)
