# cloudtunes/cli/resolve.py
import click

from cloudtunes.core.config import get_settings
from cloudtunes.services.dropbox.auth import CredentialStore, load_credentials
from cloudtunes.services.dropbox.service import DropboxService
from cloudtunes.services.dropbox.url_handler import DropboxUrlHandler, LoadResultType
from cloudtunes.services.tag_reader import MutagenTagReader


@click.command()
@click.argument('song_url')
def resolve(song_url):
    """Print a streaming URL for SONG_URL (dropbox:/path/to/file.mp3)"""
    settings = get_settings()
    credentials = load_credentials(settings, CredentialStore.from_settings(settings))
    if not credentials.is_authenticated:
        raise click.ClickException("Dropbox is not linked. Run 'cloudtunes login' first.")

    service = DropboxService(credentials=credentials, tag_reader=MutagenTagReader(), settings=settings)
    result = DropboxUrlHandler(service).start_loading(song_url)
    if result.type is LoadResultType.ERROR:
        raise click.ClickException(result.error)
    click.echo(result.media_url)
