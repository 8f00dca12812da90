# cloudtunes/cli/scan.py
import asyncio
import logging
from datetime import datetime

import click

from cloudtunes.core.config import get_settings
from cloudtunes.core.exceptions import AuthRequiredError
from cloudtunes.services.dropbox.auth import CredentialStore, load_credentials
from cloudtunes.services.dropbox.service import DropboxService
from cloudtunes.services.tag_reader import MutagenTagReader

logger = logging.getLogger(__name__)


@click.command()
@click.option('--path', default=None, help='Scan this folder instead of the whole account')
def scan(path):
    """Find playable audio files in the linked Dropbox account"""
    start_time = datetime.now()

    try:
        found, error_counts = asyncio.run(run_scan(path))
    except AuthRequiredError:
        raise click.ClickException("Dropbox is not linked. Run 'cloudtunes login' first.")

    duration = (datetime.now() - start_time).total_seconds()
    click.echo(f"\nFound {found} tracks in {duration:.1f}s")
    for name, count in sorted(error_counts.items()):
        click.echo(f"  {name}: {count}")


async def run_scan(path=None):
    settings = get_settings()
    store = CredentialStore.from_settings(settings)
    found = []

    def print_track(content):
        found.append(content)
        click.echo(f"{content.song_url}  {content.mime_type}  {content.size_bytes} bytes")

    service = DropboxService(
        credentials=load_credentials(settings, store),
        tag_reader=MutagenTagReader(
            max_bytes=settings.TAG_READER_MAX_BYTES,
            timeout=settings.DROPBOX_REQUEST_TIMEOUT,
        ),
        settings=settings,
        credential_store=store,
        on_resolved=print_track,
    )

    if path is None:
        service.connect()
    elif not service.has_credentials():
        raise AuthRequiredError("Dropbox account is not linked")
    else:
        service.list_directory(path)

    await service.wait_for_pending()
    logger.info(f"Scan finished with {sum(service.error_counts.values())} abandoned requests")
    return len(found), service.error_counts
