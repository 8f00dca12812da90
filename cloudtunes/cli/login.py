# cloudtunes/cli/login.py
import click

from cloudtunes.core.config import get_settings
from cloudtunes.schemas.dropbox import DropboxCredentials
from cloudtunes.services.dropbox.auth import CredentialStore


@click.command()
@click.option('--token', required=True, help='OAuth access token')
@click.option('--secret', required=True, help='OAuth access token secret')
@click.option('--name', default='', help='Account display name')
def login(token, secret, name):
    """Store an access token pair obtained from the Dropbox authorization flow"""
    store = CredentialStore.from_settings(get_settings())
    store.save(DropboxCredentials(access_token=token, access_token_secret=secret, account_name=name))
    click.echo(f"Saved credentials to {store.path}")


@click.command()
def logout():
    """Forget the stored Dropbox credentials"""
    store = CredentialStore.from_settings(get_settings())
    store.clear()
    click.echo("Dropbox credentials removed")
