from __future__ import annotations

import time

import questionary
from rich.console import Console
from rich.table import Table

from blobkeep.errors import StorageError
from blobkeep.settings import settings
from blobkeep.storage.base import DEFAULT_CONTENT_TYPE
from blobkeep.storage.factory import get_storage
from blobkeep.storage.service import StorageService

console = Console()

LIST = "List objects"
UPLOAD_URL = "Issue upload URL"
DOWNLOAD_URL = "Issue download URL"
METADATA = "Show object metadata"
EXIT = "Exit"


def _build_service() -> StorageService:
    return get_storage(settings)


def list_objects_menu(storage: StorageService) -> None:
    prefix = questionary.text("Prefix (empty for all):").ask()
    if prefix is None:
        return

    keys = storage.list_by_prefix(prefix)
    if not keys:
        console.print("[yellow]No objects found.[/yellow]")
        return

    table = Table(title=f"Objects under '{prefix}'")
    table.add_column("#", style="dim")
    table.add_column("Path")
    for i, key in enumerate(keys, 1):
        table.add_row(str(i), key)
    console.print(table)


def _ask_expires_at() -> int | None:
    minutes = questionary.text("Valid for how many minutes? (empty for default)").ask()
    if not minutes:
        return None
    if not minutes.isdigit() or int(minutes) <= 0:
        console.print("[red]Invalid duration, using default.[/red]")
        return None
    return int(time.time()) + int(minutes) * 60


def signed_url_menu(storage: StorageService, upload: bool) -> None:
    key = questionary.text("Object path:").ask()
    if not key:
        console.print("[yellow]Operation cancelled.[/yellow]")
        return
    content_type = questionary.text("Content type:", default=DEFAULT_CONTENT_TYPE).ask() or DEFAULT_CONTENT_TYPE
    expires_at = _ask_expires_at()

    if upload:
        url = storage.get_upload_signed_url(key, content_type=content_type, expires_at=expires_at)
    else:
        url = storage.get_download_signed_url(key, content_type=content_type, expires_at=expires_at)
    console.print(f"[green]{url}[/green]", soft_wrap=True)


def metadata_menu(storage: StorageService) -> None:
    key = questionary.text("Object path:").ask()
    if not key:
        console.print("[yellow]Operation cancelled.[/yellow]")
        return

    metadata = storage.get_file_metadata(key)
    console.print(f"  Content hash: [bold]{metadata.content_hash}[/bold]")
    console.print(f"  Public URL:   {metadata.public_url or '[dim](none, use a signed URL)[/dim]'}")


def main_menu() -> None:
    storage = _build_service()

    console.print()
    console.print(f"[bold]Object storage[/bold] ({storage.backend_name})", style="cyan")
    console.print()

    while True:
        choice = questionary.select(
            "Main menu",
            choices=[LIST, UPLOAD_URL, DOWNLOAD_URL, METADATA, EXIT],
        ).ask()

        if choice is None or choice == EXIT:
            console.print("[bold]Bye![/bold]")
            break

        try:
            if choice == LIST:
                list_objects_menu(storage)
            elif choice == UPLOAD_URL:
                signed_url_menu(storage, upload=True)
            elif choice == DOWNLOAD_URL:
                signed_url_menu(storage, upload=False)
            elif choice == METADATA:
                metadata_menu(storage)
        except StorageError as e:
            console.print(f"[red]{e}[/red]")
