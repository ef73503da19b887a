"""The `theme` command group: manage and mirror themes of the current store."""

import datetime
import logging
import shutil
from pathlib import Path
from typing import Any

import httpx
from rich.console import Console

from .api import ApiClient, error_message
from .archive import temporary_filename, unzip_folder, zip_folder
from .config import Config
from .constants import APP_NAME, UNSAFE_PATTERNS
from .exceptions import RemoteError, ValidationError
from .output import assemble_table, time_ago
from .watcher import StopReason, ThemeWatcher

logger = logging.getLogger(APP_NAME)
console = Console()

MAX_NAME_LENGTH = 65

THEMES_HEADER = [
    "id",
    "name",
    "status",
    "parent",
    "version",
    "last updated",
    "installed",
    "author",
    "lang",
]


def validate_theme_reference(value: str) -> int:
    """Argparse-compatible validator for theme ids (positive integers)."""
    if value.isdigit() and not value.startswith("0"):
        return int(value)
    raise ValidationError(f'Invalid theme id: "{value}"')


def themes_table(themes: list[dict]) -> Any:
    rows = []
    for theme in themes:
        updated_at = theme.get("updated_at")
        created_at = theme.get("created_at")
        rows.append(
            {
                "id": theme.get("id"),
                "name": theme.get("name"),
                "status": "active" if theme.get("in_use") else "",
                "parent": theme.get("parent"),
                "version": theme.get("version"),
                "last updated": time_ago(updated_at) if updated_at else "",
                "installed": (
                    datetime.datetime.fromtimestamp(created_at).strftime(
                        "%Y-%m-%d %H:%M"
                    )
                    if created_at
                    else ""
                ),
                "author": theme.get("author"),
                "lang": theme.get("language"),
            }
        )
    return assemble_table(THEMES_HEADER, rows)


def fetch_themes(api: ApiClient) -> list[dict]:
    return api.get_json("/v1/themes/list")


def find_theme(api: ApiClient, theme_id: int) -> dict | None:
    """Looks a theme up by id; prints the available themes when it is missing."""
    themes = fetch_themes(api)
    for theme in themes:
        if theme.get("id") == theme_id:
            return theme

    console.print(themes_table(themes))
    console.print(f"[red]Theme {theme_id} not found in {api.store}[/red]")
    return None


def _report_theme_response(
    api: ApiClient, response: httpx.Response, theme_id: int, success: str
) -> None:
    if response.is_success:
        console.print(f"Theme {theme_id} successfully {success}")
    elif response.status_code == 404:
        console.print(f"Theme {theme_id} not found in {api.store}")
    else:
        console.print(
            f"[red]Theme {theme_id}: Unexpected error "
            f"({response.status_code} {error_message(response)})[/red]"
        )


def list_themes(api: ApiClient) -> None:
    console.print(themes_table(fetch_themes(api)))


def apply(api: ApiClient, theme_id: int) -> None:
    response = api.put("/v1/themes/apply", {"theme": theme_id})
    _report_theme_response(api, response, theme_id, "applied")


def delete(api: ApiClient, theme_ids: list[int]) -> None:
    for theme_id in dict.fromkeys(theme_ids):
        response = api.delete("/v1/themes", {"theme": theme_id})
        _report_theme_response(api, response, theme_id, "deleted")


def rename(api: ApiClient, theme_id: int, words: list[str]) -> None:
    """Renames a theme.

    Raises:
        ValidationError: If the name is empty or longer than 65 characters.
    """
    name = " ".join(words).strip()
    if not name:
        raise ValidationError("New name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name is too long (max {MAX_NAME_LENGTH} characters)")

    response = api.put("/v1/themes/update_fields", {"theme": theme_id, "name": name})
    _report_theme_response(api, response, theme_id, "renamed")


def export_theme(api: ApiClient, theme_id: int, target: str | None = None) -> None:
    """Downloads a theme as a zip, kept as-is or extracted into a folder.

    Args:
        api (ApiClient): Client for the current store.
        theme_id (int): The theme to export.
        target (str | None): A `.zip` filename, or a folder to extract into.
                             Defaults to `theme-<id>.zip`.
    """
    if not find_theme(api, theme_id):
        return

    target = target or f"theme-{theme_id}.zip"
    zip_file = temporary_filename(".zip")

    with console.status(f"Exporting theme {theme_id}...", spinner="dots"):
        api.download("/v1/themes/export", zip_file, params={"theme": theme_id})

    try:
        if target.endswith(".zip"):
            shutil.move(str(zip_file), target)
            console.print(f"Theme folder downloaded to {target}")
        else:
            unzip_folder(zip_file, Path(target))
            console.print(f"Theme folder downloaded and extracted to {target}")
    finally:
        zip_file.unlink(missing_ok=True)


def import_theme(api: ApiClient, folder: Path) -> None:
    """Zips a local theme folder and imports it into the store.

    The archive is uploaded to a presigned storage form first; the API is then
    told to import it by filename.

    Raises:
        RemoteError: If any step of the upload or import fails.
    """
    if not folder.is_dir():
        raise ValidationError(f"Not a folder: {folder}")

    zip_file = zip_folder(folder)
    try:
        presigned = api.get_json("/v1/themes/presigned_for_import")
        filename = zip_file.name

        with console.status(f"Uploading {folder}...", spinner="dots"):
            try:
                with open(zip_file, "rb") as f:
                    upload = httpx.post(
                        presigned["url"],
                        data=presigned.get("fields", {}),
                        files={"file": (filename, f, "application/zip")},
                        timeout=api.timeout,
                    )
            except httpx.HTTPError as e:
                raise RemoteError(f"Upload error: {e}") from e
            if not upload.is_success:
                raise RemoteError(
                    f"Upload error: {upload.status_code} {upload.reason_phrase}",
                    upload.status_code,
                )

        response = api.post(
            "/v1/themes/presigned_import", {}, {"filename": filename, "source": None}
        )
        if not response.is_success:
            raise RemoteError(
                f"Error importing theme: {error_message(response)}",
                response.status_code,
            )
    finally:
        zip_file.unlink(missing_ok=True)

    console.print(f"Theme successfully imported from {folder}")


def watch(
    api: ApiClient,
    config: Config,
    theme_id: int,
    folder: str | None = None,
    allow: list[str] | None = None,
    block: list[str] | None = None,
    unsafe: bool = False,
) -> bool:
    """Mirrors local edits in a folder to an installed theme until interrupted.

    Args:
        api (ApiClient): Client for the current store.
        config (Config): Settings; `watch.allow`/`watch.block` extend the lists.
        theme_id (int): The installed theme receiving the edits.
        folder (str | None): The theme folder. Defaults to the working directory.
        allow (list[str] | None): Extra allowlist patterns.
        block (list[str] | None): Extra blocklist patterns, added to the unsafe
                                  patterns (components/*.json).
        unsafe (bool): Allow every known unsafe pattern.

    Returns:
        bool: False if the theme is missing or the session was aborted because
              of a git operation.
    """
    allow_patterns = [*config.watch.allow, *(allow or [])]
    block_patterns = [*UNSAFE_PATTERNS, *config.watch.block, *(block or [])]
    if unsafe:
        allow_patterns.extend(UNSAFE_PATTERNS)

    theme = find_theme(api, theme_id)
    if not theme:
        return False

    watcher = ThemeWatcher(
        api,
        theme["id"],
        allow=allow_patterns,
        block=block_patterns,
        workers=config.watch.workers,
    )
    reason = watcher.watch(folder or ".")

    if reason is StopReason.GIT_OPERATION:
        console.print(
            "[bold yellow]Stopped:[/bold yellow] a git operation changed the "
            "working tree. Restart the watch once it has finished."
        )
        return False
    console.print(f"[green]✔ Stopped watching theme {theme_id}.[/green]")
    return True
