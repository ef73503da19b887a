"""The `access` command group: saved credentials and default stores."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

from rich.console import Console
from rich.prompt import Prompt

from .api import ApiClient, error_message
from .auth import CredentialStore
from .config import Config
from .constants import APP_NAME
from .exceptions import RemoteError
from .output import assemble_table
from .stores import parse_store_reference, storefront_url, valid_credentials

logger = logging.getLogger(APP_NAME)
console = Console()

STORE_NAME_ERROR_HELP = (
    "Invalid store format. Please use the store code or domain "
    "(such as simple, simple.jumpseller.com, ...)"
)

ADMIN_AUTH_HELP = """\
Each store & account pair has its own set of credentials.
For a given store, you can find the credentials for your account in the admin panel
in the Account Information page located at Account > Preferences > {your account}."""

PROMPT_CREDENTIALS_HELP = """\
Each store & account pair has its own set of credentials.
Find the credentials for your account at
    {url}/admin/accounts"""


def check_store(store: str, credentials: str, timeout: float = 30.0) -> dict:
    """Asks the API which store and account a pair of credentials belongs to.

    Args:
        store (str): The store the credentials are saved for.
        credentials (str): The `login:token` pair.
        timeout (float): Request timeout in seconds.

    Returns:
        dict: A row with `status` ('✔' or '✖') and, when known, `account`,
              `actual` (the store the credentials really belong to) and `error`.
    """
    try:
        with ApiClient(store, credentials, timeout=timeout) as api:
            response = api.get("/v1/whoami")
            if response.status_code != 200:
                return {"status": "✖", "error": error_message(response)}
            token = response.json()
    except RemoteError as e:
        return {"status": "✖", "error": str(e)}
    except ValueError as e:
        return {"status": "✖", "error": f"Invalid response: {e}"}

    actual_store = parse_store_reference(str(token.get("store", "")))[1]
    if actual_store == store:
        return {"status": "✔", "account": token.get("account")}
    return {
        "status": "✖",
        "actual": token.get("store"),
        "account": token.get("account"),
    }


def verify_credentials(store: str, credentials: str, timeout: float = 30.0) -> bool:
    """Checks interactively that credentials authenticate against the given store."""
    console.print(f"… Verifying credentials are for {store}", style="dim")
    result = check_store(store, credentials, timeout)

    if result["status"] == "✔":
        console.print(f"[green]✔[/green] (account {result.get('account')})")
        return True
    if result.get("actual"):
        console.print(f"[red]✖ credentials are for store {result['actual']}[/red]")
    else:
        console.print(
            f"[red]✖ Error verifying credentials: {result.get('error')}[/red]"
        )
    return False


def prompt_for_store() -> str:
    """Prompts until the user types a valid store reference."""
    while True:
        name = Prompt.ask("Store code or domain", console=console).strip()
        ok, store = parse_store_reference(name)
        if ok:
            return store
        console.print(STORE_NAME_ERROR_HELP, style="red")


def prompt_for_credentials(store: str, config: Config, show_help: bool = False) -> str:
    """Prompts for a login key and token until they verify against the store."""
    if show_help:
        console.print(PROMPT_CREDENTIALS_HELP.format(url=storefront_url(store)))

    while True:
        login = Prompt.ask("Login key", console=console).strip().lower()
        token = Prompt.ask("Auth Token", console=console).strip().lower()
        credentials = f"{login}:{token}"

        if not valid_credentials(credentials):
            console.print("Invalid credentials format.", style="red")
            continue
        if verify_credentials(store, credentials, config.api.timeout):
            return credentials


def add(auth: CredentialStore, config: Config, store: str | None = None) -> None:
    """Adds or updates the credentials of a store after verifying them."""
    if not store:
        store = prompt_for_store()
    exists = auth.get_credentials(store)
    credentials = prompt_for_credentials(store, config, show_help=True)
    auth.add_credentials(store, credentials)
    auth.flush()
    console.print(f"{'Updated' if exists else 'Added'} credentials for {store}")


def remove(auth: CredentialStore, store: str) -> None:
    if not auth.get_credentials(store):
        console.print(f"No credentials found for {store}")
        return
    auth.remove_credentials(store)
    auth.flush()
    console.print(f"Removed credentials for {store}")


def list_stores(auth: CredentialStore, config: Config) -> None:
    """Lists every saved store with its default tags and verification status.

    Stores are verified concurrently, at most `api.verify_workers` at a time.
    """
    credentials = auth.list_credentials()
    stores = sorted(credentials)
    tags: dict[str, str] = {}
    if scope_store := auth.get_local_default():
        tags[scope_store] = "local default"
    if default_store := auth.get_global_default():
        tags.setdefault(default_store, "global default")

    resolution: dict[str, dict] = {}
    total = len(stores)
    with console.status(f"Checking {total} stores... (0/{total})") as status:
        with ThreadPoolExecutor(max_workers=config.api.verify_workers) as executor:
            futures = {
                executor.submit(
                    check_store, store, credentials[store], config.api.timeout
                ): store
                for store in stores
            }
            for future in as_completed(futures):
                resolution[futures[future]] = future.result()
                status.update(f"Checking {total} stores... ({len(resolution)}/{total})")

    header = {
        "status": "",
        "store": "store",
        "tag": "",
        "actual": "actual store",
        "account": "account",
        "error": "error",
    }
    rows = [{"store": s, "tag": tags.get(s, ""), **resolution[s]} for s in stores]
    console.print(assemble_table(header, rows))


def setup(auth: CredentialStore, config: Config) -> None:
    """Runs first-time setup when no credentials exist, otherwise lists stores."""
    if auth.list_credentials():
        list_stores(auth, config)
        return

    console.print("No store credentials found, setting up default store.")
    console.print(ADMIN_AUTH_HELP, style="dim")
    store = prompt_for_store()
    add(auth, config, store)
    auth.set_global_default(store)
    console.print(f"Set global default store to {store}")


def current(auth: CredentialStore) -> None:
    if store := auth.current_store():
        console.print(store)


def set_default(auth: CredentialStore, config: Config, store: str) -> None:
    if not auth.get_credentials(store):
        console.print(f"No credentials found for {store}")
        add(auth, config, store)
    auth.set_global_default(store)
    console.print(f"Set global default store to {store}")


def set_local(auth: CredentialStore, config: Config, store: str) -> None:
    if not auth.get_credentials(store):
        console.print(f"No credentials found for {store}")
        add(auth, config, store)
    auth.set_local_default(store)
    console.print(f"Set local default store at {auth.scope_folder} to {store}")
