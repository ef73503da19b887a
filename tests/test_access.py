"""Tests for the `access` command group."""

from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
from rich.console import Console

from jumpseller_cli import access
from jumpseller_cli.auth import CredentialStore
from jumpseller_cli.config import Config

CREDS = "a" * 32 + ":" + "b" * 32


@pytest.fixture
def console(mocker: MagicMock) -> Console:
    """Swaps the module console for a wide recording one."""
    recording = Console(width=200, record=True)
    mocker.patch("jumpseller_cli.access.console", recording)
    return recording


@pytest.fixture
def auth(tmp_path: Path) -> CredentialStore:
    home = tmp_path / "home"
    cwd = home / "theme"
    cwd.mkdir(parents=True)
    return CredentialStore(
        config_dir=home / ".config" / "jumpseller", cwd=cwd, home=home
    )


def whoami(mocker: MagicMock, response: httpx.Response) -> MagicMock:
    """Patches the API client used for credential checks."""
    client_cls = mocker.patch("jumpseller_cli.access.ApiClient")
    api = client_cls.return_value.__enter__.return_value
    api.get.return_value = response
    return api


def test_check_store_success(mocker: MagicMock) -> None:
    """Verifies a matching whoami answer."""
    api = whoami(
        mocker,
        httpx.Response(200, json={"store": "simple", "account": "dev@example.com"}),
    )

    result = access.check_store("simple.jumpseller.com", CREDS)

    assert result == {"status": "✔", "account": "dev@example.com"}
    api.get.assert_called_once_with("/v1/whoami")


def test_check_store_wrong_store(mocker: MagicMock) -> None:
    """Verifies that credentials of another store are flagged."""
    whoami(mocker, httpx.Response(200, json={"store": "other", "account": "me"}))

    result = access.check_store("simple.jumpseller.com", CREDS)

    assert result["status"] == "✖"
    assert result["actual"] == "other"


def test_check_store_rejected(mocker: MagicMock) -> None:
    """Verifies that an authentication failure is reported with its message."""
    whoami(mocker, httpx.Response(401, json={"message": "Unauthorized access"}))

    result = access.check_store("simple.jumpseller.com", CREDS)

    assert result == {"status": "✖", "error": "Unauthorized access"}


def test_prompt_for_store_retries(mocker: MagicMock, console: Console) -> None:
    """Verifies that invalid store names are rejected until a valid one is typed."""
    mocker.patch(
        "jumpseller_cli.access.Prompt.ask", side_effect=["bad store", "simple"]
    )

    assert access.prompt_for_store() == "simple.jumpseller.com"
    assert "Invalid store format" in console.export_text()


def test_prompt_for_credentials_validates_format(
    mocker: MagicMock, console: Console
) -> None:
    """Verifies that malformed credentials are asked for again."""
    mocker.patch(
        "jumpseller_cli.access.Prompt.ask",
        side_effect=["short", "pair", "A" * 32, "B" * 32],
    )
    verify = mocker.patch("jumpseller_cli.access.verify_credentials", return_value=True)

    credentials = access.prompt_for_credentials("simple.jumpseller.com", Config())

    assert credentials == "a" * 32 + ":" + "b" * 32
    verify.assert_called_once_with("simple.jumpseller.com", credentials, 30.0)
    assert "Invalid credentials format." in console.export_text()


def test_add_then_update(
    mocker: MagicMock, auth: CredentialStore, console: Console
) -> None:
    """Verifies that credentials are persisted and updates are reported."""
    mocker.patch("jumpseller_cli.access.prompt_for_credentials", return_value=CREDS)

    access.add(auth, Config(), "simple.jumpseller.com")
    access.add(auth, Config(), "simple.jumpseller.com")

    output = console.export_text()
    assert "Added credentials for simple.jumpseller.com" in output
    assert "Updated credentials for simple.jumpseller.com" in output
    assert (auth.credentials_file).read_text() == f"simple.jumpseller.com {CREDS}\n"


def test_remove(auth: CredentialStore, console: Console) -> None:
    """Verifies removal and the message for unknown stores."""
    auth.add_credentials("simple.jumpseller.com", CREDS)
    auth.flush()

    access.remove(auth, "simple.jumpseller.com")
    access.remove(auth, "simple.jumpseller.com")

    output = console.export_text()
    assert "Removed credentials for simple.jumpseller.com" in output
    assert "No credentials found for simple.jumpseller.com" in output
    assert auth.list_credentials() == {}


def test_list_stores_tags_defaults(
    mocker: MagicMock, auth: CredentialStore, console: Console
) -> None:
    """Verifies the store table with default tags and verification results."""
    auth.add_credentials("simple.jumpseller.com", CREDS)
    auth.add_credentials("other.jumpseller.com", CREDS)
    auth.flush()
    auth.set_global_default("other.jumpseller.com")
    auth.set_local_default("simple.jumpseller.com")

    mocker.patch(
        "jumpseller_cli.access.check_store",
        side_effect=lambda store, creds, timeout: {
            "status": "✔",
            "account": f"dev@{store}",
        },
    )

    access.list_stores(auth, Config())

    output = console.export_text()
    assert "local default" in output
    assert "global default" in output
    assert "dev@simple.jumpseller.com" in output
    assert output.index("other.jumpseller.com") < output.index("simple.jumpseller.com")


def test_setup_first_run(
    mocker: MagicMock, auth: CredentialStore, console: Console
) -> None:
    """Verifies that first-time setup saves credentials and the global default."""
    mocker.patch(
        "jumpseller_cli.access.prompt_for_store", return_value="simple.jumpseller.com"
    )
    mocker.patch("jumpseller_cli.access.prompt_for_credentials", return_value=CREDS)

    access.setup(auth, Config())

    assert auth.get_credentials("simple.jumpseller.com") == CREDS
    assert auth.get_global_default() == "simple.jumpseller.com"
    assert "Set global default store" in console.export_text()


def test_setup_lists_when_configured(
    mocker: MagicMock, auth: CredentialStore
) -> None:
    """Verifies that setup falls back to listing once credentials exist."""
    auth.add_credentials("simple.jumpseller.com", CREDS)
    list_stores = mocker.patch("jumpseller_cli.access.list_stores")

    access.setup(auth, Config())

    list_stores.assert_called_once()


def test_set_local_prompts_for_missing_credentials(
    mocker: MagicMock, auth: CredentialStore, console: Console
) -> None:
    """Verifies that defaults for unknown stores first collect credentials."""
    add = mocker.patch("jumpseller_cli.access.add")

    access.set_local(auth, Config(), "simple.jumpseller.com")

    add.assert_called_once()
    assert auth.get_local_default() == "simple.jumpseller.com"
    assert "Set local default store" in console.export_text()


def test_current(auth: CredentialStore, console: Console) -> None:
    """Verifies that the resolved store is printed."""
    auth.set_command_store("simple.jumpseller.com")
    access.current(auth)
    assert console.export_text().strip() == "simple.jumpseller.com"
