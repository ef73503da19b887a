"""Exception hierarchy for the Jumpseller CLI."""

import argparse

SETUP_HINT = "Use `jumpseller access` to setup access credentials and a default store."


class JumpsellerError(Exception):
    """Base class for every error the CLI reports to the user."""


class ConfigurationError(JumpsellerError):
    """No usable store or credentials could be resolved for a command."""


class NoStoreError(ConfigurationError):
    """Raised when no store is selected through any precedence layer."""

    def __init__(self) -> None:
        super().__init__(
            "No store selected through command line, and no local or global "
            f"default configured.\n{SETUP_HINT}"
        )


class NoCredentialsError(ConfigurationError):
    """Raised when the resolved store has no saved credentials."""

    def __init__(self, store: str) -> None:
        self.store = store
        super().__init__(f"No credentials are set for store {store}.\n{SETUP_HINT}")


class ValidationError(JumpsellerError, argparse.ArgumentTypeError):
    """Malformed user input (store reference, credentials, theme id, ...)."""


class RemoteError(JumpsellerError):
    """The API answered with a non-success status or could not be reached.

    Attributes:
        status (int | None): The HTTP status code, or None for transport failures.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class PersistenceError(JumpsellerError):
    """Writing a configuration or credentials file failed."""
