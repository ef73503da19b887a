"""Jumpseller CLI: manage store access and themes from the command line.

This package provides the `jumpseller` command-line interface, the credential
and default-store layer, a thin client for the Jumpseller API, and the
git-aware watcher that mirrors local theme edits to an installed theme.
"""

from . import (
    access,
    api,
    archive,
    auth,
    cli,
    config,
    constants,
    exceptions,
    git_wrapper,
    guard,
    output,
    policy,
    stores,
    theme,
    watcher,
)

__all__ = [
    "access",
    "api",
    "archive",
    "auth",
    "cli",
    "config",
    "constants",
    "exceptions",
    "git_wrapper",
    "guard",
    "output",
    "policy",
    "stores",
    "theme",
    "watcher",
]
