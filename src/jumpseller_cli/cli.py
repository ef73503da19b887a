import argparse
import logging
import sys
from collections.abc import Callable
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console

from . import access, theme
from .api import ApiClient
from .auth import CredentialStore
from .config import Config
from .constants import APP_NAME, LOG_FILE, VERSION
from .exceptions import ConfigurationError, JumpsellerError
from .stores import validate_store_domain
from .theme import validate_theme_reference

logger = logging.getLogger(APP_NAME)
err_console = Console(stderr=True)

ACCESS_HELP = f"""\
Manage access credentials to the Jumpseller API.

{access.ADMIN_AUTH_HELP}

A default store can be set globally, and individual theme folders
can also specify their own default store for commands."""

THEME_HELP = """\
Manage themes in a store.

Themes are referenced by their integer id.
This id can be found in the URL of the editors, for example:
    /admin/themes/editor/654321"""

WATCH_HELP = """\
Mirror local edits to an installed theme.

Listen for fs write events to schema files in the local theme folder and
issue corresponding schema edit events to a designated installed theme.

This command is git-aware. If an fs write operation detected appears to
have been the result of a git operation (such as git stash, git switch,
git pull and so on) it will exit with an error to avoid triggering an
unintentional bulk write to the installed theme. This is not very robust
yet, so please exercise caution.

Options --allow, --block and --unsafe can be used to control which files
should be processed or ignored. By default writes to components/*.json
are blocked as they can be quite destructive."""


def setup_logging(verbose: bool, config: Config) -> None:
    """Configures the logging subsystem.

    Args:
        verbose (bool): If True, log DEBUG records to the terminal.
        config (Config): Settings providing the log rotation size.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.addHandler(stream_handler)

    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=config.limits.max_log_size,
            backupCount=5,
        )
    except OSError as e:
        logger.debug(f"File logging disabled: {e}")
        return
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.INFO)
    logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    """Builds the argument parser for the `jumpseller` command."""
    parser = argparse.ArgumentParser(
        prog="jumpseller", description="CLI for the Jumpseller API"
    )
    parser.add_argument("-v", "--version", action="version", version=VERSION)
    parser.add_argument(
        "-s",
        "--store",
        dest="command_store",
        type=validate_store_domain,
        help="Set the store for this command",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Show debug logging output"
    )
    subparsers = parser.add_subparsers(dest="command")

    # Access Commands
    access_parser = subparsers.add_parser(
        "access",
        help="Manage access credentials to the Jumpseller API",
        description=ACCESS_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    access_sub = access_parser.add_subparsers(dest="action")
    access_sub.add_parser("list", help="List all stored credentials and their accounts")
    access_sub.add_parser("current", help="Print the current store")
    add_parser = access_sub.add_parser(
        "add", help="Add or update credentials for a store"
    )
    add_parser.add_argument("store", nargs="?", type=validate_store_domain)
    for name, help_text in [
        ("remove", "Remove credentials for a store"),
        ("default", "Set the global default store"),
        ("local", "Set a local default store in the current directory"),
    ]:
        p = access_sub.add_parser(name, help=help_text)
        p.add_argument("store", type=validate_store_domain, help="Store code")

    # Theme Commands
    theme_parser = subparsers.add_parser(
        "theme",
        help="Manage themes in a store",
        description=THEME_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    theme_sub = theme_parser.add_subparsers(dest="action")
    theme_sub.add_parser("list", help="List all themes in the store")

    delete_parser = theme_sub.add_parser("delete", help="Delete one or more theme")
    delete_parser.add_argument(
        "theme_ids", nargs="+", type=validate_theme_reference, metavar="theme-id"
    )

    apply_parser = theme_sub.add_parser("apply", help="Set a theme as active")
    apply_parser.add_argument("theme_id", type=validate_theme_reference)

    rename_parser = theme_sub.add_parser("rename", help="Rename a theme")
    rename_parser.add_argument("theme_id", type=validate_theme_reference)
    rename_parser.add_argument("name", nargs="*", help="New name")

    export_parser = theme_sub.add_parser(
        "export", help="Export an installed theme to a local zip"
    )
    export_parser.add_argument("theme_id", type=validate_theme_reference)
    export_parser.add_argument(
        "folder", nargs="?", help="Folder or zip filename to save exported theme"
    )

    import_parser = theme_sub.add_parser(
        "import", help="Import a local theme folder into a store"
    )
    import_parser.add_argument("folder", type=Path, help="Folder to import")

    watch_parser = theme_sub.add_parser(
        "watch",
        help="Mirror local edits to an installed theme",
        description=WATCH_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    watch_parser.add_argument("theme_id", type=validate_theme_reference)
    watch_parser.add_argument("folder", nargs="?", help="Folder to watch (default .)")
    watch_parser.add_argument(
        "--allow",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Allowlist pattern (put globs inside quotes)",
    )
    watch_parser.add_argument(
        "--block",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Blocklist pattern (put globs inside quotes)",
    )
    watch_parser.add_argument(
        "--unsafe",
        action="store_true",
        help="Shorthand for allowing all known unsafe file patterns",
    )

    parser.set_defaults(theme_parser=theme_parser)
    return parser


def run_access(args: argparse.Namespace, auth: CredentialStore, config: Config) -> int:
    actions: dict[str | None, Callable[[], None]] = {
        None: lambda: access.setup(auth, config),
        "list": lambda: access.list_stores(auth, config),
        "current": lambda: access.current(auth),
        "add": lambda: access.add(auth, config, args.store or args.command_store),
        "remove": lambda: access.remove(auth, args.store),
        "default": lambda: access.set_default(auth, config, args.store),
        "local": lambda: access.set_local(auth, config, args.store),
    }
    actions[args.action]()
    return 0


def run_theme(args: argparse.Namespace, auth: CredentialStore, config: Config) -> int:
    if args.action is None:
        args.theme_parser.print_help()
        return 0

    store, credentials = auth.require_current_store()
    with ApiClient(store, credentials, timeout=config.api.timeout) as api:
        if args.action == "list":
            theme.list_themes(api)
        elif args.action == "delete":
            theme.delete(api, args.theme_ids)
        elif args.action == "apply":
            theme.apply(api, args.theme_id)
        elif args.action == "rename":
            theme.rename(api, args.theme_id, args.name)
        elif args.action == "export":
            theme.export_theme(api, args.theme_id, args.folder)
        elif args.action == "import":
            theme.import_theme(api, args.folder)
        elif args.action == "watch":
            ok = theme.watch(
                api,
                config,
                args.theme_id,
                args.folder,
                allow=args.allow,
                block=args.block,
                unsafe=args.unsafe,
            )
            return 0 if ok else 1
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the Jumpseller CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return

    project = Path(getattr(args, "folder", None) or ".")
    config = Config.load(project if project.is_dir() else Path.cwd())
    setup_logging(args.verbose, config)

    auth = CredentialStore()
    if args.command_store:
        auth.set_command_store(args.command_store)

    try:
        if args.command == "access":
            code = run_access(args, auth, config)
        else:
            code = run_theme(args, auth, config)
    except ConfigurationError as e:
        err_console.print(f"[bold red]ERROR:[/bold red] {e}")
        sys.exit(1)
    except JumpsellerError as e:
        logger.debug("Command failed", exc_info=True)
        err_console.print(f"[bold red]ERROR:[/bold red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted.[/yellow]")
        sys.exit(130)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
