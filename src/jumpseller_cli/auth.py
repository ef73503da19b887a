import contextlib
import logging
import os
import secrets
from pathlib import Path

from .constants import (
    APP_NAME,
    CONFIG_DIR,
    CREDENTIALS_FILE_NAME,
    GLOBAL_STORE_FILE_NAME,
    LOCAL_STORE_FILE,
)
from .exceptions import (
    NoCredentialsError,
    NoStoreError,
    PersistenceError,
    ValidationError,
)
from .stores import parse_store_reference, valid_credentials

logger = logging.getLogger(APP_NAME)


def _canonical_line(line: str) -> str:
    """Strips a trailing `#` comment and surrounding whitespace from a line."""
    return line.split("#", 1)[0].strip()


def _line_domain(line: str) -> str | None:
    tokens = _canonical_line(line).split()
    return tokens[0] if tokens else None


def _join_lines(lines: list[str]) -> str:
    """Joins lines back into file content, dropping leading blank lines."""
    while lines and not lines[0].strip():
        lines = lines[1:]
    return "\n".join(lines) + "\n" if lines else ""


def atomic_write(path: Path, content: str) -> None:
    """Replaces a file's content through a sibling temp file and a rename.

    Args:
        path (Path): The destination file.
        content (str): The full new content.

    Raises:
        PersistenceError: If the directory or file cannot be written.
    """
    tmp_file = path.with_name(f".{path.name}.tmp.{secrets.token_hex(4)}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_file, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())  # Force write to disk.

        # Atomic Swap.
        os.replace(tmp_file, path)
    except OSError as e:
        if tmp_file.exists():
            with contextlib.suppress(OSError):
                tmp_file.unlink()
        raise PersistenceError(f"Could not write {path}: {e}") from e


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (FileNotFoundError, NotADirectoryError):
        return None


class CredentialStore:
    """Saved store credentials plus the three layers of current store selection.

    Credentials live in a line-oriented file (`<domain> <login>:<token>`) inside the
    config directory. The current store resolves, in order, from the command line,
    from the closest `.jumpseller-store` file found walking up from the working
    directory, and from the global default file in the config directory.

    Credential edits stay in memory until `flush()`; default-store setters write
    through immediately. One instance is created per process and handed to every
    command.

    Attributes:
        config_dir (Path): Directory holding the credentials and global store files.
        scope_folder (Path | None): Folder of the last local default lookup; where
                                    `set_local_default` writes.
    """

    def __init__(
        self,
        config_dir: Path = CONFIG_DIR,
        cwd: Path | None = None,
        home: Path | None = None,
    ):
        """Initializes the store without touching the disk.

        Args:
            config_dir (Path): The configuration directory.
            cwd (Path | None): Start of the local default search. Defaults to the
                               process working directory at lookup time.
            home (Path | None): Upper bound of the local default search. Defaults
                                to the user's home directory.
        """
        self.config_dir = config_dir
        self.credentials_file = config_dir / CREDENTIALS_FILE_NAME
        self.global_store_file = config_dir / GLOBAL_STORE_FILE_NAME
        self._cwd = cwd
        self._home = home

        self._lines: list[str] | None = None
        self._credentials: dict[str, str] | None = None
        self._dirty = False

        self._global_loaded = False
        self._global_default: str | None = None

        self._command_store: str | None = None
        self.scope_folder: Path | None = None

    # --- Credentials ---

    def _load_lines(self) -> list[str]:
        if self._lines is None:
            text = _read_text(self.credentials_file) or ""
            text = text.strip()
            self._lines = text.split("\n") if text else []
        return self._lines

    def _set_lines(self, lines: list[str]) -> None:
        self._lines = lines
        self._credentials = None
        self._dirty = True

    @property
    def dirty(self) -> bool:
        """bool: Whether credential edits are waiting for `flush()`."""
        return self._dirty

    def list_credentials(self) -> dict[str, str]:
        """Parses the credentials file into a mapping of domain to credentials.

        Invalid domains, malformed credentials and duplicate domains are reported
        as warnings and skipped.

        Returns:
            dict[str, str]: Valid entries, in file order.
        """
        if self._credentials is not None:
            return self._credentials

        domains: dict[str, str] = {}
        for line in self._load_lines():
            tokens = _canonical_line(line).split()
            if not tokens:
                continue

            domain = tokens[0]
            credentials = tokens[1] if len(tokens) > 1 else ""
            ok, corrected = parse_store_reference(domain)

            if not ok or domain != corrected:
                logger.warning(f"credentials file: Invalid domain {domain}")
            elif len(tokens) != 2 or not valid_credentials(credentials):
                logger.warning(f"credentials file: Invalid credentials for {domain}")
            elif domain in domains:
                logger.warning(f"credentials file: Duplicate domain {domain}")
            else:
                domains[domain] = credentials

        self._credentials = domains
        return domains

    def get_credentials(self, domain: str | None) -> str | None:
        """Returns the saved credentials for a domain, if valid ones exist."""
        if not domain:
            return None
        return self.list_credentials().get(domain)

    def add_credentials(self, domain: str, credentials: str) -> None:
        """Adds or replaces the credentials line for a domain (in memory).

        Existing line order is kept; a new domain is appended.

        Raises:
            ValidationError: If the domain or credentials are malformed.
        """
        _require_canonical(domain)
        if not valid_credentials(credentials):
            raise ValidationError(f"Invalid credentials format for {domain}.")

        entry = f"{domain} {credentials}"
        lines: list[str] = []
        missing = True
        for line in self._load_lines():
            if _line_domain(line) != domain:
                lines.append(line)
            elif missing:
                lines.append(entry)
                missing = False
        if missing:
            lines.append(entry)
        self._set_lines(lines)

    def remove_credentials(self, domain: str) -> None:
        """Drops every line for a domain (in memory). Unknown domains are a no-op."""
        current = self._load_lines()
        lines = [line for line in current if _line_domain(line) != domain]
        if len(lines) != len(current):
            self._set_lines(lines)

    def flush(self) -> None:
        """Persists pending credential edits atomically.

        Raises:
            PersistenceError: If the credentials file cannot be written.
        """
        if not self._dirty:
            return
        atomic_write(self.credentials_file, _join_lines(self._load_lines()))
        self._dirty = False

    # --- Current store resolution ---

    def set_command_store(self, domain: str | None) -> None:
        """Designates a store from the command line (highest precedence)."""
        self._command_store = domain

    def get_global_default(self) -> str | None:
        if not self._global_loaded:
            self._global_default = _read_store_file(self.global_store_file)
            self._global_loaded = True
        return self._global_default

    def set_global_default(self, domain: str) -> None:
        """Sets and immediately persists the global default store."""
        _require_canonical(domain)
        atomic_write(self.global_store_file, domain + "\n")
        self._global_default = domain
        self._global_loaded = True

    def _find_scope(self) -> tuple[Path, str | None]:
        """Walks up from the working directory looking for a local store file.

        The walk stops after the home directory or at the filesystem root,
        whichever comes first.

        Returns:
            tuple[Path, str | None]: The folder holding a valid local store file and
                                     its domain, or (start folder, None).
        """
        start = (self._cwd or Path.cwd()).resolve()
        home = (self._home or Path.home()).resolve()

        for folder in (start, *start.parents):
            domain = _read_store_file(folder / LOCAL_STORE_FILE)
            if domain:
                return folder, domain
            if folder == home:
                break
        return start, None

    def get_local_default(self) -> str | None:
        """Returns the closest local default store. Searched on every call."""
        self.scope_folder, domain = self._find_scope()
        return domain

    def set_local_default(self, domain: str) -> None:
        """Writes the local default into the closest scope folder.

        The closest folder that already has a store file is reused; otherwise the
        file is created in the working directory.
        """
        _require_canonical(domain)
        folder, _ = self._find_scope()
        atomic_write(folder / LOCAL_STORE_FILE, domain + "\n")
        self.scope_folder = folder

    def current_store(self) -> str | None:
        """Resolves the store for a command: command line > local > global."""
        return (
            self._command_store or self.get_local_default() or self.get_global_default()
        )

    def require_current_store(self) -> tuple[str, str]:
        """Resolves the current store and its credentials.

        Returns:
            tuple[str, str]: The store domain and its `login:token` credentials.

        Raises:
            NoStoreError: If no store is selected at any layer.
            NoCredentialsError: If the selected store has no saved credentials.
        """
        store = self.current_store()
        if not store:
            raise NoStoreError()
        credentials = self.get_credentials(store)
        if not credentials:
            raise NoCredentialsError(store)
        return store, credentials


def _require_canonical(domain: str) -> None:
    ok, corrected = parse_store_reference(domain)
    if not ok or corrected != domain:
        raise ValidationError(f'Invalid store domain: "{domain}".')


def _read_store_file(path: Path) -> str | None:
    """Reads a single-domain store file, ignoring missing or malformed ones."""
    content = _read_text(path)
    if content is None:
        return None
    value = content.strip()
    if not value:
        return None
    ok, domain = parse_store_reference(value)
    if not ok:
        logger.warning(f"{path}: Invalid store {value}")
        return None
    return domain
