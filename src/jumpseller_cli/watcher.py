"""Mirroring of local theme edits to an installed remote theme.

A recursive watchdog observer feeds filesystem events into `ThemeWatcher`. Each
event is classified on the observer thread, one at a time; the resulting remote
write or delete runs on a thread pool so slow requests never hold up later events.

Known limitations:
    * Remote calls for overlapping edits of the same file run concurrently and may
      land out of order.
    * Editors that save in several steps produce one remote write per step.
    * A failed write is logged and not retried.
"""

import enum
import logging
import os
import signal
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from types import FrameType
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .api import ApiClient, error_message
from .constants import APP_NAME
from .exceptions import RemoteError, ValidationError
from .guard import GitGuard
from .policy import PathPolicy, to_posix

logger = logging.getLogger(APP_NAME)

SCHEMA_ENDPOINT = "/v1/themes/schema"


class WatchState(enum.Enum):
    IDLE = "idle"
    WATCHING = "watching"
    DRAINING = "draining"
    STOPPED = "stopped"


class StopReason(enum.Enum):
    INTERRUPT = "interrupt"
    GIT_OPERATION = "git operation"


class ThemeEventHandler(FileSystemEventHandler):
    """Watchdog handler translating filesystem events into watcher actions."""

    def __init__(self, watcher: "ThemeWatcher"):
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.handle("add", event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.handle("change", event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.handle("unlink", event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.handle("unlink", event.src_path)
            self._watcher.handle("add", event.dest_path)


class ThemeWatcher:
    """Mirrors file events under a folder to the schema files of a remote theme.

    Lifecycle: IDLE → WATCHING (`start`) → DRAINING (`stop`, interrupt, or a git
    operation detected) → STOPPED (`join`, once every request has completed). An
    instance runs a single session.

    Attributes:
        api (ApiClient): Client bound to the store owning the theme.
        theme_id (int): The installed theme receiving the writes.
        policy (PathPolicy): Decides which files are mirrored.
        requests (list[Future]): Every remote call issued this session.
        state (WatchState): Current lifecycle state.
        stop_reason (StopReason | None): Why the session stopped.
        guard (GitGuard | None): Armed when the folder is inside a git repository.
    """

    def __init__(
        self,
        api: ApiClient,
        theme_id: int,
        allow: Iterable[str] = (),
        block: Iterable[str] = (),
        workers: int = 4,
    ):
        self.api = api
        self.theme_id = theme_id
        self.policy = PathPolicy(allow, block)
        self.workers = workers

        self.requests: list[Future] = []
        self.state = WatchState.IDLE
        self.stop_reason: StopReason | None = None
        self.guard: GitGuard | None = None
        self.folder: Path | None = None

        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._observer: Any = None

    # --- Remote operations ---

    def _report(self, response: Any, action: str, path: str) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = None

        failed = not response.is_success or (
            isinstance(body, dict) and bool(body.get("error"))
        )
        if failed:
            logger.error(f"{action} {path} failed: {error_message(response)}")
        return body

    def write_bulk(self, paths: list[str], contents: list[str]) -> Any:
        """Sends full file contents for several schema paths in one request."""
        response = self.api.put(
            SCHEMA_ENDPOINT,
            {"theme": self.theme_id},
            {"paths": paths, "contents": contents},
        )
        return self._report(response, "WRITE", ", ".join(paths))

    def write(self, path: str, content: str) -> Any:
        return self.write_bulk([path], [content])

    def unlink(self, path: str) -> Any:
        response = self.api.delete(
            SCHEMA_ENDPOINT, {"theme": self.theme_id, "paths": [path]}
        )
        return self._report(response, "DELETE", path)

    def _send(
        self, action: str, operation: Callable[..., Any], *args: str
    ) -> Any:
        try:
            return operation(*args)
        except RemoteError as e:
            logger.error(f"{action} {args[0]} failed: {e}")
            return None

    # --- Event handling ---

    def _pin_git_repository(self, folder: Path) -> None:
        git_root = GitGuard.find_root(folder)
        if not git_root:
            return
        guard = GitGuard(git_root)
        guard.pin()
        self.guard = guard
        logger.info(f"Detected git repository at {git_root}")

    def _git_operation_detected(self) -> bool:
        if self.guard is None:
            return False
        try:
            return self.guard.check()
        except RuntimeError as e:
            logger.error(f"Could not inspect git repository: {e}")
            return True

    def handle(self, event: str, full_path: str) -> str:
        """Processes one filesystem event.

        Args:
            event (str): One of 'add', 'change' or 'unlink'.
            full_path (str): Absolute path reported by the observer.

        Returns:
            str: The action taken ('WRITE', 'DELETE', 'SKIP', 'ABORT' or 'IGNORED').
        """
        with self._lock:
            executor = self._executor
            if (
                self.state is not WatchState.WATCHING
                or self._stop_event.is_set()
                or self.folder is None
                or executor is None
            ):
                return "IGNORED"

            relative = to_posix(os.path.relpath(full_path, self.folder))
            if not self.policy.is_syncable(relative):
                logger.debug(f"== SKIP {relative}")
                return "SKIP"

            # Checked before sending so a checkout/stash burst never reaches the theme.
            if self._git_operation_detected():
                root = self.guard.root if self.guard else self.folder
                logger.warning(f"Git operation detected on {root}, exiting...")
                self.stop(StopReason.GIT_OPERATION)
                return "ABORT"

            if event in ("add", "change"):
                try:
                    content = Path(full_path).read_text(
                        encoding="utf-8", errors="replace"
                    )
                except FileNotFoundError:
                    logger.debug(f"== SKIP {relative} (vanished before read)")
                    return "SKIP"
                future = executor.submit(
                    self._send, "WRITE", self.write, relative, content
                )
                self.requests.append(future)
                logger.info(f"== WRITE {relative}")
                return "WRITE"

            if event == "unlink":
                self.requests.append(
                    executor.submit(self._send, "DELETE", self.unlink, relative)
                )
                logger.info(f"== DELETE {relative}")
                return "DELETE"

            logger.debug(f"== {event} {relative}")
            return "SKIP"

    # --- Lifecycle ---

    def start(self, folder: Path | str = ".") -> None:
        """Arms the git guard and begins receiving filesystem events.

        Raises:
            RuntimeError: If this watcher already ran a session.
            ValidationError: If the folder does not exist.
        """
        if self.state is not WatchState.IDLE:
            raise RuntimeError("Already watching")

        root = Path(folder).resolve()
        if not root.is_dir():
            raise ValidationError(f"Folder does not exist: {root}")

        self.folder = root
        self._pin_git_repository(root)
        self._executor = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="theme-sync"
        )

        observer = Observer()
        observer.schedule(ThemeEventHandler(self), str(root), recursive=True)
        self._observer = observer
        self.state = WatchState.WATCHING
        observer.start()
        logger.info(f"=== Listening for file events on {root}")

    def stop(self, reason: StopReason = StopReason.INTERRUPT) -> None:
        """Requests the session to stop. Only the first call has an effect."""
        if self._stop_event.is_set():
            return
        self.stop_reason = reason
        self._stop_event.set()

    def wait(self, poll_interval: float = 0.5) -> None:
        """Blocks until `stop()` is called."""
        while not self._stop_event.wait(poll_interval):
            pass

    def join(self) -> None:
        """Stops accepting events and waits for every request to complete."""
        with self._lock:
            if self.state is not WatchState.WATCHING:
                return
            self.state = WatchState.DRAINING

        logger.info("Stopped listening for file events")
        pending = list(self.requests)
        if pending:
            logger.info(f"Waiting for {len(pending)} requests to complete...")
        wait(pending)
        for future in pending:
            if (exc := future.exception()) is not None:
                logger.error(f"Request failed: {exc}")

        if self._executor is not None:
            self._executor.shutdown(wait=True)
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        self.state = WatchState.STOPPED

    def _handle_signal(self, _signum: int, _frame: FrameType | None) -> None:
        self.stop(StopReason.INTERRUPT)

    def _install_signal_handlers(self) -> Callable[[], None]:
        """Routes SIGINT and SIGTERM to `stop()` until the returned function runs."""
        if threading.current_thread() is not threading.main_thread():
            return lambda: None

        previous = {
            sig: signal.signal(sig, self._handle_signal)
            for sig in (signal.SIGINT, signal.SIGTERM)
        }

        def restore() -> None:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        return restore

    def watch(self, folder: Path | str = ".") -> StopReason | None:
        """Runs a full session: start, wait for a stop request, then drain.

        Returns:
            StopReason | None: Why the session ended.
        """
        self.start(folder)
        restore = self._install_signal_handlers()
        try:
            self.wait()
        finally:
            restore()
            self.join()
        return self.stop_reason
