"""Classification of theme files as syncable or not."""

import re
from collections.abc import Iterable
from pathlib import PurePath

from pathspec import PathSpec

_BRACE_RE = re.compile(r"\{([^{}]*)\}")

STRUCTURAL_DIRS = ("partials/", "components/", "templates/")
EXCLUDED_DIRS = ("assets/library/",)
ASSET_DIRS = ("assets/",)
CONFIG_DIRS = ("config/",)


def expand_braces(pattern: str) -> list[str]:
    """Expands `{a,b}` alternations, innermost first.

    `templates/{a,b}.json` becomes `templates/a.json` and `templates/b.json`.
    A brace group without a comma is kept literally.
    """
    match = _BRACE_RE.search(pattern)
    while match and "," not in match.group(1):
        match = _BRACE_RE.search(pattern, match.end())
    if not match:
        return [pattern]

    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


def compile_patterns(patterns: Iterable[str]) -> PathSpec:
    """Compiles glob patterns (`*`, `**`, `?`, `[...]`, `{a,b}`) into a PathSpec."""
    lines = [p for pattern in patterns for p in expand_braces(pattern.strip()) if p]
    return PathSpec.from_lines("gitwildmatch", lines)


def to_posix(path: str | PurePath) -> str:
    return PurePath(path).as_posix()


class PathPolicy:
    """Decides which relative paths inside a theme folder are mirrored remotely.

    Rules, first match wins: allowlist → yes; blocklist → no; partials/,
    components/, templates/ → yes; assets/library/ → no; assets/ → yes;
    config/ → yes; anything else → no.

    Attributes:
        allow (list[str]): Patterns always synced.
        block (list[str]): Patterns never synced unless also allowed.
    """

    def __init__(self, allow: Iterable[str] = (), block: Iterable[str] = ()):
        self.allow = list(allow)
        self.block = list(block)
        self._allow_spec = compile_patterns(self.allow)
        self._block_spec = compile_patterns(self.block)

    def is_syncable(self, relative_path: str | PurePath) -> bool:
        path = to_posix(relative_path)
        if path in ("", ".") or path.startswith("../"):
            return False

        if self._allow_spec.match_file(path):
            return True
        if self._block_spec.match_file(path):
            return False
        if path.startswith(STRUCTURAL_DIRS):
            return True
        if path.startswith(EXCLUDED_DIRS):
            return False
        if path.startswith(ASSET_DIRS):
            return True
        if path.startswith(CONFIG_DIRS):
            return True
        return False
