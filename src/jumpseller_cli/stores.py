import re

from .constants import LOCAL_SUFFIX, PRODUCTION_SUFFIX, TEST_STORE
from .exceptions import ValidationError

_LABEL = r"[a-z0-9_-]+"
_PRODUCTION_RE = re.compile(rf"{_LABEL}{re.escape(PRODUCTION_SUFFIX)}")
_LOCAL_RE = re.compile(rf"{_LABEL}{re.escape(LOCAL_SUFFIX)}")
_LABEL_RE = re.compile(rf"{_LABEL}")
_CREDENTIALS_RE = re.compile(r"[0-9a-f]{32,50}:[0-9a-f]{32,50}")


def parse_store_reference(value: str) -> tuple[bool, str]:
    """Normalizes a human-typed store reference into a canonical store domain.

    Accepts a store code (`simple`), a domain (`simple.jumpseller.com`), a
    `.localhost` domain, the `test` shorthand, or a URL form of any of those.

    Args:
        value (str): The reference as typed by the user or read from disk.

    Returns:
        tuple[bool, str]: (True, canonical domain) when the reference is valid,
                          otherwise (False, the original input).
    """
    store = value
    if store.endswith("/"):
        store = store[:-1]
    if store.startswith("https://"):
        store = store[len("https://") :]
    if store.startswith("http://"):
        store = store[len("http://") :]
    if store.startswith("//"):
        store = store[2:]

    if store == "test":
        return True, TEST_STORE
    if _PRODUCTION_RE.fullmatch(store) or _LOCAL_RE.fullmatch(store):
        return True, store
    if _LABEL_RE.fullmatch(store):
        return True, f"{store}{PRODUCTION_SUFFIX}"
    return False, value


def validate_store_domain(value: str) -> str:
    """Argparse-compatible validator returning the canonical store domain.

    Raises:
        ValidationError: If the reference cannot be parsed.
    """
    ok, domain = parse_store_reference(value)
    if ok:
        return domain
    raise ValidationError(
        f'Invalid store reference: "{value}". '
        "Expected a store code or jumpseller domain."
    )


def valid_credentials(credentials: str) -> bool:
    """Checks the `login:token` shape of a credential pair."""
    return bool(_CREDENTIALS_RE.fullmatch(credentials))


def is_local_store(domain: str) -> bool:
    return domain.endswith(LOCAL_SUFFIX)


def storefront_url(domain: str) -> str:
    """Returns the browser URL of a store (plain http for local stores)."""
    if is_local_store(domain):
        return f"http://{domain}"
    return f"https://{domain}"
