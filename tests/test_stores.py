"""Tests for store reference parsing and credential shape checks."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from jumpseller_cli.exceptions import ValidationError
from jumpseller_cli.stores import (
    parse_store_reference,
    storefront_url,
    valid_credentials,
    validate_store_domain,
)

labels = st.from_regex(r"[a-z0-9_-]{1,20}", fullmatch=True).filter(
    lambda s: s != "test"
)
hex_keys = st.from_regex(r"[0-9a-f]{32,50}", fullmatch=True)


@given(label=labels)
def test_bare_label_gets_production_suffix(label: str) -> None:
    """
    Property: Any store code expands to its production domain, whatever URL
    decoration surrounds it.
    """
    expected = (True, f"{label}.jumpseller.com")
    assert parse_store_reference(label) == expected
    assert parse_store_reference(f"https://{label}/") == expected
    assert parse_store_reference(f"//{label}") == expected


@given(label=labels)
def test_canonical_domains_are_fixed_points(label: str) -> None:
    """Property: Parsing an already canonical domain returns it unchanged."""
    for domain in (f"{label}.jumpseller.com", f"{label}.localhost"):
        assert parse_store_reference(domain) == (True, domain)
        assert parse_store_reference(parse_store_reference(domain)[1]) == (
            True,
            domain,
        )


def test_test_shorthand() -> None:
    """Verifies that `test` maps to the local test store."""
    assert parse_store_reference("test") == (True, "test.localhost")
    assert parse_store_reference("http://test/") == (True, "test.localhost")


@pytest.mark.parametrize(
    "value",
    ["", "Simple", "simple.example.com", "a.b.jumpseller.com", "simple store", "/"],
)
def test_invalid_references_are_rejected(value: str) -> None:
    """Verifies that anything outside the accepted forms is rejected as typed."""
    assert parse_store_reference(value) == (False, value)


def test_validate_store_domain_raises() -> None:
    """Verifies the argparse validator error message."""
    assert validate_store_domain("simple") == "simple.jumpseller.com"
    with pytest.raises(ValidationError, match='Invalid store reference: "bad store"'):
        validate_store_domain("bad store")


@given(login=hex_keys, token=hex_keys)
def test_valid_credentials_accepts_hex_pairs(login: str, token: str) -> None:
    """Property: Two hex strings of 32-50 chars joined by a colon are valid."""
    assert valid_credentials(f"{login}:{token}")
    assert not valid_credentials(f"{login}{token}")
    assert not valid_credentials(f"{login.upper()}x:{token}")


def test_valid_credentials_length_bounds() -> None:
    """Verifies the length bounds of each half."""
    assert not valid_credentials("a" * 31 + ":" + "b" * 32)
    assert not valid_credentials("a" * 32 + ":" + "b" * 51)
    assert valid_credentials("a" * 50 + ":" + "b" * 32)


def test_storefront_url() -> None:
    """Verifies that local stores are served over plain http."""
    assert storefront_url("simple.jumpseller.com") == "https://simple.jumpseller.com"
    assert storefront_url("test.localhost") == "http://test.localhost"


@pytest.mark.parametrize(
    "value", ["shop\n", "shop.jumpseller.com\n", "test.localhost\n", "shop\nother"]
)
def test_trailing_newline_is_rejected(value: str) -> None:
    """Verifies that embedded or trailing newlines never reach a stored domain."""
    assert parse_store_reference(value) == (False, value)
    with pytest.raises(ValidationError):
        validate_store_domain(value)


def test_credentials_with_trailing_newline_are_invalid() -> None:
    """Verifies that a newline cannot be smuggled into a credentials line."""
    assert not valid_credentials("a" * 32 + ":" + "b" * 32 + "\n")
