"""HTTP client for the Jumpseller API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from .constants import API_URL, APP_NAME, LOCAL_API_URL
from .exceptions import RemoteError, ValidationError
from .stores import is_local_store

logger = logging.getLogger(APP_NAME)


def resolve_api_url(store: str) -> str:
    """Returns the API base URL serving a store."""
    return LOCAL_API_URL if is_local_store(store) else API_URL


def error_message(response: httpx.Response) -> str:
    """Extracts a readable error message from an API response.

    Falls back to the HTTP reason phrase when the body has no usable message.
    """
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        msg = data.get("message") or data.get("error")
        if isinstance(msg, str) and msg:
            return msg
    return response.reason_phrase or f"HTTP {response.status_code}"


class ApiClient:
    """Authenticated client bound to a single store.

    Every request carries HTTP Basic authentication built from the store's
    `login:token` credentials. The underlying `httpx.Client` is shared and safe
    to use from the watcher's worker threads.

    Attributes:
        store (str): The store domain the client talks for.
        api_url (str): Base URL of the API.
    """

    def __init__(self, store: str, credentials: str, timeout: float = 30.0):
        """Initializes the client.

        Args:
            store (str): Canonical store domain.
            credentials (str): The `login:token` pair for the store.
            timeout (float): Request timeout in seconds.

        Raises:
            ValidationError: If the credentials are not a `login:token` pair.
        """
        login, sep, token = credentials.partition(":")
        if not sep:
            raise ValidationError(f"Invalid credentials format for {store}.")

        self.store = store
        self.api_url = resolve_api_url(store)
        self.timeout = timeout
        self._auth = httpx.BasicAuth(login, token)
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=self.api_url,
                auth=self._auth,
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        """Issues a request and returns the raw response, whatever its status.

        Raises:
            RemoteError: On transport failures (DNS, connection, timeout).
        """
        url = "/" + path.lstrip("/")
        logger.debug(f"{method} {self.api_url}{url} {params or {}}")
        try:
            return self._get_client().request(method, url, params=params, json=json)
        except httpx.HTTPError as e:
            raise RemoteError(f"Network error talking to {self.api_url}: {e}") from e

    def get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        return self.request("GET", path, params)

    def put(
        self, path: str, params: dict[str, Any] | None = None, json: Any = None
    ) -> httpx.Response:
        return self.request("PUT", path, params, json)

    def post(
        self, path: str, params: dict[str, Any] | None = None, json: Any = None
    ) -> httpx.Response:
        return self.request("POST", path, params, json)

    def delete(
        self, path: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        return self.request("DELETE", path, params)

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GETs a path and decodes the JSON body.

        Raises:
            RemoteError: If the response is not a success.
        """
        response = self.get(path, params)
        if not response.is_success:
            raise RemoteError(error_message(response), response.status_code)
        return response.json()

    def download(
        self, path: str, destination: Path, params: dict[str, Any] | None = None
    ) -> None:
        """Streams the body of a POST response into a file.

        Raises:
            RemoteError: On transport failures or a non-success response.
        """
        url = "/" + path.lstrip("/")
        try:
            with self._get_client().stream("POST", url, params=params) as response:
                if not response.is_success:
                    response.read()
                    raise RemoteError(
                        f"Unexpected response {error_message(response)}",
                        response.status_code,
                    )
                with open(destination, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise RemoteError(f"Network error talking to {self.api_url}: {e}") from e
