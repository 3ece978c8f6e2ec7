"""
HEMSAEUCC - Relay HTTP client.

Thin httpx wrapper around the relay's /send and /fetch endpoints.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .constants import DEFAULT_RELAY_URL, RELAY_REQUEST_TIMEOUT
from .errors import ErrorCode, RelayError

logger = logging.getLogger(__name__)

HTTP_OK = 200


class RelayClient:
    """Client for a single relay."""

    def __init__(
        self,
        base_url: str = DEFAULT_RELAY_URL,
        timeout: float = RELAY_REQUEST_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the relay client.

        Args:
            base_url: Relay root URL, e.g. http://localhost:8080
            timeout: Per-request timeout in seconds
            http_client: Pre-built httpx client (tests pass a FastAPI TestClient)
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=timeout)

    def send(self, to_id: str, from_id: str, packet: str) -> None:
        """
        Hand a sealed packet blob to the relay.

        Raises:
            RelayError: On transport failure or a non-200 response
        """
        body = {"to_id": to_id, "from_id": from_id, "packet": packet}
        response = self._request("POST", "/send", json=body)
        logger.debug(f"Relay accepted packet for {to_id[:8]}: {response.text.strip()}")

    def fetch(self, recipient_id: str) -> List[Dict[str, Any]]:
        """
        Drain the recipient's mailbox on the relay.

        Returns:
            Raw envelopes ``{to_id, from_id, packet, ts}``

        Raises:
            RelayError: On transport failure, a non-200 response or a
                response body that is not a JSON list
        """
        response = self._request("GET", "/fetch", params={"id": recipient_id})
        try:
            data = response.json()
        except ValueError as e:
            raise RelayError(ErrorCode.E202_BAD_RESPONSE, "Relay returned invalid JSON") from e

        # The relay this protocol started with encodes an empty mailbox as null
        if data is None:
            return []
        if not isinstance(data, list):
            raise RelayError(ErrorCode.E202_BAD_RESPONSE, "Relay response is not a list")
        return data

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"Relay request {method} {path} failed: {e}")
            raise RelayError(
                ErrorCode.E201_CONNECTION_FAILED, f"Relay unreachable: {e}", {"url": url}
            ) from e

        if response.status_code != HTTP_OK:
            raise RelayError(
                ErrorCode.E202_BAD_RESPONSE,
                f"Relay returned HTTP {response.status_code}",
                {"url": url, "status": response.status_code, "body": response.text[:200]},
            )
        return response

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RelayClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
