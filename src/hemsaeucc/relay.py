"""
HEMSAEUCC - Relay service.

The relay stores sealed packets for offline recipients and hands them out
when the recipient polls. It never opens packets: it only checks that a
request is well formed, stamps a receive time, and files the envelope in
the recipient's mailbox.

Delivery is at-most-once. ``drain`` deletes envelopes in the same
transaction that reads them, so an envelope lost in transit after a
successful drain is gone for good.

HTTP interface:
- POST /send   body {"to_id", "from_id", "packet"}  -> {"ok": true}
- GET  /fetch?id=<recipient_id>                   -> [{to_id, from_id, packet, ts}, ...]
- GET  /health                                    -> {"status": "ok", "pending": n}
"""

import base64
import binascii
import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from .constants import APP_NAME, VERSION
from .errors import InvalidRequestError, StorageError
from .relay_store import RelayStore
from .utils import normalize_party_id

logger = logging.getLogger(__name__)


@dataclass
class StoredEnvelope:
    """Relay-side record of one pending packet."""

    to_id: str
    from_id: str
    packet: str
    ts: int

    def to_dict(self) -> Dict[str, Any]:
        """Export envelope as the JSON object returned by /fetch."""
        return asdict(self)

    def to_bytes(self) -> bytes:
        """Serialize envelope for the relay store."""
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @staticmethod
    def from_bytes(data: bytes) -> "StoredEnvelope":
        """
        Load an envelope from its stored form.

        Raises:
            ValueError, KeyError, TypeError: If the stored bytes are corrupt
        """
        raw = json.loads(data.decode("utf-8"))
        return StoredEnvelope(
            to_id=raw["to_id"], from_id=raw["from_id"], packet=raw["packet"], ts=int(raw["ts"])
        )


class RelayService:
    """Accept/drain orchestration over a RelayStore."""

    def __init__(self, store: RelayStore):
        self.store = store

    def accept(self, payload: Dict[str, Any]) -> StoredEnvelope:
        """
        Validate an inbound envelope and file it for its recipient.

        Args:
            payload: Decoded request body

        Returns:
            The stored envelope

        Raises:
            InvalidRequestError: If fields are missing or malformed
            StorageError: If the store write fails
        """
        if not isinstance(payload, dict):
            raise InvalidRequestError("Request body must be a JSON object")

        to_id = self._party_id(payload, "to_id")
        from_id = self._party_id(payload, "from_id")

        packet = payload.get("packet")
        if not isinstance(packet, str) or not packet:
            raise InvalidRequestError("Field 'packet' is required")
        try:
            base64.b64decode(packet, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidRequestError("Field 'packet' must be valid base64") from e

        envelope = StoredEnvelope(to_id=to_id, from_id=from_id, packet=packet, ts=int(time.time()))
        self.store.append(to_id, envelope.to_bytes())

        logger.info(f"Accepted envelope for {to_id[:8]} from {from_id[:8]}")
        return envelope

    def drain(self, recipient_id: str) -> List[Dict[str, Any]]:
        """
        Remove and return every pending envelope for a recipient.

        Raises:
            InvalidRequestError: If the recipient ID is malformed
            StorageError: If the drain transaction fails
        """
        try:
            recipient_id = normalize_party_id(recipient_id)
        except ValueError as e:
            raise InvalidRequestError(str(e)) from e

        envelopes = []
        for raw in self.store.drain(recipient_id):
            try:
                envelopes.append(StoredEnvelope.from_bytes(raw).to_dict())
            except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.error(f"Discarding corrupt stored envelope for {recipient_id[:8]}: {e}")

        if envelopes:
            logger.info(f"Delivered {len(envelopes)} envelopes to {recipient_id[:8]}")
        return envelopes

    @staticmethod
    def _party_id(payload: Dict[str, Any], field: str) -> str:
        value = payload.get(field)
        if not value:
            raise InvalidRequestError(f"Field '{field}' is required")
        try:
            return normalize_party_id(value)
        except ValueError as e:
            raise InvalidRequestError(f"Field '{field}' is not a valid ID") from e


def create_app(store: RelayStore) -> FastAPI:
    """
    Build the relay HTTP application around an open store.

    The caller owns the store and closes it after the server stops.
    """
    app = FastAPI(title=f"{APP_NAME} relay", version=VERSION)
    service = RelayService(store)
    app.state.service = service

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(f"Storage failure on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "db error"}
        )

    @app.post("/send")
    async def send(request: Request) -> Dict[str, bool]:
        """Store a sealed packet for its recipient."""
        body = await request.body()
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="bad json") from e

        try:
            await run_in_threadpool(service.accept, payload)
        except InvalidRequestError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e

        return {"ok": True}

    @app.get("/fetch")
    def fetch(recipient_id: Optional[str] = Query(default=None, alias="id")) -> List[Dict[str, Any]]:
        """Drain the caller's mailbox."""
        if not recipient_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing id")
        try:
            return service.drain(recipient_id)
        except InvalidRequestError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e

    @app.get("/health")
    def health() -> Dict[str, Any]:
        """Health check with the number of pending envelopes."""
        return {"status": "ok", "pending": store.count()}

    return app
