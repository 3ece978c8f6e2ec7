"""
HEMSAEUCC - Sealed packet wire format.

A sealed packet travels as ``base64(JSON(packet))``. Inside the JSON the
binary fields are standard base64 strings:

    {"from_id": "<hex>", "to_id": "<hex>", "ephemeral_pk": "<b64>",
     "nonce": "<b64>", "ciphertext": "<b64>"}

``from_id`` is whatever the sender claims. Nothing in the packet binds it
to the key agreement, so receivers must treat it as unauthenticated.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict

from .constants import KEY_SIZE, TAG_SIZE, XNONCE_SIZE
from .errors import MalformedPacketError

logger = logging.getLogger(__name__)

PACKET_FIELDS = ("from_id", "to_id", "ephemeral_pk", "nonce", "ciphertext")


@dataclass(frozen=True)
class SealedPacket:
    """An encrypted message addressed to a single recipient."""

    from_id: str
    to_id: str
    ephemeral_pk: bytes
    nonce: bytes
    ciphertext: bytes

    def to_dict(self) -> Dict[str, str]:
        """Export packet to its JSON-ready form."""
        return {
            "from_id": self.from_id,
            "to_id": self.to_id,
            "ephemeral_pk": base64.b64encode(self.ephemeral_pk).decode("ascii"),
            "nonce": base64.b64encode(self.nonce).decode("ascii"),
            "ciphertext": base64.b64encode(self.ciphertext).decode("ascii"),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "SealedPacket":
        """
        Import packet from its JSON form.

        Raises:
            MalformedPacketError: On missing fields, bad base64 or wrong sizes
        """
        if not isinstance(data, dict):
            raise MalformedPacketError("Packet is not a JSON object")

        missing = [name for name in PACKET_FIELDS if not isinstance(data.get(name), str)]
        if missing:
            raise MalformedPacketError(
                f"Packet is missing fields: {', '.join(missing)}", {"missing": missing}
            )

        ephemeral_pk = _b64_field(data, "ephemeral_pk")
        nonce = _b64_field(data, "nonce")
        ciphertext = _b64_field(data, "ciphertext")

        if len(ephemeral_pk) != KEY_SIZE:
            raise MalformedPacketError(f"Ephemeral key must be {KEY_SIZE} bytes")
        if len(nonce) != XNONCE_SIZE:
            raise MalformedPacketError(f"Nonce must be {XNONCE_SIZE} bytes")
        if len(ciphertext) < TAG_SIZE:
            raise MalformedPacketError("Ciphertext shorter than authentication tag")

        return SealedPacket(
            from_id=data["from_id"],
            to_id=data["to_id"],
            ephemeral_pk=ephemeral_pk,
            nonce=nonce,
            ciphertext=ciphertext,
        )


def _b64_field(data: Dict[str, Any], name: str) -> bytes:
    try:
        return base64.b64decode(data[name], validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedPacketError(f"Field '{name}' is not valid base64") from e


def encode_packet(packet: SealedPacket) -> str:
    """Serialize a packet to the base64 blob carried in relay envelopes."""
    payload = json.dumps(packet.to_dict(), separators=(",", ":"))
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_packet(blob: str) -> SealedPacket:
    """
    Parse the base64 blob from a relay envelope.

    Raises:
        MalformedPacketError: If the blob is not base64 of a valid packet
    """
    if not isinstance(blob, str) or not blob:
        raise MalformedPacketError("Packet blob is empty")

    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedPacketError("Packet blob is not valid base64") from e

    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedPacketError("Packet blob is not valid JSON") from e

    return SealedPacket.from_dict(data)
