"""
HEMSAEUCC - Messenger state.

Owns everything a running client needs: its identity, a relay client,
the contact list and per-contact chat history. Contacts and history are
only reachable through methods that hold the instance lock, so a
read-modify-write such as "append to history" cannot race with a poller
thread fetching new messages.

Sender IDs on received messages are whatever the sender put in the
packet. They are not authenticated.
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, List

from . import crypto
from .client import RelayClient
from .constants import HISTORY_SELF_PREFIX
from .errors import AuthenticationFailure, MalformedPacketError
from .identity import Identity
from .packet import decode_packet, encode_packet
from .utils import normalize_party_id, short_id

logger = logging.getLogger(__name__)


@dataclass
class ReceivedMessage:
    """A decrypted message pulled from the relay."""

    from_id: str
    to_id: str
    text: str
    ts: int


def _envelope_ts(value) -> int:
    """Relay receive time as int seconds; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return 0


class Messenger:
    """Client-side application state for one identity."""

    def __init__(self, identity: Identity, relay: RelayClient):
        self.identity = identity
        self.relay = relay
        self._contacts: List[str] = []
        self._history: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    @property
    def my_id(self) -> str:
        return self.identity.public_id

    def add_contact(self, contact_id: str) -> bool:
        """
        Add a contact by ID.

        Returns:
            True if added, False if already known

        Raises:
            ValueError: If contact_id is not a valid ID
        """
        contact_id = normalize_party_id(contact_id)
        with self._lock:
            return self._add_contact_locked(contact_id)

    def _add_contact_locked(self, contact_id: str) -> bool:
        if contact_id in self._contacts:
            return False
        self._contacts.append(contact_id)
        self._history.setdefault(contact_id, [])
        logger.info(f"Contact added: {short_id(contact_id)}")
        return True

    def get_contacts(self) -> List[str]:
        """Snapshot of known contact IDs, in the order they were added."""
        with self._lock:
            return list(self._contacts)

    def get_history(self, contact_id: str) -> List[str]:
        """Snapshot of the chat lines exchanged with a contact."""
        with self._lock:
            return list(self._history.get(contact_id.lower(), []))

    def send_message(self, to_id: str, text: str) -> None:
        """
        Seal a message for a contact and post it to the relay.

        The message is recorded in history only after the relay accepted it.

        Raises:
            ValueError: If to_id is not a valid ID
            KeyAgreementError: If to_id is not a usable public key
            RelayError: If the relay rejects or cannot be reached
        """
        to_id = normalize_party_id(to_id)
        packet = crypto.seal(text.encode("utf-8"), self.identity, bytes.fromhex(to_id), to_id)
        self.relay.send(to_id, self.my_id, encode_packet(packet))

        with self._lock:
            self._history.setdefault(to_id, []).append(f"{HISTORY_SELF_PREFIX}: {text}")

        logger.info(f"Message sent to {short_id(to_id)}")

    def fetch_messages(self) -> List[ReceivedMessage]:
        """
        Drain our relay mailbox and decrypt what we can.

        Packets that are malformed or do not open with our key are logged
        and skipped; the rest of the batch is still returned.

        Raises:
            RelayError: If the relay cannot be reached
        """
        envelopes = self.relay.fetch(self.my_id)
        received: List[ReceivedMessage] = []

        for envelope in envelopes:
            if not isinstance(envelope, dict):
                logger.warning("Skipping relay entry that is not an envelope object")
                continue
            try:
                packet = decode_packet(envelope.get("packet", ""))
                plaintext = crypto.open_packet(packet, self.identity)
            except MalformedPacketError as e:
                logger.warning(f"Skipping malformed packet: {e.message}")
                continue
            except AuthenticationFailure:
                logger.warning(f"Failed to decrypt message from {short_id(str(envelope.get('from_id', '?')))}")
                continue

            try:
                text = plaintext.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning(f"Skipping non-UTF-8 message from {short_id(packet.from_id)}")
                continue

            received.append(
                ReceivedMessage(
                    from_id=packet.from_id,
                    to_id=packet.to_id,
                    text=text,
                    ts=_envelope_ts(envelope.get("ts")),
                )
            )

        with self._lock:
            for message in received:
                try:
                    sender = normalize_party_id(message.from_id)
                except ValueError:
                    sender = message.from_id
                else:
                    self._add_contact_locked(sender)
                self._history.setdefault(sender, []).append(f"[{short_id(sender)}]: {message.text}")

        return received
