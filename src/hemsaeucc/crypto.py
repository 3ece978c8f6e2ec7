"""
HEMSAEUCC - Cryptographic operations.

Each message is sealed to the recipient's long-term X25519 key with a
fresh ephemeral keypair:

- X25519(ephemeral_private, recipient_public) gives a 32-byte shared secret
- the shared secret is used directly as the XChaCha20-Poly1305 key
- a random 24-byte nonce, no associated data

The recipient recomputes the same secret as
X25519(recipient_private, ephemeral_public) and opens the ciphertext.

Using the raw X25519 output as the AEAD key (no KDF) keeps packets
bit-compatible with the clients already deployed against the relay.

Libraries:
- cryptography: X25519 key agreement
- PyNaCl (libsodium bindings): XChaCha20-Poly1305, which cryptography
  does not provide
"""

import hashlib
import logging
import os
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import x25519
from nacl import bindings as sodium
from nacl.exceptions import CryptoError as SodiumError

from .constants import KEY_SIZE, XNONCE_SIZE
from .errors import (
    AuthenticationFailure,
    CryptoError,
    ErrorCode,
    KeyAgreementError,
    RandomSourceError,
)
from .packet import SealedPacket

logger = logging.getLogger(__name__)

# 2^255 - 19
_CURVE25519_P = (1 << 255) - 19


def random_bytes(length: int) -> bytes:
    """
    Read bytes from the operating system CSPRNG.

    Raises:
        RandomSourceError: If the entropy source fails
    """
    try:
        data = os.urandom(length)
    except (OSError, NotImplementedError) as e:
        raise RandomSourceError(f"Failed to read {length} random bytes: {e}") from e
    if len(data) != length:
        raise RandomSourceError(f"Entropy source returned {len(data)} of {length} bytes")
    return data


class KeyPair:
    """
    An X25519 keypair.

    The private scalar is kept exactly as generated (unclamped); clamping
    happens inside X25519, so the stored bytes match what other clients
    write to disk.
    """

    def __init__(self, private_key: x25519.X25519PrivateKey):
        self.private_key = private_key
        self.public_key = private_key.public_key()

    @classmethod
    def generate(cls) -> "KeyPair":
        """Generate a keypair from the OS random source."""
        return cls.from_private_bytes(random_bytes(KEY_SIZE))

    @classmethod
    def from_private_bytes(cls, private_bytes: bytes) -> "KeyPair":
        """Load a keypair from a raw 32-byte scalar."""
        if len(private_bytes) != KEY_SIZE:
            raise CryptoError(
                ErrorCode.E100_CRYPTO_ERROR,
                f"Private key must be {KEY_SIZE} bytes, got {len(private_bytes)}",
            )
        return cls(x25519.X25519PrivateKey.from_private_bytes(private_bytes))

    def get_public_key_bytes(self) -> bytes:
        """Get public key as raw bytes."""
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
        )

    def get_private_key_bytes(self) -> bytes:
        """Get private key as raw bytes."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )


def derive_public_key(private_bytes: bytes) -> bytes:
    """X25519 base-point multiplication of a raw private scalar."""
    return KeyPair.from_private_bytes(private_bytes).get_public_key_bytes()


def is_canonical_public_key(public_bytes: bytes) -> bool:
    """
    Check that a public key is a canonical u-coordinate encoding.

    X25519 ignores the top bit and reduces values >= p, so two different
    byte strings can name the same point. Honest keys are always canonical.
    """
    if len(public_bytes) != KEY_SIZE:
        return False
    return int.from_bytes(public_bytes, "little") < _CURVE25519_P


def compute_shared_secret(private_key: x25519.X25519PrivateKey, peer_public: bytes) -> bytes:
    """
    Perform X25519 key agreement against a raw peer public key.

    Raises:
        KeyAgreementError: If the peer key has the wrong size, is not
            canonical, or is a low-order point (all-zero shared secret)
    """
    if len(peer_public) != KEY_SIZE:
        raise KeyAgreementError(f"Public key must be {KEY_SIZE} bytes, got {len(peer_public)}")
    if not is_canonical_public_key(peer_public):
        raise KeyAgreementError("Public key is not canonically encoded")

    try:
        peer_key = x25519.X25519PublicKey.from_public_bytes(peer_public)
        return private_key.exchange(peer_key)
    except ValueError as e:
        raise KeyAgreementError(f"X25519 rejected the public key: {e}") from e


def seal(plaintext: bytes, sender, recipient_public_key: bytes,
         recipient_id: Optional[str] = None) -> SealedPacket:
    """
    Encrypt plaintext for a recipient.

    Args:
        plaintext: Message bytes
        sender: Identity whose ``public_id`` becomes the packet's from_id
        recipient_public_key: Recipient's raw 32-byte X25519 public key
        recipient_id: Textual recipient ID (defaults to hex of the key)

    Returns:
        A new SealedPacket

    Raises:
        KeyAgreementError: If the recipient key is invalid
        RandomSourceError: If the entropy source fails
    """
    ephemeral = KeyPair.generate()
    shared = compute_shared_secret(ephemeral.private_key, recipient_public_key)

    nonce = random_bytes(XNONCE_SIZE)
    ciphertext = sodium.crypto_aead_xchacha20poly1305_ietf_encrypt(plaintext, None, nonce, shared)

    return SealedPacket(
        from_id=sender.public_id,
        to_id=recipient_id if recipient_id is not None else recipient_public_key.hex(),
        ephemeral_pk=ephemeral.get_public_key_bytes(),
        nonce=nonce,
        ciphertext=ciphertext,
    )


def open_packet(packet: SealedPacket, recipient) -> bytes:
    """
    Decrypt a packet addressed to ``recipient``.

    Raises:
        AuthenticationFailure: If the packet cannot be opened with the
            recipient's key. Never returns partial plaintext.
    """
    try:
        shared = compute_shared_secret(recipient.keypair.private_key, packet.ephemeral_pk)
    except KeyAgreementError as e:
        raise AuthenticationFailure() from e

    try:
        return sodium.crypto_aead_xchacha20poly1305_ietf_decrypt(
            packet.ciphertext, None, packet.nonce, shared
        )
    except SodiumError as e:
        raise AuthenticationFailure() from e


def generate_fingerprint(public_key_bytes: bytes) -> str:
    """SHA-256 fingerprint of a public key, for out-of-band comparison."""
    return hashlib.sha256(public_key_bytes).hexdigest()
