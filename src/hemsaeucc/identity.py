"""
HEMSAEUCC - Identity management system.

An identity is a long-term X25519 keypair. Its public half, hex encoded,
is the party's address on the relay.

On disk the identity is two raw files in the keys directory:

- x25519_secret.bin: 32-byte private scalar, mode 0600
- x25519_public.bin: 32-byte public point

The private file is the marker: if it exists, an identity exists and
``generate()`` refuses to replace it.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from . import crypto
from .constants import (
    KEY_FILE_MODE,
    KEY_SIZE,
    KEYS_DIR_MODE,
    PRIVATE_KEY_FILENAME,
    PUBLIC_KEY_FILENAME,
)
from .errors import (
    ErrorCode,
    IdentityAlreadyExistsError,
    IdentityError,
    IdentityNotFoundError,
    PersistenceError,
)

logger = logging.getLogger(__name__)


class Identity:
    """A party's long-term keypair."""

    def __init__(self, keypair: crypto.KeyPair):
        self.keypair = keypair
        self.public_key = keypair.get_public_key_bytes()
        self.public_id = self.public_key.hex()
        self.fingerprint = crypto.generate_fingerprint(self.public_key)

    @property
    def private_key(self) -> bytes:
        """Raw 32-byte private scalar."""
        return self.keypair.get_private_key_bytes()

    def __repr__(self) -> str:
        return f"Identity(public_id={self.public_id!r})"


class IdentityManager:
    """Generates, persists and reloads the local identity."""

    def __init__(self, keys_dir):
        self.keys_dir = Path(keys_dir).expanduser()
        self.private_path = self.keys_dir / PRIVATE_KEY_FILENAME
        self.public_path = self.keys_dir / PUBLIC_KEY_FILENAME
        self.identity: Optional[Identity] = None

    def exists(self) -> bool:
        """Check if an identity has been generated."""
        return self.private_path.exists()

    def generate(self) -> Identity:
        """
        Create and persist a new identity.

        The private key is written before the public key. The two writes
        are not atomic as a pair: after a PersistenceError the private file
        may exist without its public file, and ``load()`` recovers from that
        by re-deriving the public key.

        Raises:
            IdentityAlreadyExistsError: If a private key is already stored
            RandomSourceError: If the entropy source fails
            PersistenceError: If writing either file fails
        """
        if self.exists():
            raise IdentityAlreadyExistsError(
                f"Identity already exists in {self.keys_dir}. Delete it to reset.",
                {"path": str(self.private_path)},
            )

        keypair = crypto.KeyPair.generate()
        identity = Identity(keypair)

        try:
            self.keys_dir.mkdir(mode=KEYS_DIR_MODE, parents=True, exist_ok=True)
            self._write_key_file(self.private_path, keypair.get_private_key_bytes())
            self._write_key_file(self.public_path, identity.public_key)
        except OSError as e:
            logger.error(f"Failed to save identity: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save identity: {e}", {"path": str(self.keys_dir)}) from e

        self.identity = identity
        logger.info(f"Identity created: {identity.public_id}")
        return identity

    def load(self) -> Identity:
        """
        Load the persisted identity.

        Raises:
            IdentityNotFoundError: If no private key is stored
            IdentityError: If the stored key is unreadable or malformed
        """
        if not self.exists():
            raise IdentityNotFoundError(
                f"No identity found in {self.keys_dir}", {"path": str(self.private_path)}
            )

        try:
            private_bytes = self.private_path.read_bytes()
        except OSError as e:
            raise IdentityError(
                ErrorCode.E303_IDENTITY_LOAD_FAILED, f"Failed to read private key: {e}"
            ) from e

        if len(private_bytes) != KEY_SIZE:
            raise IdentityError(
                ErrorCode.E305_INVALID_IDENTITY,
                f"Private key file must hold {KEY_SIZE} bytes, found {len(private_bytes)}",
                {"path": str(self.private_path)},
            )

        identity = Identity(crypto.KeyPair.from_private_bytes(private_bytes))

        try:
            stored_public = self.public_path.read_bytes()
        except FileNotFoundError:
            logger.warning(f"Public key file missing, derived from private key: {self.public_path}")
        except OSError as e:
            logger.warning(f"Could not read public key file {self.public_path}: {e}")
        else:
            if stored_public != identity.public_key:
                logger.warning("Stored public key does not match private key; using derived key")

        self.identity = identity
        logger.debug(f"Identity loaded: {identity.public_id}")
        return identity

    def reset(self) -> bool:
        """
        Delete the stored key files.

        Returns:
            True if anything was deleted
        """
        removed = False
        for path in (self.private_path, self.public_path):
            try:
                path.unlink()
                removed = True
            except FileNotFoundError:
                continue
        if removed:
            logger.info(f"Identity deleted from {self.keys_dir}")
        self.identity = None
        return removed

    @staticmethod
    def _write_key_file(path: Path, data: bytes) -> None:
        # Write atomically by writing to temp file first
        temp_path = path.with_name(path.name + ".tmp")
        fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, KEY_FILE_MODE)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
