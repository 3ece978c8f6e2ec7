"""
HEMSAEUCC - End-to-end encrypted store-and-forward messaging

Clients seal messages to each other's X25519 public keys and hand them to
an untrusted relay, which holds them until the recipient polls.
"""

__version__ = "1.2.0"
__license__ = "MIT"

# Import core modules for easy access
from .config import Config
from .constants import APP_NAME, VERSION
from .errors import (
    AuthenticationFailure,
    ConfigError,
    CryptoError,
    ErrorCode,
    HemsaeuccError,
    IdentityError,
    KeyAgreementError,
    MalformedPacketError,
    RelayError,
    StorageError,
)
from .identity import Identity, IdentityManager
from .packet import SealedPacket

__all__ = [
    "APP_NAME",
    "VERSION",
    "AuthenticationFailure",
    "Config",
    "ConfigError",
    "CryptoError",
    "ErrorCode",
    "HemsaeuccError",
    "Identity",
    "IdentityError",
    "IdentityManager",
    "KeyAgreementError",
    "MalformedPacketError",
    "RelayError",
    "SealedPacket",
    "StorageError",
    "__license__",
    "__version__",
]
