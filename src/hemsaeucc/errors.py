"""
HEMSAEUCC - Custom Exception Classes and Error Codes

This module defines all custom exceptions and error codes used throughout
the messenger and relay. Each error has a unique code for logging and debugging.

Version: 1.2.0
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Enumeration of all HEMSAEUCC error codes."""

    # General Errors (E001-E099)
    E001_UNKNOWN_ERROR = "E001"
    E002_INVALID_ARGUMENT = "E002"

    # Crypto Errors (E100-E199)
    E100_CRYPTO_ERROR = "E100"
    E101_ENCRYPTION_FAILED = "E101"
    E102_AUTHENTICATION_FAILED = "E102"
    E103_KEY_AGREEMENT_FAILED = "E103"
    E104_RANDOM_SOURCE_FAILED = "E104"
    E105_MALFORMED_PACKET = "E105"

    # Relay Errors (E200-E299)
    E200_RELAY_ERROR = "E200"
    E201_CONNECTION_FAILED = "E201"
    E202_BAD_RESPONSE = "E202"
    E203_INVALID_REQUEST = "E203"

    # Identity Errors (E300-E399)
    E300_IDENTITY_ERROR = "E300"
    E301_IDENTITY_NOT_FOUND = "E301"
    E302_IDENTITY_ALREADY_EXISTS = "E302"
    E303_IDENTITY_LOAD_FAILED = "E303"
    E304_IDENTITY_SAVE_FAILED = "E304"
    E305_INVALID_IDENTITY = "E305"

    # Storage Errors (E600-E699)
    E600_STORAGE_ERROR = "E600"
    E601_STORE_OPEN_FAILED = "E601"
    E602_WRITE_FAILED = "E602"
    E603_DRAIN_FAILED = "E603"

    # Config Errors (E700-E799)
    E700_CONFIG_ERROR = "E700"
    E701_CONFIG_LOAD_FAILED = "E701"
    E702_CONFIG_SAVE_FAILED = "E702"
    E704_CONFIG_PARSE_ERROR = "E704"


class HemsaeuccError(Exception):
    """Base exception class for all HEMSAEUCC errors.

    Attributes:
        code: Error code from ErrorCode enum
        message: Human-readable error message
        details: Additional error details (optional)
    """

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize an error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            details: Additional error context (optional)
        """
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization.

        Returns:
            Dictionary containing error information
        """
        return {"code": self.code.value, "message": self.message, "details": self.details}


class CryptoError(HemsaeuccError):
    """Exception raised for cryptographic operation failures."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E100_CRYPTO_ERROR,
        message: str = "Cryptographic operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class RandomSourceError(CryptoError):
    """The operating system entropy source could not produce bytes."""

    def __init__(self, message: str = "Secure random source unavailable", details=None):
        super().__init__(ErrorCode.E104_RANDOM_SOURCE_FAILED, message, details)


class KeyAgreementError(CryptoError):
    """X25519 rejected the peer public key (wrong size or low-order point)."""

    def __init__(self, message: str = "Key agreement failed", details=None):
        super().__init__(ErrorCode.E103_KEY_AGREEMENT_FAILED, message, details)


class AuthenticationFailure(CryptoError):
    """A sealed packet could not be opened with our key.

    Tampering, corruption and packets addressed to someone else all end up
    here; callers must not try to tell them apart.
    """

    def __init__(self, message: str = "Packet is not decryptable by this identity", details=None):
        super().__init__(ErrorCode.E102_AUTHENTICATION_FAILED, message, details)


class MalformedPacketError(CryptoError):
    """Packet blob is not valid base64/JSON or misses required fields."""

    def __init__(self, message: str = "Malformed packet", details=None):
        super().__init__(ErrorCode.E105_MALFORMED_PACKET, message, details)


class IdentityError(HemsaeuccError):
    """Exception raised for identity management failures.

    This includes generating, loading, and persisting key material.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E300_IDENTITY_ERROR,
        message: str = "Identity operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class IdentityNotFoundError(IdentityError):
    """No persisted identity exists yet."""

    def __init__(self, message: str = "No identity found", details=None):
        super().__init__(ErrorCode.E301_IDENTITY_NOT_FOUND, message, details)


class IdentityAlreadyExistsError(IdentityError):
    """Refusing to overwrite an existing identity."""

    def __init__(self, message: str = "Identity already exists", details=None):
        super().__init__(ErrorCode.E302_IDENTITY_ALREADY_EXISTS, message, details)


class PersistenceError(IdentityError):
    """Writing key material failed, possibly after one of the two files was written."""

    def __init__(self, message: str = "Failed to save identity", details=None):
        super().__init__(ErrorCode.E304_IDENTITY_SAVE_FAILED, message, details)


class StorageError(HemsaeuccError):
    """Exception raised when the relay store cannot complete a transaction.

    The transaction is rolled back before this is raised.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E600_STORAGE_ERROR,
        message: str = "Storage operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class RelayError(HemsaeuccError):
    """Exception raised for relay communication failures."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E200_RELAY_ERROR,
        message: str = "Relay operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class InvalidRequestError(RelayError):
    """A relay request is missing fields or carries malformed values."""

    def __init__(self, message: str = "Invalid request", details=None):
        super().__init__(ErrorCode.E203_INVALID_REQUEST, message, details)


class ConfigError(HemsaeuccError):
    """Exception raised for configuration failures.

    This includes loading, parsing, and validating configuration files.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E700_CONFIG_ERROR,
        message: str = "Configuration operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)
