"""
HEMSAEUCC - Global Constants and Configuration Values

This module defines all constants used throughout the HEMSAEUCC messenger
and relay. All magic numbers and configuration defaults are centralized here.

Version: 1.2.0
"""

# Version Information
VERSION = "1.2.0"
APP_NAME = "HEMSAEUCC"
APP_DESCRIPTION = "Humanized Encrypted Messaging System Against European Union Chat Control"

# Relay Network Constants
DEFAULT_RELAY_HOST = "0.0.0.0"
DEFAULT_RELAY_PORT = 8080
DEFAULT_RELAY_URL = "http://localhost:8080"
RELAY_REQUEST_TIMEOUT = 10  # seconds

# Relay Storage
RELAY_DB_FILENAME = "messages.db"
RELAY_BUCKET = "msgs"
RELAY_KEY_SEPARATOR = "-"
RELAY_TS_WIDTH = 20  # zero-padded nanosecond timestamp digits
RELAY_SEQ_WIDTH = 12  # zero-padded sequence digits

# Client Polling
DEFAULT_POLL_INTERVAL = 2.0  # seconds
SHORT_ID_LENGTH = 8

# Cryptography Constants
KEY_SIZE = 32  # X25519 scalar / point size
XNONCE_SIZE = 24  # XChaCha20-Poly1305 nonce
TAG_SIZE = 16  # Poly1305 tag
ID_HEX_LENGTH = KEY_SIZE * 2

# File Paths
DEFAULT_DATA_DIR = "~/.hemsaeucc"
KEYS_DIRNAME = "keys"
PRIVATE_KEY_FILENAME = "x25519_secret.bin"
PUBLIC_KEY_FILENAME = "x25519_public.bin"
CONFIG_FILENAME = "config.toml"
LOGS_DIR = "logs"
LOG_FILENAME = "hemsaeucc.log"

# File Permissions
KEYS_DIR_MODE = 0o700
KEY_FILE_MODE = 0o600

# Logging Configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5

# History prefixes
HISTORY_SELF_PREFIX = "[You]"
