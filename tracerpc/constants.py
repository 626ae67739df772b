"""
Trace RPC Constants

This module consolidates the global constants and the logger environment
configuration used throughout the codebase. Service settings (store,
upstream, readiness) live in ``tracerpc.config``.
"""
import ast
import re

from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'True',
    'LOG_INCLUDE_REQUEST_CONTENT':     'True',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_MAX_PARAMS_LENGTH = 320  # Maximum params text to log per request (truncates longer payloads)
LOG_BACKUP_COUNT = 5


# ==================================================================================
# SERVICE CONSTANTS
# ==================================================================================
SERVICE_VERSION = '1.0.0'
JSONRPC_VERSION = '2.0'

# Defaults shared by the config loader
DEFAULT_REQUEST_TIMEOUT_MS = 15000
DEFAULT_QUERY_TIMEOUT_MS = 15000
DEFAULT_MAX_REQUEST_SIZE = 1024 * 1024  # 1MB, matches the JSON body limit


# ==================================================================================
# VALIDATION PATTERNS
# ==================================================================================
# trace_block accepts any non-empty hex quantity
VALID_BLOCK_NUMBER_PATTERN = re.compile(r'^0x[0-9a-fA-F]+$')

# trace_transaction requires a full 32-byte hash
VALID_TX_HASH_PATTERN = re.compile(r'^0x[0-9a-fA-F]{64}$')

# Non-negative decimal integer, used for ready height / lag settings
VALID_DECIMAL_PATTERN = re.compile(r'^\d+$')


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    # Case-insensitive membership check
    if s.casefold() in {"true", "false"}:
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    # Parses only boolean-literals. Leaves other values untouched.
    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    # Wraps based on parsed value type.
    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        # Preserves the original raw string for ConfigString storage.
        namespace[key] = ConfigString(value_raw, default_val)
