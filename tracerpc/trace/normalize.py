"""
Value normalization for indexed trace rows.

Converts raw store values (``bytea`` blobs, ``numeric`` decimals, textual
hex, Postgres ``\\x`` escapes and array literals) into the canonical wire
forms used in trace objects. Every function here is total: malformed input
degrades to a default instead of raising, so one bad column never aborts a
whole trace response.
"""

import re
from decimal import Decimal
from typing import Any, List, Optional

_HEX_STRING = re.compile(r"^0x[0-9a-fA-F]*$")
_DECIMAL_STRING = re.compile(r"^\d+$")
_BINARY_TYPES = (bytes, bytearray, memoryview)

ADDRESS_HEX_DIGITS = 40


def _is_hex_string(value: str) -> bool:
    return bool(_HEX_STRING.match(value))


def _escaped_binary(value: str) -> Optional[str]:
    """Payload of a ``\\x..`` bytea escape literal, or None."""
    if value.startswith("\\x"):
        return value[2:].lower()
    return None


def _integral(value: Any) -> Optional[int]:
    """Integer value of a numeric, or None when it has a fractional part."""
    if isinstance(value, int):
        return int(value)
    if isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            return None
        return int(value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")) or not value.is_integer():
            return None
        return int(value)
    return None


def _hex_int(number: int) -> str:
    return f"0x{number:x}"


def normalize_hex(value: Any, empty: str = "0x0") -> str:
    """
    Quantity or hash → lowercase ``0x`` hex.

    Binary and textual hex pass through, integral numerics and decimal
    numeral strings are converted, anything else yields *empty*.
    """
    if value is None:
        return empty

    if isinstance(value, _BINARY_TYPES):
        return "0x" + bytes(value).hex()

    if isinstance(value, (int, float, Decimal)):
        number = _integral(value)
        return empty if number is None else _hex_int(number)

    if isinstance(value, str):
        if _is_hex_string(value):
            return value.lower()
        escaped = _escaped_binary(value)
        if escaped is not None:
            return "0x" + escaped
        if value == "":
            return empty
        if _DECIMAL_STRING.match(value):
            # Decimal avoids the int() digit limit on long numerals
            return _hex_int(int(Decimal(value)))

    return empty


def normalize_bytes(value: Any) -> str:
    """Byte string (input/output data) → lowercase ``0x`` hex, default ``0x``."""
    if value is None:
        return "0x"
    if isinstance(value, _BINARY_TYPES):
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        if _is_hex_string(value):
            return value.lower()
        escaped = _escaped_binary(value)
        if escaped is not None:
            return "0x" + escaped
    return "0x"


def normalize_address(value: Any) -> Optional[str]:
    """
    Address → ``0x`` + exactly 40 lowercase hex digits.

    Short payloads are left-padded with zeros; long payloads keep their
    low-order 40 digits. Returns None when there is no payload.
    """
    if value is None:
        return None

    payload = None
    if isinstance(value, _BINARY_TYPES):
        payload = bytes(value).hex()
    elif isinstance(value, str):
        if _is_hex_string(value):
            payload = value[2:]
        else:
            payload = _escaped_binary(value)

    if not payload:
        return None
    padded = payload.lower().rjust(ADDRESS_HEX_DIGITS, "0")[-ADDRESS_HEX_DIGITS:]
    return "0x" + padded


def _path_element(item: Any) -> int:
    if isinstance(item, str):
        item = item.strip()
        try:
            return int(item)
        except ValueError:
            pass
        try:
            return _integral(Decimal(item)) or 0
        except ArithmeticError:
            return 0
    number = _integral(item)
    return 0 if number is None else number


def parse_trace_address(value: Any) -> List[int]:
    """
    Trace address path from a native int sequence or an array literal.

    ``{0,1,2}`` → ``[0, 1, 2]``; ``{}``, ``""`` and None → ``[]``.
    Elements that are not integers coerce to 0.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [_path_element(item) for item in value]
    if isinstance(value, str):
        trimmed = value.strip()
        if trimmed in ("{}", ""):
            return []
        if trimmed.startswith("{"):
            trimmed = trimmed[1:]
        if trimmed.endswith("}"):
            trimmed = trimmed[:-1]
        if trimmed == "":
            return []
        return [_path_element(item) for item in trimmed.split(",")]
    return []
