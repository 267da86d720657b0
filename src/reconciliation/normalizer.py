"""
Value Normalizer for Column Reconciliation

Canonicalizes scalar values read from PostgreSQL and BigQuery into strings
used only for equality comparison. Display values are rendered separately.
"""

import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ValueNormalizer:
    """
    Canonicalizes single values from either source.

    Handles:
    - None/NULL (kept distinct from the empty string)
    - Strings (trimmed, case-sensitive)
    - int/float/Decimal (canonical positional decimal string)
    - datetime/date/time (ISO-8601, aware values converted to UTC)
    - bool, bytes and anything else
    """

    def normalize(self, value: Any) -> Optional[str]:
        """
        Normalize a single value for comparison.

        Args:
            value: Raw value from a source driver

        Returns:
            Canonical string, or None for NULL
        """
        if value is None:
            return None

        if isinstance(value, str):
            return value.strip()

        # bool is an int subclass, check it first
        if isinstance(value, bool):
            return "true" if value else "false"

        if isinstance(value, (int, float, Decimal)):
            return self._normalize_number(value)

        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc)
            return value.isoformat(timespec="microseconds")

        if isinstance(value, (date, time)):
            return value.isoformat()

        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value).hex()

        return str(value).strip()

    def values_equal(self, value1: Any, value2: Any) -> bool:
        """
        Compare two raw values after normalization.

        Args:
            value1: Value from source A
            value2: Value from source B

        Returns:
            True if both canonicalize to NULL or to identical strings
        """
        return self.normalize(value1) == self.normalize(value2)

    def display(self, value: Any) -> Optional[str]:
        """Render a value for display. Not normalized."""
        if value is None:
            return None
        return str(value)

    def _normalize_number(self, value: Any) -> str:
        """
        Render a number as a canonical decimal string.

        1, 1.0 and Decimal("1.00") all become "1". Floats go through repr()
        so the shortest round-trip digits are kept.
        """
        if isinstance(value, int):
            return str(value)

        number = Decimal(repr(value)) if isinstance(value, float) else value

        if not number.is_finite():
            if number.is_nan():
                return "NaN"
            return "-Infinity" if number < 0 else "Infinity"

        # exact: Decimal.normalize() would round to the context precision
        if number == number.to_integral_value():
            return str(int(number))

        return format(number, "f").rstrip("0")
