"""
numeric.py — locale-tolerant cell parsing

parse_number() never raises: anything it cannot read becomes 0.0.

    "1.234,56" -> 1234.56   (pt-BR)
    "1,234.56" -> 1234.56   (en-US)
    "1.000"    -> 1000.0    (dot as thousands separator)
    "12,5"     -> 12.5      (comma as decimal separator)
"""

from __future__ import annotations

import math
import re
from typing import Any

NON_NUMERIC_RE = re.compile(r"[^\d,.\-]")


def _finite_or_zero(number: float) -> float:
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def normalise_separators(text: str) -> str:
    """Rewrite a stripped numeric string so float() can read it."""
    has_comma = "," in text
    has_dot = "." in text

    if has_comma and has_dot:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")

    if has_comma:
        head, _, tail = text.rpartition(",")
        if len(tail) <= 2:
            return head.replace(",", "") + "." + tail
        return text.replace(",", "")

    if has_dot:
        parts = text.split(".")
        if len(parts) > 1 and len(parts[-1]) == 3:
            return text.replace(".", "")

    return text


def parse_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return _finite_or_zero(float(value))

    text = NON_NUMERIC_RE.sub("", str(value).strip())
    if not text:
        return 0.0

    try:
        return _finite_or_zero(float(normalise_separators(text)))
    except ValueError:
        return 0.0


def looks_numeric(value: Any) -> bool:
    """True when a cell carries a number rather than free text."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return not (isinstance(value, float) and math.isnan(value))
    text = str(value).strip()
    if not text:
        return False
    stripped = re.sub(r"R\$|[\s%$€£]", "", text)
    return bool(re.fullmatch(r"-?[\d.,]*\d[\d.,]*", stripped))
