"""
Conversion of gateway reading items into OBIS-keyed values.

Logical names start with twelve hex digits encoding the OBIS groups
A B C D E F, one byte each, optionally followed by ``.`` and a suffix::

    0100010800ff.255  ->  C=0x01 D=0x08 E=0x00  ->  "1.8.0"

Everything here is pure; rejected items raise :class:`ValueError` and are
dropped by :func:`decode_values`.
"""

import logging
import re
from decimal import Decimal, DecimalException
from typing import Dict, Iterable

from asynccasa.enums import UnitCode
from asynccasa.metering.models import ReadingItem

logger = logging.getLogger(__name__)

_HEX12 = re.compile(r"[0-9A-Fa-f]{12}")
_DECIMAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

# (start, end) of the C, D and E groups within the hex prefix
_OBIS_GROUPS = ((4, 6), (6, 8), (8, 10))


def convert_to_obis(logical_name: str) -> str:
    """Return the ``"C.D.E"`` key encoded in *logical_name*.

    Raises:
        ValueError: If the name does not start with exactly 12 hex digits
    """
    prefix = logical_name.split(".", 1)[0]
    if not _HEX12.fullmatch(prefix):
        raise ValueError(f"unexpected logical name: {logical_name!r}")
    return ".".join(str(int(prefix[start:end], 16)) for start, end in _OBIS_GROUPS)


def convert_value(item: ReadingItem) -> float:
    """Scale and normalise the raw value of *item*.

    Raises:
        ValueError: On a non-decimal value or an unknown unit code
    """
    text = item.value.strip()
    if not _DECIMAL.fullmatch(text):
        raise ValueError(f"not a decimal value: {item.value!r}")
    try:
        unit = UnitCode(item.unit)
    except ValueError:
        raise ValueError(f"unsupported unit code: {item.unit}") from None
    try:
        scaled = Decimal(text).scaleb(item.scaler) / unit.divisor
    except DecimalException as exc:
        raise ValueError(f"cannot scale {item.value!r} by 10^{item.scaler}") from exc
    return float(scaled)


def decode_values(items: Iterable[ReadingItem]) -> Dict[str, float]:
    """Map every acceptable item to its OBIS key; rejected items are skipped."""
    values: Dict[str, float] = {}
    for item in items:
        try:
            obis = convert_to_obis(item.logical_name)
            values[obis] = convert_value(item)
        except ValueError as exc:
            logger.debug(f"Dropping reading item: {exc}")
    return values
