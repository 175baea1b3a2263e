from .models import DerivedContract, MeterReading, ReadingItem
from .obis import convert_to_obis, convert_value, decode_values

__all__ = [
    "DerivedContract",
    "MeterReading",
    "ReadingItem",
    "convert_to_obis",
    "convert_value",
    "decode_values",
]
