"""
Wire models for the gateway's metering JSON documents.
"""

import logging
from typing import Any, Dict, Iterator, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class DerivedContract(BaseModel):
    """Detail document of one derived metering contract."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sensor_domains: List[str] = Field(default_factory=list, alias="sensorDomains")


class ReadingItem(BaseModel):
    """One value of an extended meter reading."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    logical_name: str = Field(default="", alias="logicalName")
    value: str = Field(default="")
    scaler: int = Field(default=0)
    unit: int = Field(default=0)

    @field_validator("value", mode="before")
    @classmethod
    def numbers_as_text(cls, v: Any) -> Any:
        # Some firmware sends bare JSON numbers instead of strings
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class MeterReading(BaseModel):
    """Extended reading document of one meter.

    Items are kept raw and validated one by one in :meth:`reading_items`, so a single
    malformed entry is dropped instead of failing the whole document.
    """

    model_config = ConfigDict(extra="ignore")

    values: List[Dict[str, Any]] = Field(default_factory=list)

    def reading_items(self) -> Iterator[ReadingItem]:
        for raw in self.values:
            try:
                yield ReadingItem.model_validate(raw)
            except ValidationError as exc:
                logger.debug(f"Skipping malformed reading item {raw!r}: {exc.error_count()} error(s)")
