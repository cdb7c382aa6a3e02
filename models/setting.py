import json
from enum import Enum
from typing import Any, Optional

from sqlmodel import Field, Index, SQLModel


class SettingType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    JSON = "json"
    TIME = "time"  # "HH:MM", kept as a string


_TRUE_VALUES = {"1", "true", "yes", "on"}


# Per-dealership configuration override; dealership_id NULL marks a global row
class Setting(SQLModel, table=True):
    __tablename__ = "settings"

    __table_args__ = (
        Index("ix_settings_key_dealership_id", "key", "dealership_id", unique=True),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(index=True)
    dealership_id: Optional[str] = Field(default=None, foreign_key="dealerships.id")
    type: SettingType = Field(default=SettingType.STRING)
    value: Optional[str] = Field(default=None)

    def typed_value(self) -> Any:
        """Cast the stored text to the declared type."""
        if self.value is None:
            return None
        if self.type == SettingType.BOOLEAN:
            return self.value.strip().lower() in _TRUE_VALUES
        if self.type == SettingType.INTEGER:
            return int(self.value)
        if self.type == SettingType.JSON:
            return json.loads(self.value)
        return self.value
