from sqlmodel import SQLModel, Field
from typing import Optional

from utils.timezone_helpers import DEFAULT_TIMEZONE

# Dealership (tenant); timezone is used only to find its local calendar day
class Dealership(SQLModel, table=True):
    __tablename__ = "dealerships"

    id: str = Field(primary_key=True, description="Unique dealership identifier")
    name: Optional[str] = Field(default=None, description="Human-friendly dealership name")
    timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        description="IANA timezone (e.g. 'Asia/Tashkent') or fixed offset (e.g. '+05:00')",
    )
