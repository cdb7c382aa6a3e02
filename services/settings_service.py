from typing import Any, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from core.exceptions import CollaboratorError
from models.setting import Setting

AUTO_CLOSE_SHIFTS = "auto_close_shifts"


class SettingsRepository(Protocol):
    def get_setting(self, key: str, dealership_id: Optional[str]) -> Any:
        """Typed override for (key, dealership), or None when not configured."""
        ...


class SqlSettingsRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_setting(self, key: str, dealership_id: Optional[str]) -> Any:
        statement = select(Setting).where(Setting.key == key)
        if dealership_id is None:
            statement = statement.where(Setting.dealership_id.is_(None))
        else:
            statement = statement.where(Setting.dealership_id == dealership_id)

        try:
            setting: Setting | None = self.session.exec(statement).first()
        except SQLAlchemyError as e:
            raise CollaboratorError(
                f"Could not read setting {key!r} for dealership {dealership_id}: {e}"
            ) from e

        if setting is None:
            return None
        return setting.typed_value()


class TenantSettingsGate:
    """Per-dealership feature switches with a caller-supplied default."""

    def __init__(self, settings: SettingsRepository):
        self.settings = settings

    def get_with_fallback(self, key: str, dealership_id: str, fallback: Any) -> Any:
        value = self.settings.get_setting(key, dealership_id)
        return fallback if value is None else value

    def is_enabled(self, key: str, dealership_id: str, fallback: bool) -> bool:
        # A missing override is the common case, not an error
        return bool(self.get_with_fallback(key, dealership_id, fallback))
