"""Repository for key/value planner settings."""

import logging
from typing import Any, Dict, Mapping

from sqlalchemy.orm import Session

from battleplan.database.models import SettingDB

logger = logging.getLogger(__name__)


class SettingsRepository:
    """Settings stored one row per key; values must be JSON-serializable."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting value, or `default` when it was never written."""
        setting_db = self.db.query(SettingDB).filter(SettingDB.key == key).first()
        return setting_db.value if setting_db else default

    def get_all(self) -> Dict[str, Any]:
        """Every stored setting."""
        return {s.key: s.value for s in self.db.query(SettingDB).all()}

    def _write(self, key: str, value: Any) -> None:
        setting_db = self.db.query(SettingDB).filter(SettingDB.key == key).first()
        if setting_db:
            setting_db.value = value
        else:
            self.db.add(SettingDB(key=key, value=value))

    def set(self, key: str, value: Any) -> None:
        """Write one setting."""
        try:
            self._write(key, value)
            self.db.commit()
            logger.debug(f"Set setting {key}={value!r}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to set setting {key}: {type(e).__name__}: {str(e)}")
            raise

    def set_many(self, values: Mapping[str, Any]) -> None:
        """Write several settings in one commit."""
        try:
            for key, value in values.items():
                self._write(key, value)
            self.db.commit()
            logger.debug(f"Set settings {sorted(values)}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to set settings: {type(e).__name__}: {str(e)}")
            raise

    def replace_all(self, values: Mapping[str, Any], commit: bool = True) -> int:
        """Clear every setting and write `values`."""
        try:
            self.db.query(SettingDB).delete(synchronize_session="fetch")
            self.db.add_all([SettingDB(key=k, value=v) for k, v in values.items()])
            if commit:
                self.db.commit()
            logger.debug(f"Replaced settings with {len(values)} keys")
            return len(values)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to replace settings: {type(e).__name__}: {str(e)}")
            raise
