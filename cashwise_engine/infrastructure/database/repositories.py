"""Data access layer for persisted settings"""

import logging
from typing import Any, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from cashwise_engine.infrastructure.database.models import AppSetting
from cashwise_engine.domain.models import ReminderSettings
from cashwise_engine.domain.reminders import normalize_settings, settings_to_dict

logger = logging.getLogger(__name__)

REMINDER_SETTINGS_KEY = "reminderSettings"


class SettingsRepository:
    """Key-value settings store"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[Any]:
        """Stored value for key, or None when absent"""
        row = self.db.get(AppSetting, key)
        return row.value if row is not None else None

    def put(self, key: str, value: Any) -> None:
        """Insert or replace a value (caller commits)"""
        row = self.db.get(AppSetting, key)
        if row is None:
            self.db.add(AppSetting(key=key, value=value))
        else:
            row.value = value
        self.db.flush()


class ReminderSettingsStore:
    """Reminder preferences on top of the settings store"""

    def __init__(self, repository: SettingsRepository):
        self.repository = repository

    def load(self) -> ReminderSettings:
        """Stored settings, or defaults when missing, corrupt or unreadable"""
        try:
            raw = self.repository.get(REMINDER_SETTINGS_KEY)
        except SQLAlchemyError as e:
            logger.error(f"Error loading reminder settings: {e}")
            self.repository.db.rollback()
            return ReminderSettings()
        return normalize_settings(raw)

    def save(self, settings: ReminderSettings) -> ReminderSettings:
        """Normalize, persist and return what was stored"""
        normalized = normalize_settings(settings_to_dict(settings))
        self.repository.put(REMINDER_SETTINGS_KEY, settings_to_dict(normalized))
        return normalized
