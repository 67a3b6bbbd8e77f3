"""Database models."""

from scoped_settings.models.storage_type import StorageType
from scoped_settings.models.setting import SettingRecord, SettingPathType

__all__ = [
    "StorageType",
    "SettingRecord",
    "SettingPathType",
]
