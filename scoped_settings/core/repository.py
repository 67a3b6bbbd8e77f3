"""Persistence of setting records and path types."""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scoped_settings.core.exceptions import DuplicateScope
from scoped_settings.models.setting import SettingPathType, SettingRecord, utcnow

logger = logging.getLogger(__name__)


def _matches(column, value: Optional[str]):
    return column.is_(None) if value is None else column == value


class SettingRepository:
    """Queries and writes settings through one SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_scope_prefix(self, vendor: str, plugin: str, path: str) -> List[SettingRecord]:
        """All records of a path: the default and every override."""
        return (
            self.db.query(SettingRecord)
            .filter(
                SettingRecord.vendor == vendor,
                SettingRecord.plugin == plugin,
                SettingRecord.path == path,
            )
            .order_by(SettingRecord.id)
            .all()
        )

    def find_by_plugin(self, vendor: str, plugin: str) -> List[SettingRecord]:
        """All records of a (vendor, plugin) pair, ordered by path."""
        return (
            self.db.query(SettingRecord)
            .filter(SettingRecord.vendor == vendor, SettingRecord.plugin == plugin)
            .order_by(SettingRecord.path, SettingRecord.id)
            .all()
        )

    def find_one(
        self,
        vendor: str,
        plugin: str,
        path: str,
        channel: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> Optional[SettingRecord]:
        """The record stored for exactly this scope, if any."""
        return (
            self.db.query(SettingRecord)
            .filter(
                SettingRecord.vendor == vendor,
                SettingRecord.plugin == plugin,
                SettingRecord.path == path,
                _matches(SettingRecord.channel_code, channel),
                _matches(SettingRecord.locale_code, locale),
            )
            .first()
        )

    def count_for_path(self, vendor: str, plugin: str, path: str) -> int:
        return (
            self.db.query(SettingRecord)
            .filter(
                SettingRecord.vendor == vendor,
                SettingRecord.plugin == plugin,
                SettingRecord.path == path,
            )
            .count()
        )

    def save(self, record: SettingRecord) -> SettingRecord:
        """
        Flush a new or modified record inside a savepoint.

        A unique index violation on the scope rolls back only that savepoint
        and is reported as DuplicateScope; the rest of the session's work is
        kept. Any other storage error propagates.
        """
        scope = record.scope
        record_id = record.id
        record.updated_at = utcnow()
        try:
            with self.db.begin_nested():
                self.db.add(record)
                self.db.flush()
        except IntegrityError:
            existing = self.find_one(*scope)
            if existing is not None and existing.id != record_id:
                logger.error(f"Duplicate setting scope {scope}")
                raise DuplicateScope(
                    f"A setting already exists for vendor={scope[0]!r} plugin={scope[1]!r} "
                    f"path={scope[2]!r} channel={scope[3]!r} locale={scope[4]!r}"
                ) from None
            raise
        return record

    def delete(self, record: SettingRecord) -> None:
        self.db.delete(record)
        self.db.flush()

    def get_path_type(self, vendor: str, plugin: str, path: str) -> Optional[SettingPathType]:
        return (
            self.db.query(SettingPathType)
            .filter(
                SettingPathType.vendor == vendor,
                SettingPathType.plugin == plugin,
                SettingPathType.path == path,
            )
            .first()
        )

    def add_path_type(self, vendor: str, plugin: str, path: str, storage_type: str) -> SettingPathType:
        """
        Record the storage type of a path seen for the first time.

        When another session recorded the path first, its row is returned
        unchanged and the caller decides whether the types agree.
        """
        path_type = SettingPathType(vendor=vendor, plugin=plugin, path=path, storage_type=storage_type)
        try:
            with self.db.begin_nested():
                self.db.add(path_type)
                self.db.flush()
        except IntegrityError:
            existing = self.get_path_type(vendor, plugin, path)
            if existing is None:
                raise
            logger.info(f"Path type of {vendor}.{plugin}.{path} already recorded as {existing.storage_type}")
            return existing
        return path_type

    def set_path_type(self, vendor: str, plugin: str, path: str, storage_type: str) -> SettingPathType:
        """Create or replace the storage type associated with a path."""
        path_type = self.get_path_type(vendor, plugin, path)
        if path_type is None:
            path_type = self.add_path_type(vendor, plugin, path, storage_type)
        if path_type.storage_type != storage_type:
            path_type.storage_type = storage_type
            self.db.flush()
        return path_type
