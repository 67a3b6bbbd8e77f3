"""Setting models - typed values stored under a (vendor, plugin, path) scope."""

from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)

from scoped_settings.core import codec
from scoped_settings.database import Base


LOCALE_MAX_LENGTH = 5


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SettingRecord(Base):
    """One stored value for a scope, optionally overridden per channel and/or locale."""

    __tablename__ = "settings_setting"

    id = Column(Integer, primary_key=True, index=True)
    vendor = Column(String(255), nullable=False)
    plugin = Column(String(255), nullable=False)
    path = Column(String(255), nullable=False)
    channel_code = Column(String(255), nullable=True)
    locale_code = Column(String(LOCALE_MAX_LENGTH), nullable=True)
    storage_type = Column(String(10), nullable=False)

    # Only the slot named by storage_type is ever filled (see scoped_settings.core.codec)
    text_value = Column(Text, nullable=True)
    boolean_value = Column(Boolean, nullable=True)
    integer_value = Column(BigInteger, nullable=True)
    float_value = Column(Float, nullable=True)
    datetime_value = Column(DateTime, nullable=True)  # UTC
    date_value = Column(Date, nullable=True)
    json_value = Column(JSON(none_as_null=True), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # NULLs never collide in a plain unique constraint, so each combination of
    # the override axis gets its own partial unique index.
    __table_args__ = (
        Index("idx_setting_scope", "vendor", "plugin", "path"),
        Index(
            "uq_setting_channel_locale",
            "vendor", "plugin", "path", "channel_code", "locale_code",
            unique=True,
            sqlite_where=text("channel_code IS NOT NULL AND locale_code IS NOT NULL"),
            postgresql_where=text("channel_code IS NOT NULL AND locale_code IS NOT NULL"),
        ),
        Index(
            "uq_setting_channel",
            "vendor", "plugin", "path", "channel_code",
            unique=True,
            sqlite_where=text("channel_code IS NOT NULL AND locale_code IS NULL"),
            postgresql_where=text("channel_code IS NOT NULL AND locale_code IS NULL"),
        ),
        Index(
            "uq_setting_locale",
            "vendor", "plugin", "path", "locale_code",
            unique=True,
            sqlite_where=text("channel_code IS NULL AND locale_code IS NOT NULL"),
            postgresql_where=text("channel_code IS NULL AND locale_code IS NOT NULL"),
        ),
        Index(
            "uq_setting_default",
            "vendor", "plugin", "path",
            unique=True,
            sqlite_where=text("channel_code IS NULL AND locale_code IS NULL"),
            postgresql_where=text("channel_code IS NULL AND locale_code IS NULL"),
        ),
    )

    def get_value(self) -> Any:
        """Decoded value of the active slot."""
        return codec.decode(self)

    def set_value(self, value: Any, storage_type: Optional[Any] = None) -> None:
        """
        Store a value, switching the active slot.

        Without an explicit storage type the record keeps its current one, or
        infers it from the value when it has none yet.
        """
        if storage_type is None:
            storage_type = self.storage_type or codec.infer_type(value)
        codec.encode(self, storage_type, value)

    @property
    def scope(self) -> Tuple[str, str, str, Optional[str], Optional[str]]:
        return (self.vendor, self.plugin, self.path, self.channel_code, self.locale_code)

    @property
    def override_key(self) -> Tuple[Optional[str], Optional[str]]:
        return (self.channel_code, self.locale_code)

    def __repr__(self) -> str:
        return (
            f"<SettingRecord(id={self.id}, path='{self.vendor}.{self.plugin}.{self.path}', "
            f"channel={self.channel_code!r}, locale={self.locale_code!r}, type='{self.storage_type}')>"
        )


class SettingPathType(Base):
    """Storage type established for a path, shared by all of its records."""

    __tablename__ = "settings_path_type"

    id = Column(Integer, primary_key=True, index=True)
    vendor = Column(String(255), nullable=False)
    plugin = Column(String(255), nullable=False)
    path = Column(String(255), nullable=False)
    storage_type = Column(String(10), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("vendor", "plugin", "path", name="uq_setting_path_type"),
    )

    def __repr__(self) -> str:
        return f"<SettingPathType(path='{self.vendor}.{self.plugin}.{self.path}', type='{self.storage_type}')>"
