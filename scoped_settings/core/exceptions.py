"""Errors raised by the settings store."""


class SettingsError(Exception):
    """Base class for settings store errors."""


class UnsupportedValueType(SettingsError):
    """The value matches none of the supported storage types."""


class TypeMismatch(SettingsError):
    """The value cannot be stored under the requested storage type."""


class StorageTypeUndefined(SettingsError):
    """A record has no (or an unknown) storage type."""


class CorruptRecord(SettingsError):
    """A record has more than one value slot filled, or not the declared one."""


class SettingUndefined(SettingsError):
    """No record resolves for the requested scope and a value is required."""


class DuplicateScope(SettingsError):
    """Two records share the same (vendor, plugin, path, channel, locale)."""


class UnknownAlias(SettingsError):
    """The alias is not registered."""


class InvalidScope(SettingsError):
    """The channel or locale of a scope cannot be stored."""
