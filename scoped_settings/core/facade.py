"""Typed access to the settings of one (vendor, plugin) pair."""

import logging
from typing import Any, Dict, Mapping, Optional

from scoped_settings.core import codec
from scoped_settings.core.exceptions import InvalidScope, SettingUndefined, TypeMismatch
from scoped_settings.core.registry import PathDefinition
from scoped_settings.core.repository import SettingRepository
from scoped_settings.core.resolution import resolve_record
from scoped_settings.models.setting import LOCALE_MAX_LENGTH, SettingRecord
from scoped_settings.models.storage_type import StorageType

logger = logging.getLogger(__name__)

_MISSING = object()


class Settings:
    """
    Settings handle bound to a vendor and plugin.

    Values are resolved across channel/locale overrides on read. Every path
    has one storage type, fixed by its first write (or by
    :meth:`set_storage_type`), which all of its overrides share.
    """

    def __init__(
        self,
        vendor: str,
        plugin: str,
        repository: SettingRepository,
        require_value: bool = False,
        paths: Optional[Mapping[str, PathDefinition]] = None,
    ):
        self.vendor = vendor
        self.plugin = plugin
        self.repository = repository
        self.require_value = require_value
        self.paths = paths or {}

    @property
    def alias(self) -> str:
        return f"{self.vendor}.{self.plugin}"

    def get_storage_type(self, path: str) -> Optional[StorageType]:
        """Storage type established for a path by a write or set_storage_type, if any."""
        path_type = self.repository.get_path_type(self.vendor, self.plugin, path)
        if path_type is None:
            return None
        return codec.to_storage_type(path_type.storage_type)

    def get_declared_type(self, path: str) -> Optional[StorageType]:
        """Storage type the alias registry declares for a path, if any."""
        definition = self.paths.get(path)
        return definition.storage_type if definition is not None else None

    def set_storage_type(self, path: str, storage_type: Any) -> StorageType:
        """Declare the storage type of a path before its first value is written."""
        storage_type = codec.to_storage_type(storage_type)
        current = self.repository.get_path_type(self.vendor, self.plugin, path)
        if current is not None and current.storage_type != storage_type.value:
            if self.repository.count_for_path(self.vendor, self.plugin, path):
                raise TypeMismatch(
                    f"{self.alias}.{path} is already stored as {current.storage_type}"
                )
            logger.info(f"Re-typing {self.alias}.{path} from {current.storage_type} to {storage_type.value}")
        self.repository.set_path_type(self.vendor, self.plugin, path, storage_type.value)
        return storage_type

    def _resolve(self, path: str, channel: Optional[str], locale: Optional[str]) -> Optional[SettingRecord]:
        records = self.repository.find_by_scope_prefix(self.vendor, self.plugin, path)
        return resolve_record(records, channel=channel, locale=locale)

    def has(self, path: str, channel: Optional[str] = None, locale: Optional[str] = None) -> bool:
        """Whether a stored record resolves for the scope (declared defaults do not count)."""
        return self._resolve(path, channel, locale) is not None

    def get(
        self,
        path: str,
        channel: Optional[str] = None,
        locale: Optional[str] = None,
        default: Any = _MISSING,
    ) -> Any:
        """
        Effective value of ``path`` for the channel and locale.

        When nothing is stored: raises SettingUndefined if this handle requires
        values, otherwise returns ``default``, the path's declared default, or
        the zero value of its storage type, in that order.
        """
        record = self._resolve(path, channel, locale)
        if record is not None:
            return codec.decode(record)

        if self.require_value:
            raise SettingUndefined(
                f"No value for {self.alias}.{path} (channel={channel!r}, locale={locale!r})"
            )
        if default is not _MISSING:
            return default
        definition = self.paths.get(path)
        if definition is not None and definition.has_default:
            return definition.default
        return codec.zero_value(self.get_storage_type(path) or self.get_declared_type(path))

    def get_all(self, channel: Optional[str] = None, locale: Optional[str] = None) -> Dict[str, Any]:
        """Effective values of every stored or declared path."""
        by_path: Dict[str, list] = {path: [] for path in self.paths}
        for record in self.repository.find_by_plugin(self.vendor, self.plugin):
            by_path.setdefault(record.path, []).append(record)

        values = {}
        for path, records in by_path.items():
            record = resolve_record(records, channel=channel, locale=locale)
            if record is not None:
                values[path] = codec.decode(record)
            elif path in self.paths and self.paths[path].has_default:
                values[path] = self.paths[path].default
        return values

    def set(
        self,
        path: str,
        value: Any,
        channel: Optional[str] = None,
        locale: Optional[str] = None,
        storage_type: Optional[Any] = None,
    ) -> SettingRecord:
        """
        Store ``value`` for exactly this channel/locale scope.

        The path's established type wins; a value (or explicit type) that does
        not fit it raises TypeMismatch. The first write of a path establishes
        its type, explicitly given or inferred from the value.
        """
        if locale is not None and len(locale) > LOCALE_MAX_LENGTH:
            raise InvalidScope(f"Locale {locale!r} is longer than {LOCALE_MAX_LENGTH} characters")
        if storage_type is not None:
            storage_type = codec.to_storage_type(storage_type)

        established = self.get_storage_type(path)
        path_type = established or self.get_declared_type(path)

        if path_type is not None:
            if storage_type is not None and storage_type is not path_type:
                raise TypeMismatch(
                    f"{self.alias}.{path} is stored as {path_type.value}, not {storage_type.value}"
                )
            storage_type = path_type
        elif storage_type is None:
            storage_type = codec.infer_type(value)

        codec.validate(storage_type, value)
        if established is None:
            self._establish(path, storage_type)

        record = self.repository.find_one(self.vendor, self.plugin, path, channel, locale)
        if record is None:
            record = SettingRecord(
                vendor=self.vendor,
                plugin=self.plugin,
                path=path,
                channel_code=channel,
                locale_code=locale,
            )
        codec.encode(record, storage_type, value)

        self.repository.save(record)
        logger.debug(f"Set {self.alias}.{path} channel={channel!r} locale={locale!r}")
        return record

    def _establish(self, path: str, storage_type: StorageType) -> None:
        # Another session may have written the path first; its type then wins
        recorded = self.repository.add_path_type(self.vendor, self.plugin, path, storage_type.value)
        if recorded.storage_type != storage_type.value:
            raise TypeMismatch(
                f"{self.alias}.{path} is stored as {recorded.storage_type}, not {storage_type.value}"
            )
        logger.info(f"Established {self.alias}.{path} as {storage_type.value}")

    def delete(self, path: str, channel: Optional[str] = None, locale: Optional[str] = None) -> bool:
        """
        Remove one override. Returns False if there was none.

        The default record is not removable here, and the path keeps its type.
        """
        if channel is None and locale is None:
            raise ValueError(f"The default value of {self.alias}.{path} cannot be removed")
        record = self.repository.find_one(self.vendor, self.plugin, path, channel, locale)
        if record is None:
            return False
        self.repository.delete(record)
        logger.info(f"Removed {self.alias}.{path} override channel={channel!r} locale={locale!r}")
        return True
