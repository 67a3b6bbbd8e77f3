"""Alias registry - short names for (vendor, plugin) pairs and their paths."""

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

import yaml

from scoped_settings.core.codec import coerce, to_storage_type
from scoped_settings.core.exceptions import UnknownAlias
from scoped_settings.models.storage_type import StorageType

logger = logging.getLogger(__name__)

ALIAS_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

NO_DEFAULT = object()


@dataclass(frozen=True)
class PathDefinition:
    """A path declared for an alias, with an optional type and default value."""

    path: str
    storage_type: Optional[StorageType] = None
    default: Any = NO_DEFAULT

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT


@dataclass(frozen=True)
class AliasDefinition:
    """What an alias stands for."""

    alias: str
    vendor: str
    plugin: str
    paths: Mapping[str, PathDefinition] = field(default_factory=dict)

    @property
    def declared_paths(self) -> List[str]:
        return list(self.paths)

    def as_dict(self) -> Dict[str, str]:
        return {"vendor": self.vendor, "plugin": self.plugin}


def _parse_path(path: str, data: Any) -> PathDefinition:
    # Paths are given either bare (list entry / null) or as {type, default}
    if not isinstance(data, Mapping):
        return PathDefinition(path=path)

    storage_type = data.get("type")
    if storage_type is not None:
        storage_type = to_storage_type(storage_type)

    default = NO_DEFAULT
    if "default" in data and data["default"] is not None:
        default = data["default"]
        if storage_type is not None:
            default = coerce(storage_type, default)
    return PathDefinition(path=path, storage_type=storage_type, default=default)


class SettingsRegistry:
    """
    Read-only lookup of aliases.

    Built once (usually from YAML) and shared; nothing mutates it afterwards.
    """

    def __init__(self, definitions: Optional[List[AliasDefinition]] = None):
        aliases: Dict[str, AliasDefinition] = {}
        for definition in definitions or []:
            if not ALIAS_PATTERN.match(definition.alias):
                raise ValueError(f"Invalid settings alias: {definition.alias!r}")
            if definition.alias in aliases:
                raise ValueError(f"Settings alias registered twice: {definition.alias!r}")
            aliases[definition.alias] = definition
        self._aliases = MappingProxyType(aliases)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SettingsRegistry":
        """
        Build from a mapping shaped like::

            catalog:
              vendor: acme
              plugin: catalog
              paths:
                page_size: {type: integer, default: 20}
                banner_text: {type: text}
        """
        definitions = []
        for alias, entry in (data or {}).items():
            raw_paths = entry.get("paths") or {}
            if isinstance(raw_paths, list):
                raw_paths = {path: None for path in raw_paths}
            paths = {path: _parse_path(path, spec) for path, spec in raw_paths.items()}
            definitions.append(
                AliasDefinition(
                    alias=alias,
                    vendor=entry["vendor"],
                    plugin=entry["plugin"],
                    paths=MappingProxyType(paths),
                )
            )
        return cls(definitions)

    @classmethod
    def from_yaml(cls, yaml_file: str) -> "SettingsRegistry":
        """Load the "aliases" section of a YAML file."""
        with open(yaml_file, "r") as f:
            data = yaml.safe_load(f) or {}
        registry = cls.from_mapping(data.get("aliases", {}))
        logger.info(f"Loaded {len(registry)} settings aliases from {yaml_file}")
        return registry

    def resolve_alias(self, alias: str) -> AliasDefinition:
        try:
            return self._aliases[alias]
        except KeyError:
            raise UnknownAlias(f"Settings alias {alias!r} is not registered") from None

    def settings(self, alias: str, repository, require_value: bool = False):
        """Settings handle bound to the alias's (vendor, plugin)."""
        from scoped_settings.core.facade import Settings

        definition = self.resolve_alias(alias)
        return Settings(
            definition.vendor,
            definition.plugin,
            repository,
            require_value=require_value,
            paths=definition.paths,
        )

    def aliases(self) -> List[AliasDefinition]:
        return list(self._aliases.values())

    def __contains__(self, alias: str) -> bool:
        return alias in self._aliases

    def __len__(self) -> int:
        return len(self._aliases)
