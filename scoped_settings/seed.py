"""Seed script for settings."""

import logging
import sys
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from scoped_settings.config import config
from scoped_settings.core.codec import coerce
from scoped_settings.core.exceptions import SettingsError
from scoped_settings.core.registry import SettingsRegistry
from scoped_settings.core.repository import SettingRepository
from scoped_settings.database import SessionLocal
from scoped_settings.logging_config import configure_logging
from scoped_settings.models.setting import LOCALE_MAX_LENGTH, SettingRecord

logger = logging.getLogger(__name__)


class SettingSeed(BaseModel):
    """One setting of a seed file."""

    alias: str
    path: str
    channel: Optional[str] = None
    locale: Optional[str] = Field(default=None, max_length=LOCALE_MAX_LENGTH)
    type: Literal["text", "boolean", "integer", "float", "json", "date", "datetime"] = "text"
    value: Any = None


def create_setting(seed: SettingSeed, registry: SettingsRegistry, repository: SettingRepository) -> SettingRecord:
    """Resolve the alias, coerce the value to the seed's type and store it."""
    settings = registry.settings(seed.alias, repository)
    value = coerce(seed.type, seed.value)
    return settings.set(
        seed.path,
        value,
        channel=seed.channel,
        locale=seed.locale,
        storage_type=seed.type,
    )


def load_seeds(data: dict) -> list:
    """Validate the "settings" list of a seed document."""
    return [SettingSeed(**entry) for entry in data.get("settings", [])]


def seed_settings(yaml_file: str, db: Optional[Session] = None, registry_file: Optional[str] = None) -> int:
    """
    Seed settings from a YAML file.

    The file may carry its own "aliases" section; otherwise ``registry_file``
    (default SETTINGS_REGISTRY_FILE) is used. All settings are written in one
    transaction.
    """
    with open(yaml_file, "r") as f:
        data = yaml.safe_load(f) or {}

    seeds = load_seeds(data)
    if not seeds:
        logger.warning(f"No settings found in {yaml_file}")
        return 0

    if "aliases" in data:
        registry = SettingsRegistry.from_mapping(data["aliases"])
    else:
        registry = SettingsRegistry.from_yaml(registry_file or config.settings_registry_file)

    owns_session = db is None
    db = db or SessionLocal()
    try:
        repository = SettingRepository(db)
        for seed in seeds:
            create_setting(seed, registry, repository)
            logger.info(f"Seeded {seed.alias}.{seed.path} channel={seed.channel!r} locale={seed.locale!r}")
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        if owns_session:
            db.close()

    logger.info(f"Successfully seeded {len(seeds)} settings")
    return len(seeds)


if __name__ == "__main__":
    configure_logging()
    if len(sys.argv) < 2:
        print("Usage: python -m scoped_settings.seed settings.yaml")
        sys.exit(1)
    try:
        seed_settings(sys.argv[1])
    except (SettingsError, ValidationError) as e:
        logger.error(f"Error seeding settings: {e}")
        sys.exit(1)
