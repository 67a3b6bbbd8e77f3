"""Settings endpoints."""

from functools import lru_cache
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from scoped_settings.config import config
from scoped_settings.core import codec
from scoped_settings.core.exceptions import (
    DuplicateScope,
    InvalidScope,
    SettingUndefined,
    TypeMismatch,
    UnknownAlias,
    UnsupportedValueType,
)
from scoped_settings.core.facade import Settings
from scoped_settings.core.registry import SettingsRegistry
from scoped_settings.core.repository import SettingRepository
from scoped_settings.database import get_db
from scoped_settings.models.setting import LOCALE_MAX_LENGTH
from scoped_settings.models.storage_type import StorageType

router = APIRouter()


class SettingWrite(BaseModel):
    """Setting write schema."""

    value: Any
    type: Optional[Literal["text", "boolean", "integer", "float", "json", "date", "datetime"]] = None
    channel: Optional[str] = None
    locale: Optional[str] = Field(default=None, max_length=LOCALE_MAX_LENGTH)


@lru_cache()
def get_registry() -> SettingsRegistry:
    """Alias registry loaded once from SETTINGS_REGISTRY_FILE."""
    return SettingsRegistry.from_yaml(config.settings_registry_file)


def require_token(x_settings_token: Optional[str] = Header(default=None)):
    """Guard write endpoints when API_TOKEN is configured."""
    if config.api_token and x_settings_token != config.api_token:
        raise HTTPException(status_code=401, detail="Invalid settings token")


def get_settings_handle(
    alias: str,
    db: Session = Depends(get_db),
    registry: SettingsRegistry = Depends(get_registry),
) -> Settings:
    try:
        return registry.settings(alias, SettingRepository(db), require_value=config.require_value)
    except UnknownAlias as e:
        raise HTTPException(status_code=404, detail=str(e))


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value or None


@router.get("/{alias}")
def get_all_settings(
    channel: Optional[str] = None,
    locale: Optional[str] = None,
    settings: Settings = Depends(get_settings_handle),
):
    """Get every effective value of an alias."""
    return settings.get_all(channel=_blank_to_none(channel), locale=_blank_to_none(locale))


@router.get("/{alias}/{path}")
def get_setting(
    path: str,
    channel: Optional[str] = None,
    locale: Optional[str] = None,
    settings: Settings = Depends(get_settings_handle),
):
    """Get the effective value of a setting."""
    channel, locale = _blank_to_none(channel), _blank_to_none(locale)
    try:
        value = settings.get(path, channel=channel, locale=locale)
    except SettingUndefined as e:
        raise HTTPException(status_code=404, detail=str(e))
    storage_type = settings.get_storage_type(path) or settings.get_declared_type(path)
    return {
        "path": path,
        "channel": channel,
        "locale": locale,
        "type": storage_type.value if storage_type else None,
        "value": value,
    }


@router.put("/{alias}/{path}")
def put_setting(
    path: str,
    data: SettingWrite,
    settings: Settings = Depends(get_settings_handle),
    _token=Depends(require_token),
):
    """Create or update a setting for one scope."""
    channel, locale = _blank_to_none(data.channel), _blank_to_none(data.locale)
    try:
        storage_type = data.type or settings.get_storage_type(path) or settings.get_declared_type(path)
        value = data.value
        # JSON bodies carry dates as strings; structured values arrive already decoded
        if storage_type and codec.to_storage_type(storage_type) is not StorageType.JSON:
            value = codec.coerce(storage_type, value)
        record = settings.set(path, value, channel=channel, locale=locale, storage_type=data.type)
    except (TypeMismatch, UnsupportedValueType, InvalidScope) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except DuplicateScope as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {
        "id": record.id,
        "path": path,
        "channel": channel,
        "locale": locale,
        "type": record.storage_type,
        "value": record.get_value(),
    }


@router.delete("/{alias}/{path}")
def delete_setting(
    path: str,
    channel: Optional[str] = None,
    locale: Optional[str] = None,
    settings: Settings = Depends(get_settings_handle),
    _token=Depends(require_token),
):
    """Remove a channel and/or locale override."""
    try:
        removed = settings.delete(path, channel=_blank_to_none(channel), locale=_blank_to_none(locale))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail="Setting override not found")
    return {"message": "Setting override deleted"}
