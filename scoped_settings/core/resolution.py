"""Pick the effective setting record among channel/locale overrides."""

from typing import Dict, Iterable, List, Optional, Tuple

from scoped_settings.core.exceptions import DuplicateScope
from scoped_settings.models.setting import SettingRecord

OverrideKey = Tuple[Optional[str], Optional[str]]


def precedence_keys(channel: Optional[str] = None, locale: Optional[str] = None) -> List[OverrideKey]:
    """
    Override keys to look for, most specific first.

    1. channel + locale
    2. channel only
    3. locale only
    4. global default

    Tiers that need a channel or locale the request does not carry are skipped.
    """
    keys: List[OverrideKey] = []
    if channel is not None and locale is not None:
        keys.append((channel, locale))
    if channel is not None:
        keys.append((channel, None))
    if locale is not None:
        keys.append((None, locale))
    keys.append((None, None))
    return keys


def index_by_override(records: Iterable[SettingRecord]) -> Dict[OverrideKey, SettingRecord]:
    """Map records by (channel, locale), refusing duplicates."""
    by_key: Dict[OverrideKey, SettingRecord] = {}
    for record in records:
        key = record.override_key
        if key in by_key:
            raise DuplicateScope(
                f"Two settings for {record.vendor}.{record.plugin}.{record.path} "
                f"with channel={key[0]!r} locale={key[1]!r}"
            )
        by_key[key] = record
    return by_key


def resolve_record(
    records: Iterable[SettingRecord],
    channel: Optional[str] = None,
    locale: Optional[str] = None,
) -> Optional[SettingRecord]:
    """
    Return the record that applies to the requested channel and locale.

    ``records`` are all records of one (vendor, plugin, path). Returns None
    when neither an override nor a default exists. Locales match exactly:
    a "fr" record does not answer a "fr_FR" request.
    """
    by_key = index_by_override(records)
    for key in precedence_keys(channel, locale):
        record = by_key.get(key)
        if record is not None:
            return record
    return None
