"""Tests for the settings facade."""

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from scoped_settings.core.exceptions import (
    DuplicateScope,
    InvalidScope,
    SettingUndefined,
    StorageTypeUndefined,
    TypeMismatch,
    UnsupportedValueType,
)
from scoped_settings.core.facade import Settings
from scoped_settings.core.repository import SettingRepository
from scoped_settings.database import Base, enable_sqlite_savepoints
from scoped_settings.models.setting import SettingRecord
from scoped_settings.models.storage_type import StorageType


def test_default_value_round_trip(settings):
    """Scenario: a default value is read back without channel or locale."""
    settings.set("page_size", 20)
    assert settings.get("page_size") == 20


def test_channel_override(settings):
    """Scenario: a channel override applies only to its channel."""
    settings.set("page_size", 20)
    settings.set("page_size", 50, channel="mobile")

    assert settings.get("page_size", channel="mobile") == 50
    assert settings.get("page_size", channel="web") == 20
    assert settings.get("page_size") == 20


def test_locale_override_without_default(settings):
    """Scenario: a locale-only value does not leak to other locales."""
    settings.set("banner_text", "Welcome", locale="fr_FR")

    assert settings.get("banner_text", locale="fr_FR") == "Welcome"
    assert settings.get("banner_text", locale="en_US") == ""
    assert settings.get("banner_text", locale="en_US", default="Hello") == "Hello"
    assert settings.has("banner_text", locale="en_US") is False


def test_structured_value_on_integer_path(settings):
    """Scenario: a path typed integer refuses a map."""
    settings.set("page_size", 20)
    with pytest.raises(TypeMismatch):
        settings.set("page_size", {"size": 20}, channel="mobile")
    with pytest.raises(TypeMismatch):
        settings.set("page_size", 20.5)
    assert settings.get("page_size", channel="mobile") == 20


def test_explicit_type_must_match_path(settings):
    """Test that an explicit type cannot re-type an established path."""
    settings.set("page_size", 20)
    with pytest.raises(TypeMismatch):
        settings.set("page_size", "20", storage_type="text")


def test_all_four_tiers(settings):
    """Test precedence through the facade."""
    settings.set("page_size", 4)
    settings.set("page_size", 3, locale="fr_FR")
    settings.set("page_size", 2, channel="mobile")
    settings.set("page_size", 1, channel="mobile", locale="fr_FR")

    assert settings.get("page_size", "mobile", "fr_FR") == 1
    assert settings.get("page_size", "mobile", "de_DE") == 2
    assert settings.get("page_size", "web", "fr_FR") == 3
    assert settings.get("page_size", "web", "de_DE") == 4
    assert settings.get("page_size") == 4

    settings.delete("page_size", "mobile", "fr_FR")
    assert settings.get("page_size", "mobile", "fr_FR") == 2


def test_update_in_place(settings, repository):
    """Test that writing the same scope updates its record."""
    first = settings.set("page_size", 20, channel="mobile")
    second = settings.set("page_size", 30, channel="mobile")

    assert first is second
    assert repository.count_for_path("acme", "catalog", "page_size") == 1
    assert settings.get("page_size", channel="mobile") == 30


def test_undefined_with_required_value(repository):
    """Test that a strict handle raises on unset paths."""
    strict = Settings("acme", "catalog", repository, require_value=True)
    with pytest.raises(SettingUndefined):
        strict.get("page_size")
    with pytest.raises(SettingUndefined):
        strict.get("page_size", default=5)

    strict.set("page_size", 5)
    assert strict.get("page_size") == 5


def test_unset_falls_back_to_defaults(settings):
    """Test default ordering for unset paths."""
    assert settings.get("unknown") is None
    assert settings.get("unknown", default=0) == 0

    settings.set_storage_type("enabled", StorageType.BOOLEAN)
    assert settings.get("enabled") is False


def test_first_write_infers_type(settings):
    """Test that the first write fixes the path type."""
    assert settings.get_storage_type("launch_date") is None
    settings.set("launch_date", date(2024, 9, 1), locale="fr_FR")
    assert settings.get_storage_type("launch_date") is StorageType.DATE

    with pytest.raises(TypeMismatch):
        settings.set("launch_date", "2024-09-01", channel="mobile")


def test_unsupported_value(settings):
    """Test that unclassifiable values are refused."""
    with pytest.raises(UnsupportedValueType):
        settings.set("callback", lambda: None)
    assert settings.get_storage_type("callback") is None


def test_set_storage_type_before_first_write(settings):
    """Test declaring a type explicitly."""
    settings.set_storage_type("ratio", "float")
    with pytest.raises(TypeMismatch):
        settings.set("ratio", 1)
    settings.set("ratio", 1.0)
    assert settings.get("ratio") == 1.0


def test_set_storage_type_with_records(settings):
    """Test that a path with records cannot be re-typed."""
    settings.set("page_size", 20)
    settings.set_storage_type("page_size", StorageType.INTEGER)
    with pytest.raises(TypeMismatch):
        settings.set_storage_type("page_size", StorageType.TEXT)


def test_set_storage_type_unknown_tag(settings):
    """Test that unknown tags are refused."""
    with pytest.raises(StorageTypeUndefined):
        settings.set_storage_type("page_size", "decimal")


def test_path_type_survives_deletions(settings):
    """Test that removing overrides keeps the path type."""
    settings.set("page_size", 50, channel="mobile")
    assert settings.delete("page_size", channel="mobile") is True
    assert settings.has("page_size", channel="mobile") is False
    assert settings.get_storage_type("page_size") is StorageType.INTEGER

    with pytest.raises(TypeMismatch):
        settings.set("page_size", "fifty", locale="fr_FR")

    # No record left, so the path may be re-declared
    settings.set_storage_type("page_size", StorageType.TEXT)
    settings.set("page_size", "fifty", locale="fr_FR")
    assert settings.get("page_size", locale="fr_FR") == "fifty"


def test_delete(settings):
    """Test removing overrides."""
    settings.set("page_size", 20)
    assert settings.delete("page_size", channel="mobile") is False
    with pytest.raises(ValueError):
        settings.delete("page_size")
    assert settings.get("page_size") == 20


def test_get_all(settings):
    """Test resolving every path of a plugin."""
    settings.set("page_size", 20)
    settings.set("page_size", 50, channel="mobile")
    settings.set("banner_text", "Welcome", locale="fr_FR")

    assert settings.get_all() == {"page_size": 20}
    assert settings.get_all(channel="mobile", locale="fr_FR") == {
        "page_size": 50,
        "banner_text": "Welcome",
    }


def test_other_plugin_is_isolated(settings, repository):
    """Test that handles only see their own (vendor, plugin)."""
    settings.set("page_size", 20)
    shipping = Settings("acme", "shipping", repository)
    assert shipping.get("page_size") is None
    shipping.set("page_size", "large")
    assert settings.get("page_size") == 20


def test_alias(settings):
    """Test the string form of the handle."""
    assert settings.alias == "acme.catalog"


def test_registered_paths(registry, repository):
    """Test declared types and defaults from the alias registry."""
    catalog = registry.settings("catalog", repository)

    assert catalog.get("page_size") == 10
    assert catalog.get_storage_type("page_size") is None
    assert catalog.get_declared_type("page_size") is StorageType.INTEGER
    assert catalog.get_all() == {"page_size": 10}

    with pytest.raises(TypeMismatch):
        catalog.set("page_size", "ten")
    catalog.set("page_size", 25)
    assert catalog.get("page_size") == 25
    assert catalog.get("launch_date") is None


def test_locale_too_long(settings):
    """Test that locales longer than five characters are refused."""
    with pytest.raises(InvalidScope):
        settings.set("banner_text", "Hi", locale="en_US_POSIX")
    assert settings.get_storage_type("banner_text") is None

    settings.set("banner_text", "Hi", locale="en_US")
    assert settings.get("banner_text", locale="en_US") == "Hi"


def test_duplicate_scope_keeps_pending_work(settings, repository, test_db_session):
    """Test that a refused duplicate leaves the rest of the transaction alone."""
    settings.set("banner_text", "Welcome")
    test_db_session.commit()

    settings.set("page_size", 20)
    duplicate = SettingRecord(vendor="acme", plugin="catalog", path="banner_text")
    duplicate.set_value("Bienvenue")
    with pytest.raises(DuplicateScope):
        repository.save(duplicate)

    assert settings.get("page_size") == 20
    assert settings.get_storage_type("page_size") is StorageType.INTEGER
    test_db_session.commit()
    assert settings.get("banner_text") == "Welcome"
    assert settings.get("page_size") == 20


@pytest.fixture
def shared_db(tmp_path):
    """Two independent sessions on one SQLite file."""
    engine = create_engine(f"sqlite:///{tmp_path / 'shared.db'}")
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)
    first, second = Session(), Session()
    yield first, second
    first.close()
    second.close()
    engine.dispose()


def _read_before_commit(monkeypatch, repository, method):
    """Make the next lookup miss, as if it ran before the other session committed."""
    lookup = getattr(repository, method)
    calls = []

    def stale_once(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return None
        return lookup(*args, **kwargs)

    monkeypatch.setattr(repository, method, stale_once)


def test_concurrent_first_writes_on_distinct_scopes(shared_db, registry, monkeypatch):
    """Test that two sessions may both write a new path under different channels."""
    first, second = shared_db
    first_catalog = registry.settings("catalog", SettingRepository(first))
    second_repository = SettingRepository(second)
    second_catalog = registry.settings("catalog", second_repository)
    _read_before_commit(monkeypatch, second_repository, "get_path_type")

    first_catalog.set("page_size", 50, channel="mobile")
    first.commit()
    second_catalog.set("page_size", 60, channel="web")
    second.commit()

    assert second_catalog.get("page_size", channel="mobile") == 50
    assert second_catalog.get("page_size", channel="web") == 60
    assert second_catalog.get_storage_type("page_size") is StorageType.INTEGER


def test_concurrent_first_writes_on_one_scope(shared_db, registry, monkeypatch):
    """Test that the session losing a scope gets DuplicateScope."""
    first, second = shared_db
    first_catalog = registry.settings("catalog", SettingRepository(first))
    second_repository = SettingRepository(second)
    second_catalog = registry.settings("catalog", second_repository)
    _read_before_commit(monkeypatch, second_repository, "get_path_type")
    _read_before_commit(monkeypatch, second_repository, "find_one")

    first_catalog.set("page_size", 50, channel="mobile")
    first.commit()
    with pytest.raises(DuplicateScope):
        second_catalog.set("page_size", 60, channel="mobile")
    second.rollback()

    assert second_catalog.get("page_size", channel="mobile") == 50


def test_concurrent_first_writes_with_other_types(shared_db, monkeypatch):
    """Test that the type recorded by the first session wins."""
    first, second = shared_db
    first_settings = Settings("acme", "catalog", SettingRepository(first))
    second_repository = SettingRepository(second)
    second_settings = Settings("acme", "catalog", second_repository)
    _read_before_commit(monkeypatch, second_repository, "get_path_type")

    first_settings.set("page_size", 50, channel="mobile")
    first.commit()
    with pytest.raises(TypeMismatch):
        second_settings.set("page_size", "fifty", channel="web")
    second.rollback()

    assert second_settings.has("page_size", channel="web") is False
    assert second_settings.get_storage_type("page_size") is StorageType.INTEGER
