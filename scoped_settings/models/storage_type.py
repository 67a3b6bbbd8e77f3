"""Storage type tags."""

import enum


class StorageType(str, enum.Enum):
    """Which value slot of a setting record is active."""

    TEXT = "text"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    DATETIME = "datetime"
    DATE = "date"
    JSON = "json"
