"""Pydantic models for field catalogs.

a field is anything a user can pick as a column, filter on, or group by.
built-ins come from the entity registry, custom ones from whatever
custom field registry the engine was constructed with.
"""

from collections.abc import Iterator
from enum import Enum

from pydantic import BaseModel, Field

# custom keys live under their own namespace so they can't shadow a built-in.
# built-in keys are plain identifiers and never contain a dot
CUSTOM_FIELD_PREFIX = "custom."


class FieldKind(str, Enum):
    """Where a field definition came from."""

    BUILT_IN = "built_in"
    CUSTOM = "custom"


class FieldType(str, Enum):
    """Declared data type of a field.

    mostly informational - comparisons coerce values at evaluation time
    anyway - but it's useful for the presentation layer and the cli.
    """

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class FieldDefinition(BaseModel):
    """A selectable column of an entity."""

    key: str
    label: str
    kind: FieldKind = FieldKind.BUILT_IN
    data_type: FieldType = FieldType.TEXT

    @property
    def is_custom(self) -> bool:
        return self.kind == FieldKind.CUSTOM


def custom_field_key(raw_key: str) -> str:
    """Namespace a registry key so it can't collide with a built-in."""
    if raw_key.startswith(CUSTOM_FIELD_PREFIX):
        return raw_key
    return f"{CUSTOM_FIELD_PREFIX}{raw_key}"


def strip_custom_prefix(key: str) -> str:
    """Inverse of custom_field_key - the key as the registry knows it."""
    if key.startswith(CUSTOM_FIELD_PREFIX):
        return key[len(CUSTOM_FIELD_PREFIX):]
    return key


class ReportWarning(BaseModel):
    """A non-fatal condition surfaced alongside a result.

    kind uses the same vocabulary as ErrorKind so callers can switch on it.
    """

    kind: str
    message: str


class FieldCatalog(BaseModel):
    """The resolved list of fields for one entity.

    ordered: built-ins first, then custom fields in registry order. iterating
    yields FieldDefinitions so it can be used anywhere a plain list would be.
    """

    entity: str
    fields: list[FieldDefinition] = Field(default_factory=list)
    warnings: list[ReportWarning] = Field(default_factory=list)

    def __iter__(self) -> Iterator[FieldDefinition]:  # type: ignore[override]
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, key: object) -> bool:
        return any(f.key == key for f in self.fields)

    def keys(self) -> list[str]:
        return [f.key for f in self.fields]

    def get(self, key: str) -> FieldDefinition | None:
        """Get a field by key, None if it isn't in the catalog."""
        for field in self.fields:
            if field.key == key:
                return field
        return None

    @property
    def is_partial(self) -> bool:
        return bool(self.warnings)
