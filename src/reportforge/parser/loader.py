"""YAML loading for entity catalogs and report definitions.

the entity registry is the source of truth for which entities exist and
what their built-in fields are. it ships with a default set that mirrors the
crm the builder was written for, and can be replaced from yaml so a
deployment can describe its own tables without touching code.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from reportforge.errors import InvalidDefinitionError, UnknownEntityError
from reportforge.models.field import (
    CUSTOM_FIELD_PREFIX,
    FieldDefinition,
    FieldKind,
    FieldType,
)
from reportforge.models.report import ReportDefinition


class EntitySpec(BaseModel):
    """An entity the engine can report on."""

    name: str
    label: str | None = None
    table: str | None = None  # defaults to the entity name
    fields: list[FieldDefinition] = Field(default_factory=list)

    def get_table_name(self) -> str:
        return self.table or self.name


# every entity gets these - they're on every table in the store
_COMMON_FIELDS = [
    FieldDefinition(key="id", label="ID"),
    FieldDefinition(key="created_at", label="Created At", data_type=FieldType.DATE),
    FieldDefinition(key="updated_at", label="Updated At", data_type=FieldType.DATE),
]

_DEFAULT_ENTITIES: dict[str, tuple[str, list[FieldDefinition]]] = {
    "companies": (
        "Companies",
        [
            FieldDefinition(key="name", label="Name"),
            FieldDefinition(key="website", label="Website"),
            FieldDefinition(key="industry", label="Industry"),
            FieldDefinition(key="size", label="Size"),
        ],
    ),
    "people": (
        "People",
        [
            FieldDefinition(key="name", label="Name"),
            FieldDefinition(key="email", label="Email"),
            FieldDefinition(key="phone", label="Phone"),
            FieldDefinition(key="position", label="Position"),
        ],
    ),
    "talents": (
        "Talents",
        [
            FieldDefinition(key="name", label="Name"),
            FieldDefinition(key="skills", label="Skills"),
            FieldDefinition(key="experience", label="Experience", data_type=FieldType.NUMBER),
            FieldDefinition(key="education", label="Education"),
        ],
    ),
    # no entity-specific fields, only the common ones
    "dropdown_options": ("Dropdown Options", []),
}


class EntityRegistry:
    """Registry of supported entities and their built-in fields.

    the set of entities is closed - anything not registered here is an
    UnknownEntity, never an empty catalog.
    """

    def __init__(self, entities: list[EntitySpec] | None = None) -> None:
        self.entities: dict[str, EntitySpec] = {}
        for entity in entities or []:
            self.register(entity)

    @classmethod
    def default(cls) -> "EntityRegistry":
        """Registry with the built-in crm entities."""
        specs = [
            EntitySpec(
                name=name,
                label=label,
                fields=[f.model_copy() for f in _COMMON_FIELDS] + fields,
            )
            for name, (label, fields) in _DEFAULT_ENTITIES.items()
        ]
        return cls(specs)

    @classmethod
    def from_file(cls, path: str | Path) -> "EntityRegistry":
        registry = cls()
        registry.load_file(path)
        return registry

    def register(self, entity: EntitySpec) -> None:
        """Add an entity, checking its field keys.

        built-ins can't use the custom prefix, otherwise the namespacing
        that keeps custom fields from colliding stops meaning anything.
        """
        if entity.name in self.entities:
            raise ValueError(f"Duplicate entity: {entity.name}")

        seen: set[str] = set()
        for field in entity.fields:
            if field.key in seen:
                raise ValueError(f"Duplicate field '{field.key}' in entity '{entity.name}'")
            if field.key.startswith(CUSTOM_FIELD_PREFIX):
                raise ValueError(
                    f"Built-in field '{field.key}' in entity '{entity.name}' "
                    f"uses the reserved prefix '{CUSTOM_FIELD_PREFIX}'"
                )
            seen.add(field.key)

        # whatever the yaml said, these are built-ins
        entity.fields = [f.model_copy(update={"kind": FieldKind.BUILT_IN}) for f in entity.fields]
        self.entities[entity.name] = entity

    def load_file(self, path: str | Path) -> None:
        """Load entity definitions from a YAML file.

        format is `entities: [{name, label, table, fields: [{key, label, data_type}]}]`.
        empty files are ignored.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Entity catalog not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            return

        for entity_data in data.get("entities", []):
            self.register(EntitySpec.model_validate(entity_data))

    def get_entity(self, name: str) -> EntitySpec:
        if name not in self.entities:
            raise UnknownEntityError(name)
        return self.entities[name]

    def built_in_fields(self, name: str) -> list[FieldDefinition]:
        """Copies of the built-in fields, callers are free to mutate them."""
        return [f.model_copy() for f in self.get_entity(name).fields]

    def names(self) -> list[str]:
        return list(self.entities)

    def table_map(self) -> dict[str, str]:
        """entity name -> physical table name, for the data store."""
        return {name: spec.get_table_name() for name, spec in self.entities.items()}


def load_definition(path: str | Path) -> ReportDefinition:
    """Load a report definition from a YAML or JSON file.

    json is a subset of yaml these days but going through json.load gives
    better error messages for the files the ui exports.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Report definition not found: {path}")

    with open(path) as f:
        if path.suffix == ".json":
            data: Any = json.load(f)
        else:
            data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise InvalidDefinitionError(f"{path} does not contain a report definition")

    # allow wrapping in a top-level `report:` key, same as the config file
    return ReportDefinition.model_validate(data.get("report", data))
