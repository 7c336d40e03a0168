"""Field catalog resolution.

the catalog for an entity is its built-in fields plus whatever custom fields
the registry knows about. custom fields are a nice-to-have - if the registry
is down the report still works on built-ins, so a registry failure degrades
to a partial catalog instead of blowing up the whole report.
"""

import inspect
import logging

from reportforge.errors import ErrorKind
from reportforge.models.field import (
    FieldCatalog,
    FieldDefinition,
    FieldKind,
    ReportWarning,
    custom_field_key,
)
from reportforge.parser.loader import EntityRegistry
from reportforge.protocols import CustomFieldRegistry

logger = logging.getLogger(__name__)


class FieldCatalogResolver:
    """Builds the list of selectable fields for an entity."""

    def __init__(
        self,
        entities: EntityRegistry,
        custom_fields: CustomFieldRegistry | None = None,
    ) -> None:
        self.entities = entities
        self.custom_fields = custom_fields

    def resolve(self, entity: str) -> FieldCatalog:
        """Resolve the catalog using a synchronous registry.

        raises UnknownEntityError for entities outside the registry. async
        registries need resolve_async.
        """
        built_ins = self.entities.built_in_fields(entity)
        if self.custom_fields is None:
            return FieldCatalog(entity=entity, fields=built_ins)

        try:
            raw = self.custom_fields.list_fields(entity)
        except Exception as e:
            return self._degraded(entity, built_ins, e)

        if inspect.isawaitable(raw):
            if inspect.iscoroutine(raw):
                raw.close()  # avoid the "never awaited" warning
            raise TypeError("Custom field registry is async, use resolve_async()")

        return self._merge(entity, built_ins, raw)

    async def resolve_async(self, entity: str) -> FieldCatalog:
        """Resolve the catalog, awaiting the registry if it's async."""
        built_ins = self.entities.built_in_fields(entity)
        if self.custom_fields is None:
            return FieldCatalog(entity=entity, fields=built_ins)

        try:
            raw = self.custom_fields.list_fields(entity)
            if inspect.isawaitable(raw):
                raw = await raw
        except Exception as e:
            return self._degraded(entity, built_ins, e)

        return self._merge(entity, built_ins, raw)

    def _degraded(
        self, entity: str, built_ins: list[FieldDefinition], error: Exception
    ) -> FieldCatalog:
        logger.warning("Custom field registry failed for %s, using built-ins only: %s", entity, error)
        return FieldCatalog(
            entity=entity,
            fields=built_ins,
            warnings=[
                ReportWarning(
                    kind=ErrorKind.PARTIAL_CATALOG.value,
                    message=f"Custom fields for '{entity}' are unavailable: {error}",
                )
            ],
        )

    def _merge(
        self, entity: str, built_ins: list[FieldDefinition], custom: list[FieldDefinition]
    ) -> FieldCatalog:
        """Append custom fields under their namespaced keys.

        the prefix makes collisions with built-ins impossible, but the
        registry itself can still hand back the same key twice - first one wins.
        """
        fields = list(built_ins)
        seen = {f.key for f in fields}

        for field in custom or []:
            key = custom_field_key(field.key)
            if key in seen:
                logger.warning("Ignoring duplicate custom field %s on %s", key, entity)
                continue
            seen.add(key)
            fields.append(field.model_copy(update={"key": key, "kind": FieldKind.CUSTOM}))

        logger.debug("Resolved %d fields for %s", len(fields), entity)
        return FieldCatalog(entity=entity, fields=fields)
