"""Saving and restoring report definitions.

only the declarative definition is persisted, so a reloaded report always
runs against live data. loading doesn't re-validate against the current
catalog - a report referencing a since-deleted field loads fine and the
engine drops the field when it next runs.
"""

import logging

from reportforge.errors import MissingNameError, ReportNotFoundError
from reportforge.models.report import ReportDefinition, SavedReport
from reportforge.protocols import ReportPersistenceStore, maybe_await

logger = logging.getLogger(__name__)


class ReportDefinitionStore:
    def __init__(self, persistence: ReportPersistenceStore) -> None:
        self.persistence = persistence

    async def save(
        self, definition: ReportDefinition, report_id: str | None = None
    ) -> SavedReport:
        """Persist a definition. Passing an existing id overwrites it."""
        if not definition.name.strip():
            raise MissingNameError()

        if isinstance(definition, SavedReport):
            definition = definition.to_definition()
        definition = definition.model_copy(update={"name": definition.name.strip()})
        saved = await maybe_await(self.persistence.insert(definition, report_id))
        logger.info("Saved report '%s' as %s", saved.name, saved.id)
        return saved

    async def list_reports(self) -> list[SavedReport]:
        """All saved reports, newest first."""
        return list(await maybe_await(self.persistence.select_all()))

    async def get(self, report_id: str) -> SavedReport:
        saved = await maybe_await(self.persistence.select_one(report_id))
        if saved is None:
            raise ReportNotFoundError(report_id)
        return saved

    async def load(self, report_id: str) -> ReportDefinition:
        """The definition of a saved report, without its id/created_at."""
        return (await self.get(report_id)).to_definition()

    async def delete(self, report_id: str) -> None:
        deleted = await maybe_await(self.persistence.delete(report_id))
        if not deleted:
            raise ReportNotFoundError(report_id)
        logger.info("Deleted report %s", report_id)
