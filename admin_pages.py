# admin_pages.py
# Per-screen state for the admin console: loaded records, filters, the open
# dialog's draft and the dismissible error banner.

import logging
from typing import Any, Awaitable, Callable, List, Optional

from pydantic import BaseModel

from admin_client import AdminApiClient, AdminApiError
from admin_forms import ActionDraft, DraftInvalid, build_draft
from list_filters import FilterCriteria, filter_records
from service_errors import ReasonRequired

log = logging.getLogger(__name__)


class AdminPage:
    """
    One admin screen. Records are only ever replaced by a fresh load, never
    edited locally, so after every successful action the page shows exactly
    what the backend returned.
    """

    def __init__(self, client: AdminApiClient, resource: str, criteria: Optional[FilterCriteria] = None):
        self.client = client
        self.resource = resource
        self.criteria = criteria or FilterCriteria()
        self.records: List[dict] = []
        self.banner: Optional[str] = None
        self.draft: Optional[BaseModel] = None
        self.loading = False

    @property
    def visible(self) -> List[dict]:
        return filter_records(self.records, self.criteria)

    def set_filter(self, **changes) -> List[dict]:
        self.criteria = self.criteria.model_copy(update=changes)
        return self.visible

    def dismiss_banner(self) -> None:
        self.banner = None

    def open_draft(self, draft: BaseModel) -> None:
        self.draft = draft

    def clear_draft(self) -> None:
        self.draft = None

    async def load(self) -> bool:
        self.loading = True
        try:
            self.records = await self.client.fetch(self.resource)
            return True
        except AdminApiError as e:
            self.banner = e.message
            return False
        finally:
            self.loading = False

    refresh = load

    async def submit(self, operation: Callable[[], Awaitable[Any]]) -> bool:
        """Run a mutation; on success close the dialog and reload, on failure show the error."""
        try:
            await operation()
        except AdminApiError as e:
            self.banner = e.message
            return False
        self.clear_draft()
        return await self.load()

    async def submit_action(
        self, record_id: int, action: str, reason: Optional[str] = None, notes: Optional[str] = None
    ) -> bool:
        try:
            draft = build_draft(
                ActionDraft, resource=self.resource, record_id=record_id, action=action, reason=reason, notes=notes
            )
        except (DraftInvalid, ReasonRequired) as e:
            self.banner = str(e)
            return False

        self.draft = draft
        return await self.submit(
            lambda: self.client.dispatch(self.resource, record_id, action, reason=reason, notes=notes)
        )
