# deploy_checklist/services/history_actions.py
"""
Edit and delete from the history view.

Both are held behind the confirmation gate. A successful save or delete
refetches the list with the current search; a delete also closes the open
detail.
"""
import inspect
import logging
from typing import Optional

from ..errors import ChecklistError
from ..models import MUTABLE_FIELDS
from .confirmation import ConfirmationGate
from .history import HistoryView

logger = logging.getLogger(__name__)

UPDATED_MESSAGE = "Record updated successfully"
DELETED_MESSAGE = "Record deleted successfully"

class HistoryActions:
    def __init__(self, view: HistoryView, client, detail=None, gate: Optional[ConfirmationGate] = None):
        self.view = view
        self.client = client
        self.detail = detail  # DetailLoader showing the selected deployment, if any
        self.gate = gate or ConfirmationGate()
        self.edit_id: Optional[int] = None
        self.edit_form: Optional[dict] = None
        self.saving = False
        self.message = ""
        self.error = ""

    @property
    def editing(self) -> bool:
        return self.edit_form is not None

    def request_edit(self, row: dict):
        self.gate.request("edit", lambda: self.start_edit(row))

    def request_delete(self, deployment_id: int):
        self.gate.request("delete", lambda: self.delete(deployment_id))

    async def confirm(self, password: str) -> bool:
        """Run the held action if the password matches. False when nothing ran."""
        if not self.gate.prompting:
            return False
        result = self.gate.confirm(password)
        if self.gate.prompting:
            return False
        if inspect.isawaitable(result):
            await result
        return True

    def start_edit(self, row: dict):
        self.edit_id = row["id"]
        self.edit_form = {name: row.get(name) for name in MUTABLE_FIELDS}
        self.error = ""

    def set_field(self, name: str, value):
        if not self.editing:
            raise RuntimeError("No record is being edited")
        if name not in self.edit_form:
            raise KeyError(name)
        self.edit_form[name] = value

    def cancel_edit(self):
        self.edit_id = None
        self.edit_form = None

    async def save(self) -> bool:
        if not self.editing:
            return False
        self.saving = True
        self.error = ""
        try:
            await self.client.update_deployment(self.edit_id, dict(self.edit_form))
        except ChecklistError as e:
            logger.warning("Update of deployment %s failed: %s", self.edit_id, e.message)
            self.error = f"Failed to update: {e.message}"
            return False
        finally:
            self.saving = False

        shown = self.detail.deployment if self.detail is not None else None
        if shown and shown.get("id") == self.edit_id:
            self.detail.deployment = {**shown, **self.edit_form}
        self.cancel_edit()
        self.message = UPDATED_MESSAGE
        await self.view.refresh(self.client)
        return True

    async def delete(self, deployment_id: int) -> bool:
        self.error = ""
        try:
            await self.client.delete_deployment(deployment_id)
        except ChecklistError as e:
            logger.warning("Delete of deployment %s failed: %s", deployment_id, e.message)
            self.error = f"Failed to delete: {e.message}"
            return False
        self.message = DELETED_MESSAGE
        self.cancel_edit()
        if self.detail is not None:
            self.detail.close()
        await self.view.refresh(self.client)
        return True
