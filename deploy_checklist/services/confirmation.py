# deploy_checklist/services/confirmation.py
"""
Shared-password gate in front of edit and delete in the history view.

This only guards against accidental changes on a trusted network. It is not
authentication: the password is one shared string checked on the client.
"""
import hmac
from typing import Callable, Optional

from ..config import settings

PROTECTED_ACTIONS = {"edit", "delete"}
INCORRECT_PASSWORD = "Incorrect password"

def requires_confirmation(action: str) -> bool:
    return action in PROTECTED_ACTIONS

def verify_password(value: str, expected: Optional[str] = None) -> bool:
    expected = settings.confirm_password if expected is None else expected
    return hmac.compare_digest((value or "").encode(), expected.encode())

class ConfirmationGate:
    def __init__(self, password: Optional[str] = None):
        self.password = password
        self.pending_action: Optional[str] = None
        self._pending: Optional[Callable] = None
        self.error = ""

    @property
    def prompting(self) -> bool:
        return self._pending is not None

    def request(self, action: str, run: Callable):
        """Run `run` now, or hold it until the password is confirmed."""
        if not requires_confirmation(action):
            return run()
        self.pending_action = action
        self._pending = run
        self.error = ""
        return None

    def confirm(self, password: str):
        if self._pending is None:
            return None
        if not verify_password(password, self.password):
            self.error = INCORRECT_PASSWORD
            return None
        run = self._pending
        self.cancel()
        return run()

    def cancel(self):
        self.pending_action = None
        self._pending = None
        self.error = ""
