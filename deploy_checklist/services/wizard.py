# deploy_checklist/services/wizard.py
from typing import Dict, List, Optional

from ..errors import ChecklistError, NetworkError
from ..models import DEVICE_TYPES, FLAG_FIELDS, TEXT_FIELDS
from .photo_intake import IntakeResult, PhotoTray, SourceFile

INITIAL_FORM = {name: "" for name in TEXT_FIELDS}
INITIAL_FORM.update({name: False for name in FLAG_FIELDS})

STEP_LABELS = {
    "info": "Info",
    "windows": "Windows",
    "sunmi": "Sunmi",
    "device": "Device",
    "feedme": "FeedMe",
    "photos": "Photos",
}

# Fields that must be non-blank before leaving each step
STEP_REQUIRED = {
    "info": ["merchant_name", "device_type"],
    "device": ["wifi_ssid", "static_ip", "anydesk_id", "printer_ip"],
    "sunmi": ["device_serial_number"],
}

def steps(device_type: Optional[str]) -> List[str]:
    out = ["info"]
    if device_type == "Window":
        out.append("windows")
    if device_type == "Sunmi Device":
        out.append("sunmi")
    out += ["device", "feedme", "photos"]
    return out

class DeploymentWizard:
    """Multi-step deployment form.

    The step list depends on the device type, so it is recomputed on every
    access and the position goes back to the first step whenever the device
    type changes.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.form = dict(INITIAL_FORM)
        self.device_photos = PhotoTray("device")
        self.printer_photos = PhotoTray("printer")
        self.current = 0
        self.errors: Dict[str, bool] = {}
        self.submitting = False
        self.submitted = False
        self.last_error = ""
        self.warning: Optional[str] = None
        self.result: Optional[dict] = None

    @property
    def steps(self) -> List[str]:
        return steps(self.form["device_type"])

    @property
    def step(self) -> str:
        return self.steps[min(self.current, len(self.steps) - 1)]

    @property
    def step_labels(self) -> List[str]:
        return [STEP_LABELS[s] for s in self.steps]

    @property
    def is_last(self) -> bool:
        return self.current >= len(self.steps) - 1

    def set_field(self, name: str, value):
        if name not in self.form:
            raise KeyError(name)
        self.form[name] = value
        self.errors.pop(name, None)
        if name == "device_type":
            self.current = 0

    def add_photos(self, category: str, files: List[SourceFile]) -> IntakeResult:
        tray = self.device_photos if category == "device" else self.printer_photos
        return tray.add_files(files)

    def validate_step(self) -> bool:
        self.errors = {
            name: True
            for name in STEP_REQUIRED.get(self.step, [])
            if not str(self.form.get(name) or "").strip()
        }
        if self.step == "info" and self.form["device_type"] not in DEVICE_TYPES:
            self.errors["device_type"] = True
        return not self.errors

    def next(self) -> bool:
        if not self.validate_step():
            return False
        if self.current < len(self.steps) - 1:
            self.current += 1
        return True

    def back(self) -> bool:
        if self.current > 0:
            self.current -= 1
            return True
        return False

    def payload(self) -> dict:
        return {
            **self.form,
            "device_photos": self.device_photos.to_payload(),
            "printer_photos": self.printer_photos.to_payload(),
        }

    async def submit(self, client) -> bool:
        """POST the deployment. On failure nothing changes except last_error."""
        if not self.is_last or not self.validate_step():
            return False
        self.submitting = True
        self.last_error = ""
        try:
            body = await client.create_deployment(self.payload())
        except NetworkError as e:
            self.last_error = e.message
            return False
        except ChecklistError as e:
            self.last_error = f"Error: {e.message}"
            return False
        finally:
            self.submitting = False
        self.result = body
        self.warning = body.get("warning")
        self.submitted = True
        return True

    def photo_total(self) -> int:
        return len(self.device_photos) + len(self.printer_photos)

    def success_message(self) -> str:
        text = f"Deployment for {self.form['merchant_name']} ({self.form['device_type']}) has been recorded"
        if self.photo_total():
            text += f" with {self.photo_total()} photo(s)"
        return text + "."
