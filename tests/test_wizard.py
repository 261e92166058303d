import asyncio
import io

from PIL import Image

from deploy_checklist.errors import NetworkError, ValidationError
from deploy_checklist.services.photo_intake import SourceFile
from deploy_checklist.services.wizard import INITIAL_FORM, DeploymentWizard, steps


class FakeClient:
    def __init__(self, response=None, error=None):
        self.response = response or {"success": True, "id": 1, "photos_saved": 0, "photos_skipped": 0}
        self.error = error
        self.payloads = []

    async def create_deployment(self, payload):
        self.payloads.append(payload)
        if self.error:
            raise self.error
        return self.response


def png(width=20, height=20):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, "PNG")
    return buffer.getvalue()


def filled_wizard(device_type="Other"):
    wizard = DeploymentWizard()
    wizard.set_field("merchant_name", "Acme Cafe")
    wizard.set_field("device_type", device_type)
    assert wizard.next()
    if device_type == "Sunmi Device":
        wizard.set_field("device_serial_number", "V2S-001")
    if device_type != "Other":
        assert wizard.next()
    for name, value in [("wifi_ssid", "Acme_WiFi"), ("static_ip", "192.168.1.50"),
                        ("anydesk_id", "123456789"), ("printer_ip", "Kitchen (192.168.1.100)")]:
        wizard.set_field(name, value)
    assert wizard.next()  # device -> feedme
    assert wizard.next()  # feedme -> photos
    return wizard


def test_steps_by_device_type():
    assert steps("") == ["info", "device", "feedme", "photos"]
    assert steps("Other") == ["info", "device", "feedme", "photos"]
    assert steps("Window") == ["info", "windows", "device", "feedme", "photos"]
    assert steps("Sunmi Device") == ["info", "sunmi", "device", "feedme", "photos"]


def test_info_step_requires_merchant_and_device():
    wizard = DeploymentWizard()
    wizard.set_field("merchant_name", "   ")
    assert not wizard.next()
    assert wizard.errors == {"merchant_name": True, "device_type": True}
    assert wizard.current == 0

    wizard.set_field("merchant_name", "Acme Cafe")
    assert "merchant_name" not in wizard.errors
    wizard.set_field("device_type", "Window")
    assert wizard.next()
    assert wizard.step == "windows"


def test_sunmi_step_requires_serial():
    wizard = DeploymentWizard()
    wizard.set_field("merchant_name", "Acme Cafe")
    wizard.set_field("device_type", "Sunmi Device")
    wizard.next()
    assert wizard.step == "sunmi"
    assert not wizard.next()
    assert wizard.errors == {"device_serial_number": True}
    wizard.set_field("device_serial_number", "V2S-001")
    assert wizard.next()
    assert wizard.step == "device"


def test_device_step_requires_network_fields():
    wizard = DeploymentWizard()
    wizard.set_field("merchant_name", "Acme Cafe")
    wizard.set_field("device_type", "Other")
    wizard.next()
    wizard.set_field("wifi_ssid", "Acme_WiFi")
    assert not wizard.next()
    assert set(wizard.errors) == {"static_ip", "anydesk_id", "printer_ip"}


def test_back_is_unconditional_and_stops_at_zero():
    wizard = filled_wizard()
    assert wizard.step == "photos"
    wizard.set_field("wifi_ssid", "")
    assert wizard.back()
    assert wizard.back()
    assert wizard.step == "device"
    assert wizard.back()
    assert not wizard.back()
    assert wizard.current == 0


def test_changing_device_type_resets_position():
    wizard = DeploymentWizard()
    wizard.set_field("merchant_name", "Acme Cafe")
    wizard.set_field("device_type", "Window")
    wizard.next()
    assert wizard.step == "windows"
    wizard.set_field("device_type", "Sunmi Device")
    assert wizard.current == 0
    assert wizard.step == "info"


def test_submit_only_from_last_step():
    wizard = DeploymentWizard()
    client = FakeClient()
    assert asyncio.run(wizard.submit(client)) is False
    assert client.payloads == []


def test_submit_success_includes_photos():
    wizard = filled_wizard("Window")
    wizard.set_field("windows_firewall_off", True)
    wizard.add_photos("device", [SourceFile("front.png", png())])
    wizard.add_photos("printer", [SourceFile("printer.png", png())])
    client = FakeClient(response={"success": True, "id": 9, "photos_saved": 2, "photos_skipped": 0})

    assert asyncio.run(wizard.submit(client)) is True
    payload = client.payloads[0]
    assert payload["windows_firewall_off"] is True
    assert payload["device_photos"][0]["filename"] == "front.png"
    assert payload["printer_photos"][0]["data"].startswith("data:image/jpeg;base64,")
    assert wizard.submitted
    assert wizard.warning is None
    assert wizard.success_message() == "Deployment for Acme Cafe (Window) has been recorded with 2 photo(s)."


def test_submit_surfaces_server_warning():
    wizard = filled_wizard()
    warning = "1 photo(s) were too large and skipped. Please clear browser cache and try again."
    client = FakeClient(response={"success": True, "id": 3, "photos_saved": 0, "photos_skipped": 1, "warning": warning})
    assert asyncio.run(wizard.submit(client))
    assert wizard.warning == warning
    assert wizard.success_message() == "Deployment for Acme Cafe (Other) has been recorded."


def test_submit_failure_leaves_state_unchanged():
    wizard = filled_wizard()
    before = (dict(wizard.form), wizard.current)

    assert asyncio.run(wizard.submit(FakeClient(error=NetworkError("Network error: timed out")))) is False
    assert wizard.last_error == "Network error: timed out"
    assert (dict(wizard.form), wizard.current) == before
    assert not wizard.submitted

    assert asyncio.run(wizard.submit(FakeClient(error=ValidationError("Missing required fields")))) is False
    assert wizard.last_error == "Error: Missing required fields"
    assert not wizard.submitting


def test_reset_restores_defaults():
    wizard = filled_wizard()
    wizard.add_photos("device", [SourceFile("front.png", png())])
    asyncio.run(wizard.submit(FakeClient()))
    wizard.reset()
    assert wizard.form == INITIAL_FORM
    assert wizard.current == 0
    assert len(wizard.device_photos) == 0
    assert not wizard.submitted


def test_info_step_rejects_unknown_device_type():
    wizard = DeploymentWizard()
    wizard.set_field("merchant_name", "Acme Cafe")
    wizard.set_field("device_type", "Toaster")
    assert not wizard.next()
    assert wizard.errors == {"device_type": True}
    assert wizard.step == "info"


def test_step_labels_follow_device_type():
    wizard = DeploymentWizard()
    assert wizard.step_labels == ["Info", "Device", "FeedMe", "Photos"]
    wizard.set_field("device_type", "Sunmi Device")
    assert wizard.step_labels == ["Info", "Sunmi", "Device", "FeedMe", "Photos"]
