# deploy_checklist/models.py
from typing import Optional
from sqlmodel import SQLModel, Field, Index

DEVICE_TYPES = ("Sunmi Device", "Window", "Other")
PHOTO_CATEGORIES = ("device", "printer")

# (field, label) in the order they appear on the checklist
CHECKLIST_ITEMS = [
    ("check_socket_server_ip", "Socket Server IP"),
    ("check_printer_connection", "Printer Connection"),
    ("check_payment_method", "Configure Payment Method"),
    ("check_custom_item", "Configure Custom Item"),
    ("check_pax", "Configure Pax"),
    ("check_customer_display", "Customer Display"),
    ("check_qr_order", "Enable QR Order / Delivery Platform"),
    ("check_close_counter", "Close Counter (Report)"),
]
CHECKLIST_FIELDS = [field for field, _ in CHECKLIST_ITEMS]
DEVICE_FLAGS = ["windows_firewall_off", "sunmi_remote_assistance"]
FLAG_FIELDS = DEVICE_FLAGS + CHECKLIST_FIELDS

REQUIRED_FIELDS = ["merchant_name", "device_type", "wifi_ssid", "static_ip", "anydesk_id", "printer_ip"]
TEXT_FIELDS = REQUIRED_FIELDS + ["device_serial_number"]
MUTABLE_FIELDS = TEXT_FIELDS + FLAG_FIELDS

class Deployment(SQLModel, table=True):
    __tablename__ = "deployments"

    id: Optional[int] = Field(default=None, primary_key=True)
    merchant_name: str
    device_type: str  # "Sunmi Device", "Window", "Other"
    wifi_ssid: str
    static_ip: str
    anydesk_id: str
    printer_ip: str  # may hold several entries, one per line
    device_serial_number: str = ""

    # Device-conditional flags (0/1)
    windows_firewall_off: int = 0
    sunmi_remote_assistance: int = 0

    # Checklist flags (0/1)
    check_socket_server_ip: int = 0
    check_printer_connection: int = 0
    check_payment_method: int = 0
    check_custom_item: int = 0
    check_pax: int = 0
    check_customer_display: int = 0
    check_qr_order: int = 0
    check_close_counter: int = 0

    created_at: str = Field(index=True)  # "YYYY-MM-DD HH:MM:SS", civil offset

class DeploymentPhoto(SQLModel, table=True):
    """Photo stored in the database as a base64 data URL"""
    __tablename__ = "deployment_photos"

    id: Optional[int] = Field(default=None, primary_key=True)
    # No FK cascade: the store removes photos before their deployment
    deployment_id: int
    category: str  # "device" or "printer"
    filename: Optional[str] = None
    data: str
    created_at: str

    __table_args__ = (
        Index("ix_deployment_photos_deployment_id", "deployment_id"),
    )
