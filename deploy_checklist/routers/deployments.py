# deploy_checklist/routers/deployments.py
from fastapi import APIRouter, Depends
from sqlmodel import Session
from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from ..db import get_session
from ..errors import ValidationError
from ..services.deployments import DeploymentStore

router = APIRouter(prefix="/deployments", tags=["deployments"])

class PhotoIn(BaseModel):
    filename: Optional[str] = None
    data: Optional[str] = None  # data URL produced by the photo intake

class DeploymentFields(BaseModel):
    # numeric ids such as anydesk_id may arrive as JSON numbers
    model_config = ConfigDict(coerce_numbers_to_str=True)

    merchant_name: Optional[str] = None
    device_type: Optional[str] = None
    wifi_ssid: Optional[str] = None
    static_ip: Optional[str] = None
    anydesk_id: Optional[str] = None
    printer_ip: Optional[str] = None
    device_serial_number: Optional[str] = None
    windows_firewall_off: Optional[bool] = False
    sunmi_remote_assistance: Optional[bool] = False
    check_socket_server_ip: Optional[bool] = False
    check_printer_connection: Optional[bool] = False
    check_payment_method: Optional[bool] = False
    check_custom_item: Optional[bool] = False
    check_pax: Optional[bool] = False
    check_customer_display: Optional[bool] = False
    check_qr_order: Optional[bool] = False
    check_close_counter: Optional[bool] = False

class DeploymentCreate(DeploymentFields):
    device_photos: List[PhotoIn] = []
    printer_photos: List[PhotoIn] = []

class DeploymentUpdate(DeploymentFields):
    id: Optional[int] = None

def parse_id(value: Optional[str], missing_message: str) -> int:
    if value is None or value == "":
        raise ValidationError(missing_message)
    try:
        return int(value)
    except ValueError:
        raise ValidationError("Invalid id")

@router.get("")
def read_deployments(search: str = "", id: Optional[str] = None, session: Session = Depends(get_session)):
    """List deployments (optionally searched), or one deployment with its photo metadata when id is given"""
    store = DeploymentStore(session)
    if id:
        return {"success": True, "data": store.get(parse_id(id, "Missing deployment ID"))}
    return {"success": True, "data": store.list(search)}

@router.post("", status_code=201)
def create_deployment(data: DeploymentCreate, session: Session = Depends(get_session)):
    fields = data.model_dump(exclude={"device_photos", "printer_photos"})
    result = DeploymentStore(session).create(
        fields,
        device_photos=[p.model_dump() for p in data.device_photos],
        printer_photos=[p.model_dump() for p in data.printer_photos],
    )
    return result.to_response()

@router.put("")
def update_deployment(data: DeploymentUpdate, session: Session = Depends(get_session)):
    if not data.id:
        raise ValidationError("Missing deployment ID")
    DeploymentStore(session).update(data.id, data.model_dump(exclude={"id"}))
    return {"success": True}

@router.delete("")
def delete_deployment(id: Optional[str] = None, session: Session = Depends(get_session)):
    DeploymentStore(session).delete(parse_id(id, "Missing deployment ID"))
    return {"success": True}
