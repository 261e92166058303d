# deploy_checklist/routers/photos.py
from fastapi import APIRouter, Depends
from sqlmodel import Session
from typing import Optional
from ..db import get_session
from ..services.deployments import DeploymentStore
from .deployments import parse_id

router = APIRouter(prefix="/photos", tags=["photos"])

@router.get("")
def read_photo(id: Optional[str] = None, session: Session = Depends(get_session)):
    """Full data URL of one photo; the deployment detail only lists metadata"""
    photo = DeploymentStore(session).get_photo(parse_id(id, "Missing photo id"))
    return {"success": True, "data": photo}
