# deploy_checklist/services/deployments.py
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select, delete

from ..config import settings
from ..errors import NotFoundError, PhotoTooLargeError, StorageError, ValidationError
from ..models import (
    Deployment, DeploymentPhoto,
    DEVICE_TYPES, FLAG_FIELDS, REQUIRED_FIELDS, TEXT_FIELDS,
)
from .clock import civil_now, format_timestamp

logger = logging.getLogger(__name__)

MAX_PHOTO_SIZE = settings.max_photo_size
SKIPPED_WARNING = "{count} photo(s) were too large and skipped. Please clear browser cache and try again."

def to_flag(value) -> int:
    return 1 if value else 0

def check_photo_size(data: str, limit: int = MAX_PHOTO_SIZE) -> None:
    if len(data) > limit:
        raise PhotoTooLargeError(len(data), limit)

def check_device_type(value) -> None:
    if value not in DEVICE_TYPES:
        raise ValidationError(f"Invalid device type: {value}")

def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

@dataclass
class CreateResult:
    id: int
    photos_saved: int
    photos_skipped: int
    warning: Optional[str] = None

    def to_response(self) -> dict:
        body = {
            "success": True,
            "id": self.id,
            "photos_saved": self.photos_saved,
            "photos_skipped": self.photos_skipped,
        }
        if self.warning:
            body["warning"] = self.warning
        return body

class DeploymentStore:
    """Deployments and their photos, persisted as two related tables.

    Photo inserts are best-effort: each one commits on its own and a failure
    only bumps the skip count. There is no transaction spanning the
    deployment row and its photos, so a deployment can exist with none of
    its photos saved.
    """

    def __init__(self, session: Session, max_photo_size: int = MAX_PHOTO_SIZE):
        self.session = session
        self.max_photo_size = max_photo_size

    @staticmethod
    def _row_values(fields: dict) -> dict:
        """Full set of mutable columns; absent text becomes '' and absent flags 0."""
        values = {name: fields.get(name) or "" for name in TEXT_FIELDS}
        values.update({name: to_flag(fields.get(name)) for name in FLAG_FIELDS})
        return values

    def create(
        self,
        fields: dict,
        device_photos: Optional[List[dict]] = None,
        printer_photos: Optional[List[dict]] = None,
    ) -> CreateResult:
        missing = [name for name in REQUIRED_FIELDS if not fields.get(name)]
        if missing:
            raise ValidationError("Missing required fields")
        check_device_type(fields.get("device_type"))

        created_at = format_timestamp(civil_now())
        deployment = Deployment(**self._row_values(fields), created_at=created_at)
        try:
            self.session.add(deployment)
            self.session.commit()
            self.session.refresh(deployment)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Failed to insert deployment for %s", fields.get("merchant_name"))
            raise StorageError(str(e))
        deployment_id = deployment.id

        photos = [(p, "device") for p in device_photos or []]
        photos += [(p, "printer") for p in printer_photos or []]

        saved = 0
        skipped = 0
        for photo, category in photos:
            data = photo.get("data")
            filename = photo.get("filename")
            if not data:
                skipped += 1
                logger.warning("Deployment %s: skipped %s photo %r with no data", deployment_id, category, filename)
                continue
            try:
                check_photo_size(data, self.max_photo_size)
                self.session.add(DeploymentPhoto(
                    deployment_id=deployment_id,
                    category=category,
                    filename=filename,
                    data=data,
                    created_at=created_at,
                ))
                self.session.commit()
                saved += 1
            except PhotoTooLargeError as e:
                skipped += 1
                logger.warning("Deployment %s: skipped %s photo %r: %s", deployment_id, category, filename, e)
            except Exception as e:
                self.session.rollback()
                skipped += 1
                logger.warning("Deployment %s: failed to store %s photo %r: %s", deployment_id, category, filename, e)

        logger.info("Created deployment %s (%d photo(s) saved, %d skipped)", deployment_id, saved, skipped)
        return CreateResult(
            id=deployment_id,
            photos_saved=saved,
            photos_skipped=skipped,
            warning=SKIPPED_WARNING.format(count=skipped) if skipped else None,
        )

    def photo_counts(self, deployment_ids: List[int]) -> Dict[int, Dict[str, int]]:
        counts: Dict[int, Dict[str, int]] = {i: {} for i in deployment_ids}
        if not deployment_ids:
            return counts
        q = (
            select(DeploymentPhoto.deployment_id, DeploymentPhoto.category, func.count(DeploymentPhoto.id))
            .where(DeploymentPhoto.deployment_id.in_(deployment_ids))
            .group_by(DeploymentPhoto.deployment_id, DeploymentPhoto.category)
        )
        for deployment_id, category, count in self.session.exec(q).all():
            counts[deployment_id][category] = count
        return counts

    def list(self, search: Optional[str] = None) -> List[dict]:
        q = select(Deployment)
        if search:
            pattern = f"%{_escape_like(search.lower())}%"
            q = q.where(or_(
                func.lower(Deployment.merchant_name).like(pattern, escape="\\"),
                func.lower(Deployment.device_type).like(pattern, escape="\\"),
            ))
        q = q.order_by(Deployment.created_at.desc(), Deployment.id.desc())
        deployments = self.session.exec(q).all()

        counts = self.photo_counts([d.id for d in deployments])
        rows = []
        for d in deployments:
            row = d.model_dump()
            row["photo_counts"] = counts[d.id]
            rows.append(row)
        return rows

    def get(self, deployment_id: int) -> dict:
        deployment = self.session.get(Deployment, deployment_id)
        if not deployment:
            raise NotFoundError("Not found")
        q = (
            select(DeploymentPhoto.id, DeploymentPhoto.category, DeploymentPhoto.filename, DeploymentPhoto.created_at)
            .where(DeploymentPhoto.deployment_id == deployment_id)
            .order_by(DeploymentPhoto.id)
        )
        row = deployment.model_dump()
        row["photos"] = [
            {"id": pid, "category": category, "filename": filename, "created_at": created_at}
            for pid, category, filename, created_at in self.session.exec(q).all()
        ]
        return row

    def update(self, deployment_id: int, fields: dict) -> None:
        """Overwrite every mutable field. created_at and photos are left alone.

        An unknown id is accepted silently, the same as an UPDATE that matches no rows.
        """
        check_device_type(fields.get("device_type"))
        deployment = self.session.get(Deployment, deployment_id)
        if not deployment:
            logger.warning("Update for unknown deployment %s ignored", deployment_id)
            return
        for name, value in self._row_values(fields).items():
            setattr(deployment, name, value)
        try:
            self.session.add(deployment)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(str(e))

    def delete(self, deployment_id: int) -> None:
        # photos first; nothing in the schema cascades
        try:
            self.session.exec(delete(DeploymentPhoto).where(DeploymentPhoto.deployment_id == deployment_id))
            self.session.exec(delete(Deployment).where(Deployment.id == deployment_id))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(str(e))
        logger.info("Deleted deployment %s", deployment_id)

    def get_photo(self, photo_id: int) -> dict:
        photo = self.session.get(DeploymentPhoto, photo_id)
        if not photo:
            raise NotFoundError("Photo not found")
        return {"data": photo.data, "filename": photo.filename}
