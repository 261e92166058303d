# deploy_checklist/services/client.py
import asyncio
import logging
from typing import List, Optional

import httpx

from ..config import settings
from ..errors import ChecklistError, NetworkError, NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)

_ERRORS_BY_STATUS = {400: ValidationError, 404: NotFoundError}

class ChecklistClient:
    """Async client for the /deployments and /photos endpoints"""

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 30.0):
        self._client = httpx.AsyncClient(base_url=base_url or settings.api_base_url, transport=transport, timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _call(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise NetworkError(f"Network error: {e}")
        try:
            body = response.json()
        except ValueError:
            raise NetworkError(f"Unexpected response from server ({response.status_code})")
        if not body.get("success"):
            error_cls = _ERRORS_BY_STATUS.get(response.status_code, StorageError)
            raise error_cls(body.get("error") or "Unknown error")
        return body

    async def list_deployments(self, search: str = "") -> List[dict]:
        params = {"search": search} if search else None
        body = await self._call("GET", "/deployments", params=params)
        return body.get("data") or []

    async def get_deployment(self, deployment_id: int) -> dict:
        body = await self._call("GET", "/deployments", params={"id": deployment_id})
        return body["data"]

    async def create_deployment(self, payload: dict) -> dict:
        return await self._call("POST", "/deployments", json=payload)

    async def update_deployment(self, deployment_id: int, fields: dict) -> None:
        await self._call("PUT", "/deployments", json={**fields, "id": deployment_id})

    async def delete_deployment(self, deployment_id: int) -> None:
        await self._call("DELETE", "/deployments", params={"id": deployment_id})

    async def get_photo(self, photo_id: int) -> dict:
        body = await self._call("GET", "/photos", params={"id": photo_id})
        return body["data"]

class DetailLoader:
    """Loads the selected deployment and the bytes of all its photos.

    Photos are fetched concurrently; one failing fetch leaves that entry as
    metadata only. Every `open` bumps a generation counter and results that
    come back for an older selection are dropped.
    """

    def __init__(self, client: ChecklistClient):
        self.client = client
        self.generation = 0
        self.selected_id: Optional[int] = None
        self.deployment: Optional[dict] = None
        self.photos: List[dict] = []
        self.loading = False

    async def _hydrate(self, photo: dict) -> dict:
        try:
            data = await self.client.get_photo(photo["id"])
        except ChecklistError as e:
            logger.warning("Could not load photo %s: %s", photo.get("id"), e)
            return dict(photo)
        return {**photo, "data": data.get("data")}

    async def open(self, deployment_id: int) -> Optional[List[dict]]:
        self.generation += 1
        generation = self.generation
        self.selected_id = deployment_id
        self.deployment = None
        self.photos = []
        self.loading = True
        try:
            detail = await self.client.get_deployment(deployment_id)
            photos = await asyncio.gather(*(self._hydrate(p) for p in detail.get("photos") or []))
        except ChecklistError:
            if generation != self.generation:
                logger.debug("Dropping failed load for superseded deployment %s", deployment_id)
                return None
            self.loading = False
            raise

        if generation != self.generation:
            logger.debug("Dropping photos for superseded deployment %s", deployment_id)
            return None
        self.deployment = detail
        self.photos = list(photos)
        self.loading = False
        return self.photos

    def close(self):
        self.generation += 1
        self.selected_id = None
        self.deployment = None
        self.photos = []
        self.loading = False
