"""Administrative profile management and visitor listing.

Every route here requires a valid session token.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import Request

from herald.dependencies.auth import require_admin
from herald.dependencies.services import get_publishing_service
from herald.dependencies.services import read_payload
from herald.errors import DocumentNotFound
from herald.routers.content import DEFAULT_LIMIT
from herald.routers.content import MAX_LIMIT
from herald.schemas.schemas import ADMIN
from herald.schemas.schemas import PROFILE_ID
from herald.schemas.schemas import VISITORS
from herald.services.publishing import PublishingService
from herald.store.base import SortDirection

router = APIRouter(tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/admin/profile")
async def read_profile(service: PublishingService = Depends(get_publishing_service)):
    profile = await service.get_profile()
    if profile is None:
        raise DocumentNotFound(ADMIN, PROFILE_ID)
    return profile.to_public()


@router.post("/data")
@router.post("/admin/profile")
@router.put("/admin/profile")
async def save_profile(request: Request, service: PublishingService = Depends(get_publishing_service)):
    """Merge the supplied fields (and optional ``image``) into the profile."""

    fields, image = await read_payload(request)
    stored = await service.save_profile(fields, image)
    return stored.to_public()


@router.delete("/admin/profile")
async def delete_profile(service: PublishingService = Depends(get_publishing_service)):
    deleted = await service.delete_profile()
    return deleted.to_public()


@router.get("/admin/visitors")
async def list_visitors(
    order: Optional[SortDirection] = None,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    service: PublishingService = Depends(get_publishing_service),
):
    """Visitor entries, newest first unless ``order=asc``."""

    docs = await service.list_documents(VISITORS, direction=order or SortDirection.DESCENDING, limit=limit)
    return [doc.to_public() for doc in docs]
