"""Public reads and authenticated publishing of sections and posts."""

from __future__ import annotations

from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import Request

from herald.dependencies.auth import require_admin
from herald.dependencies.services import get_publishing_service
from herald.dependencies.services import read_payload
from herald.schemas.schemas import POSTS
from herald.schemas.schemas import SECTIONS
from herald.services.publishing import PublishingService
from herald.store.base import SortDirection

router = APIRouter(tags=["content"])

DEFAULT_LIMIT = 50
MAX_LIMIT = 500


async def _list(
    service: PublishingService,
    collection: str,
    order: Optional[SortDirection],
    default: SortDirection,
    limit: int,
) -> List[Dict[str, Any]]:
    docs = await service.list_documents(collection, direction=order or default, limit=limit)
    return [doc.to_public() for doc in docs]


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------


@router.get("/sections")
async def list_sections(
    order: Optional[SortDirection] = None,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    service: PublishingService = Depends(get_publishing_service),
):
    """Sections, oldest first unless ``order=desc``."""
    return await _list(service, SECTIONS, order, SortDirection.ASCENDING, limit)


@router.get("/posts")
async def list_posts(
    order: Optional[SortDirection] = None,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    service: PublishingService = Depends(get_publishing_service),
):
    """Posts, newest first unless ``order=asc``."""
    return await _list(service, POSTS, order, SortDirection.DESCENDING, limit)


@router.get("/data")
@router.get("/public/profile")
async def public_profile(service: PublishingService = Depends(get_publishing_service)):
    """The published profile, or ``{}`` when none has been saved yet."""

    profile = await service.get_profile()
    return profile.to_public() if profile is not None else {}


# ---------------------------------------------------------------------------
# Authenticated publishing
# ---------------------------------------------------------------------------


@router.post("/section", dependencies=[Depends(require_admin)])
@router.post("/dashboard/section", dependencies=[Depends(require_admin)])
async def create_section(request: Request, service: PublishingService = Depends(get_publishing_service)):
    """Create a section; a multipart body may carry an ``image`` file."""

    fields, image = await read_payload(request)
    stored = await service.publish_section(fields, image)
    return stored.to_public()


@router.post("/publish", dependencies=[Depends(require_admin)])
async def publish_post(request: Request, service: PublishingService = Depends(get_publishing_service)):
    """Create a post; a multipart body may carry an ``image`` file."""

    fields, image = await read_payload(request)
    stored = await service.publish_post(fields, image)
    return stored.to_public()
