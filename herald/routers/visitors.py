"""Anonymous visitor entries."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request

from herald.dependencies.services import get_publishing_service
from herald.dependencies.services import read_payload
from herald.schemas.schemas import ENTRIES
from herald.schemas.schemas import VISITORS
from herald.schemas.schemas import VisitorEntryOut
from herald.services.publishing import PublishingService

router = APIRouter(tags=["visitors"])


async def _record(request: Request, service: PublishingService, collection: str) -> VisitorEntryOut:
    fields, _ = await read_payload(request)
    stored = await service.record_visitor(collection, fields)
    return VisitorEntryOut(id=stored.id)


@router.post("/visitor", response_model=VisitorEntryOut)
async def create_visitor(request: Request, service: PublishingService = Depends(get_publishing_service)):
    """Record a visitor name.  Responds once stored; the notification is detached."""
    return await _record(request, service, VISITORS)


@router.post("/entry", response_model=VisitorEntryOut)
async def create_entry(request: Request, service: PublishingService = Depends(get_publishing_service)):
    return await _record(request, service, ENTRIES)
