"""Health endpoint."""

from fastapi import APIRouter
from fastapi import Depends

from herald.dependencies.services import get_broadcaster
from herald.events.broadcaster import EventBroadcaster

router = APIRouter(tags=["system"])


@router.get("/health")
async def health(broadcaster: EventBroadcaster = Depends(get_broadcaster)):
    return {"status": "ok", "connections": broadcaster.connection_count}
