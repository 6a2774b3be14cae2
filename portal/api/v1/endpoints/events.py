from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from typing import List

from portal.core.deps import get_current_admin
from portal.models.user import User
from portal.services.events import Event, EventBus, get_event_bus

router = APIRouter(prefix="/events")

class EventsFeed(BaseModel):
    items: List[Event]
    unread: int

@router.get("", response_model=EventsFeed)
async def list_events(
    admin: User = Depends(get_current_admin),
    events: EventBus = Depends(get_event_bus)
):
    """Feed de eventos recentes do back office, do mais novo ao mais antigo."""
    return EventsFeed(items=events.recent(), unread=events.unread_count())

@router.post("/{event_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_event_read(
    event_id: str,
    admin: User = Depends(get_current_admin),
    events: EventBus = Depends(get_event_bus)
):
    if not events.mark_read(event_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Evento não encontrado")

@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_event(
    event_id: str,
    admin: User = Depends(get_current_admin),
    events: EventBus = Depends(get_event_bus)
):
    if not events.dismiss(event_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Evento não encontrado")
