import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import ValidationError

from dependencies import Identity, get_event_store, require_capability
from errors import InternalError, NotFound, ValidationFailed, validation_message
from event_store import EventStore
from permissions import EVENTS
from schemas import EventCreate, EventUpdate

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "date", "time", "location", "description", "category")

router = APIRouter()


def parse_limit(limit: Optional[str]) -> Optional[int]:
    try:
        value = int(limit) if limit is not None else None
    except ValueError:
        return None
    return value if value and value > 0 else None


@router.get("")
def get_events(
    event_status: Optional[str] = Query(None, alias="status"),
    limit: Optional[str] = None,
    store: EventStore = Depends(get_event_store),
):
    """
    List events, soonest first
    - status: only events with this status
    - limit: maximum number of events to return
    """
    try:
        events = store.list()
    except Exception:
        logger.exception("Error fetching events")
        raise InternalError("Failed to fetch events")

    if event_status:
        events = [e for e in events if e.get("status") == event_status]
    events.sort(key=lambda e: str(e.get("date", "")))

    max_items = parse_limit(limit)
    if max_items:
        events = events[:max_items]

    return {"success": True, "data": events, "count": len(events)}


@router.get("/upcoming")
def get_upcoming_events(limit: Optional[str] = None, store: EventStore = Depends(get_event_store)):
    """Events dated today or later, soonest first."""
    today = date.today().isoformat()
    try:
        events = [e for e in store.list() if str(e.get("date", "")) >= today]
    except Exception:
        logger.exception("Error fetching upcoming events")
        raise InternalError("Failed to fetch upcoming events")

    events.sort(key=lambda e: str(e.get("date", "")))
    max_items = parse_limit(limit)
    if max_items:
        events = events[:max_items]
    return {"success": True, "data": events, "count": len(events)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_event(
    event_data: dict = Body(...),
    store: EventStore = Depends(get_event_store),
    identity: Identity = Depends(require_capability(EVENTS)),
):
    """Create a new event (events capability)"""
    missing = [field for field in REQUIRED_FIELDS if not event_data.get(field)]
    if missing:
        raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")

    # Empty optional values fall back to their defaults
    cleaned = {k: v for k, v in event_data.items() if v not in (None, "")}
    try:
        event = EventCreate.model_validate(cleaned)
    except ValidationError as e:
        raise ValidationFailed(validation_message(e))

    try:
        created = store.create(event.model_dump(by_alias=True))
    except Exception:
        logger.exception("Error creating event")
        raise InternalError("Failed to create event")

    logger.info(f"Event {created['id']} created by {identity.email}")
    return {"success": True, "data": created, "message": "Event created successfully"}


@router.get("/{event_id}")
def get_event(event_id: str, store: EventStore = Depends(get_event_store)):
    try:
        event = store.get(event_id)
    except Exception:
        logger.exception(f"Error fetching event {event_id}")
        raise InternalError("Failed to fetch event")

    if event is None:
        raise NotFound("Event not found")
    return {"success": True, "data": event}


@router.put("/{event_id}")
def update_event(
    event_id: str,
    event_data: dict = Body(...),
    store: EventStore = Depends(get_event_store),
    identity: Identity = Depends(require_capability(EVENTS)),
):
    """Update an existing event (events capability)"""
    try:
        changes = EventUpdate.model_validate(event_data)
    except ValidationError as e:
        raise ValidationFailed(validation_message(e))

    try:
        updated = store.update(event_id, changes.model_dump(by_alias=True, exclude_unset=True, exclude_none=True))
    except Exception:
        logger.exception(f"Error updating event {event_id}")
        raise InternalError("Failed to update event")

    if updated is None:
        raise NotFound("Event not found")
    return {"success": True, "data": updated, "message": "Event updated successfully"}


@router.delete("/{event_id}")
def delete_event(
    event_id: str,
    store: EventStore = Depends(get_event_store),
    identity: Identity = Depends(require_capability(EVENTS)),
):
    """Delete an event (events capability)"""
    try:
        deleted = store.delete(event_id)
    except Exception:
        logger.exception(f"Error deleting event {event_id}")
        raise InternalError("Failed to delete event")

    if not deleted:
        raise NotFound("Event not found")
    logger.info(f"Event {event_id} deleted by {identity.email}")
    return {"success": True, "message": "Event deleted successfully"}
