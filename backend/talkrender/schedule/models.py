"""
Schedule catalog models.

The feed is a c3voc-style schedule document:

    schedule.conference.days[i].rooms[<room name>][j] -> event

Only the event guid and its numeric id (the import reference) are
load-bearing. Title, room and date are carried for operator display.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ScheduleFormatError


class ScheduleEvent(BaseModel):
    """A single scheduled talk, immutable once fetched."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    guid: str
    import_reference: int = Field(validation_alias="id")
    title: Optional[str] = None
    room: Optional[str] = None
    date: Optional[str] = None


@dataclass(frozen=True)
class Catalog:
    """
    A fully constructed schedule catalog.

    Built completely before it is published to the cache, so readers
    only ever see a whole catalog.
    """

    document: Dict[str, Any]
    events: Tuple[ScheduleEvent, ...]
    fetched_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_document(cls, document: Any, fetched_at: Optional[datetime] = None) -> "Catalog":
        """
        Flatten the per-day, per-room structure into one event tuple.

        Raises:
            ScheduleFormatError: If the document does not have the day/room shape
                or an event lacks a guid or numeric id.
        """
        try:
            days = document["schedule"]["conference"]["days"]
        except (KeyError, TypeError) as e:
            raise ScheduleFormatError(f"Missing schedule.conference.days: {e}") from e

        if not isinstance(days, list):
            raise ScheduleFormatError("schedule.conference.days is not a list")

        events = []
        for day in days:
            rooms = day.get("rooms") if isinstance(day, dict) else None
            if not isinstance(rooms, dict):
                continue
            for room_name, room_events in rooms.items():
                if not isinstance(room_events, list):
                    continue
                for raw in room_events:
                    try:
                        event = ScheduleEvent.model_validate(raw)
                    except ValidationError as e:
                        raise ScheduleFormatError(f"Invalid event in room {room_name}: {e}") from e
                    if event.room is None:
                        event = event.model_copy(update={"room": room_name})
                    events.append(event)

        return cls(
            document=document,
            events=tuple(events),
            fetched_at=fetched_at or datetime.now(),
        )

    def find(self, guid: str) -> Optional[ScheduleEvent]:
        """First event whose guid equals `guid` exactly, else None."""
        for event in self.events:
            if event.guid == guid:
                return event
        return None
