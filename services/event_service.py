"""
Event log service.

Records the raffle's notifications (entered / request submitted / winner
picked ...) in the same transaction as the state change that caused them,
so a rolled-back call never leaves an event behind.
"""
from typing import List, Dict, Any, Optional

from sqlalchemy.orm import Session

from models import EventLog

RAFFLE_ENTERED = "RAFFLE_ENTERED"
REQUESTED_RAFFLE_WINNER = "REQUESTED_RAFFLE_WINNER"
WINNER_PICKED = "WINNER_PICKED"
RAFFLE_STATE_CHANGED = "RAFFLE_STATE_CHANGED"
RANDOM_WORDS_FULFILLED = "RANDOM_WORDS_FULFILLED"


def emit_event(db: Session, raffle_id: int, event_type: str, data: Dict[str, Any]) -> EventLog:
    event = EventLog(raffle_id=raffle_id, event_type=event_type, data=data)
    db.add(event)
    return event


def list_events(
    db: Session,
    raffle_id: int,
    event_type: Optional[str] = None,
) -> List[EventLog]:
    """
    Return the raffle's events in emission order, optionally filtered by type.
    """
    query = db.query(EventLog).filter(EventLog.raffle_id == raffle_id)
    if event_type:
        query = query.filter(EventLog.event_type == event_type)
    return query.order_by(EventLog.id).all()
