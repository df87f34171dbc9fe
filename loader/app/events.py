import random
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from shared.config import CHURN_THRESHOLD, COMPANY_POOL

MAX_MULTIPLIER = 50
EVENT_WINDOW_DAYS = 365


class EventType(str, Enum):
    LOGIN = "LOGIN"
    BID_SUBMITTED = "BID_SUBMITTED"
    JOB_ACCEPTED = "JOB_ACCEPTED"
    SELF_PURCHASE_CANCEL = "SELF_PURCHASE_CANCEL"
    INVOICE_DOWNLOAD = "INVOICE_DOWNLOAD"
    TENDER_DELETE = "TENDER_DELETE"
    INACTIVE_30D = "INACTIVE_30D"


EVENT_TYPES = list(EventType)

HEAVY_CHURN_EVENTS = {EventType.SELF_PURCHASE_CANCEL, EventType.TENDER_DELETE, EventType.INACTIVE_30D}
ACTIVITY_EVENTS = {EventType.LOGIN, EventType.BID_SUBMITTED}


@dataclass(frozen=True)
class ChurnEvent:
    company_id: int
    event_time: datetime
    event_type: EventType
    score_points: int
    total_score: int

    def as_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["event_type"] = self.event_type.value
        return row


def make_rng(seed: Optional[int] = None) -> random.Random:
    """One generator per run; pass it everywhere instead of using the random module."""
    return random.Random(seed)


def is_churn_company(company_id: int, threshold: int = CHURN_THRESHOLD) -> bool:
    return company_id <= threshold


def score(rng: random.Random, company_id: int, event_type: EventType, threshold: int = CHURN_THRESHOLD) -> int:
    """
    Score points for one event.

    Churn companies only ever lose points, healthy companies only ever gain them.
    Bounds are inclusive on both ends.
    """
    if is_churn_company(company_id, threshold):
        if event_type in HEAVY_CHURN_EVENTS:
            return rng.randint(-25, -10)
        if event_type in ACTIVITY_EVENTS:
            return rng.randint(-12, -2)
        return rng.randint(-6, -1)

    if event_type == EventType.JOB_ACCEPTED:
        return rng.randint(15, 30)
    if event_type == EventType.INVOICE_DOWNLOAD:
        return rng.randint(10, 20)
    if event_type in ACTIVITY_EVENTS:
        return rng.randint(3, 13)
    return rng.randint(1, 6)


def generate_event(
    rng: random.Random,
    now: datetime,
    company_pool: int = COMPANY_POOL,
    threshold: int = CHURN_THRESHOLD,
) -> ChurnEvent:
    company_id = rng.randint(1, company_pool)
    event_type = rng.choice(EVENT_TYPES)
    score_points = score(rng, company_id, event_type, threshold)

    # Synthetic scale-up of a single event, not a running sum.
    total_score = score_points * rng.randint(1, MAX_MULTIPLIER)

    days_ago = rng.randrange(EVENT_WINDOW_DAYS)
    return ChurnEvent(
        company_id=company_id,
        event_time=now - timedelta(days=days_ago),
        event_type=event_type,
        score_points=score_points,
        total_score=total_score,
    )
