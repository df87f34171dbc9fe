from datetime import date
from typing import Optional

from sqlalchemy import func, text
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from shared.models import churn_events
from backend.app import schemas

GROUP_BY_COLUMNS = {
    "company": churn_events.c.company_id,
    "event_type": churn_events.c.event_type,
    "day": func.date(churn_events.c.event_time),
}

ORDER_BY_FIELDS = ("total_points", "total_score", "events_count", "key")


def _check_range(from_date: date, to_date: date) -> None:
    if from_date > to_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="from must be less than or equal to to"
        )


def _in_range(from_date: date, to_date: date):
    return (
        func.date(churn_events.c.event_time) >= from_date,
        func.date(churn_events.c.event_time) <= to_date,
    )


def get_scores(
    db: Session,
    from_date: date,
    to_date: date,
    group_by: str = "company",
    company_id: Optional[int] = None,
    exclude_company: bool = False,
    order: str = "desc",
    limit: int = 1000,
    order_by: str = "total_points",
):
    _check_range(from_date, to_date)
    if order_by not in ORDER_BY_FIELDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid order_by field: {order_by}. Allowed: {', '.join(ORDER_BY_FIELDS)}"
        )

    key = GROUP_BY_COLUMNS[group_by].label("key")
    columns = {
        "key": key,
        "total_points": func.sum(churn_events.c.score_points).label("total_points"),
        "total_score": func.sum(churn_events.c.total_score).label("total_score"),
        "events_count": func.count().label("events_count"),
    }

    query = db.query(*columns.values()).filter(*_in_range(from_date, to_date))

    if company_id is not None:
        if exclude_company:
            query = query.filter(churn_events.c.company_id != company_id)
        else:
            query = query.filter(churn_events.c.company_id == company_id)

    sort_column = columns[order_by]
    direction = sort_column.asc() if order == "asc" else sort_column.desc()
    return query.group_by(key).order_by(direction, key).limit(limit).all()


def _segment_totals(db: Session, condition, from_date: date, to_date: date):
    return db.query(
        func.count(func.distinct(churn_events.c.company_id)),
        func.count(),
        func.coalesce(func.sum(churn_events.c.score_points), 0)
    ).filter(
        condition,
        *_in_range(from_date, to_date)
    ).one()


def get_churn_split(db: Session, from_date: date, to_date: date, threshold: int) -> schemas.ChurnSplitResponse:
    _check_range(from_date, to_date)

    segments = [
        ("churn", churn_events.c.company_id <= threshold),
        ("healthy", churn_events.c.company_id > threshold),
    ]
    data = []
    for segment, condition in segments:
        companies, events_count, total_points = _segment_totals(db, condition, from_date, to_date)
        data.append(schemas.ChurnSplitItem(
            segment=segment,
            companies=companies,
            events_count=events_count,
            total_points=total_points
        ))

    return schemas.ChurnSplitResponse(data=data, threshold=threshold)


def ping(db: Session) -> None:
    db.execute(text("SELECT 1"))
