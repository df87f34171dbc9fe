from sqlalchemy import Column, String, DateTime, Integer, Table
from shared.database import Base


# No primary key: the table lives in a MergeTree engine and rows are append-only.
churn_events = Table(
    "churn_events",
    Base.metadata,
    Column("company_id", Integer, nullable=False),
    Column("event_time", DateTime, nullable=False),
    Column("event_type", String(32), nullable=False),
    Column("score_points", Integer, nullable=False),
    Column("total_score", Integer, nullable=False),
)
