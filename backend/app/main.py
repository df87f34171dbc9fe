import logging
from datetime import date
from typing import Literal, Optional

from fastapi import FastAPI, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app import crud, schemas
from backend.app.auth import verify_api_key
from shared.config import settings
from shared.database import get_db

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Churn Events API",
    description="Read-only analytics over generated churn events",
    version="1.0.0",
)


@app.get("/stats/scores", response_model=schemas.ScoresResponse)
def get_scores(
        from_date: date = Query(..., alias="from", description="Start date (YYYY-MM-DD)"),
        to_date: date = Query(..., alias="to", description="End date (YYYY-MM-DD)"),
        group_by: Literal["company", "event_type", "day"] = Query("company", description="Grouping key"),
        company_id: Optional[int] = Query(None, ge=1, description="Company to select or exclude"),
        exclude_company: bool = Query(False, description="Exclude company_id instead of selecting it"),
        order_by: Literal["total_points", "total_score", "events_count", "key"] = Query(
            "total_points", description="Field to sort on"
        ),
        order: Literal["asc", "desc"] = Query("desc", description="Sort direction"),
        limit: int = Query(1000, ge=1, le=10000, description="Maximum number of rows"),
        db: Session = Depends(get_db),
        api_key: str = Depends(verify_api_key)
):
    """
    Get score totals grouped by company, event type or day.

    Rows are sorted by order_by (total_points by default) and capped at limit.
    Requires valid API key authentication.
    """
    results = crud.get_scores(
        db, from_date, to_date, group_by, company_id, exclude_company, order, limit, order_by
    )
    data = [
        schemas.ScoreItem(
            key=row.key if group_by != "day" else str(row.key),
            total_points=row.total_points,
            total_score=row.total_score,
            events_count=row.events_count
        )
        for row in results
    ]
    return schemas.ScoresResponse(data=data, group_by=group_by, limit=limit)


@app.get("/stats/churn-split", response_model=schemas.ChurnSplitResponse)
def get_churn_split(
        from_date: date = Query(..., alias="from", description="Start date (YYYY-MM-DD)"),
        to_date: date = Query(..., alias="to", description="End date (YYYY-MM-DD)"),
        db: Session = Depends(get_db),
        api_key: str = Depends(verify_api_key)
):
    """
    Compare churn companies against healthy companies.

    Companies at or below CHURN_THRESHOLD count as churn.
    Requires valid API key authentication.
    """
    return crud.get_churn_split(db, from_date, to_date, settings.CHURN_THRESHOLD)


@app.get("/")
def root():
    return {
        "message": "Churn Events API",
        "version": "1.0.0",
    }


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    try:
        crud.ping(db)
    except SQLAlchemyError as e:
        logger.error(f"Database ping failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable"
        )
    return {"status": "healthy"}
