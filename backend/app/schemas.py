from pydantic import BaseModel
from typing import List, Literal, Union


class ScoreItem(BaseModel):
    key: Union[int, str]
    total_points: int
    total_score: int
    events_count: int


class ScoresResponse(BaseModel):
    data: List[ScoreItem]
    group_by: str
    limit: int


class ChurnSplitItem(BaseModel):
    segment: Literal["churn", "healthy"]
    companies: int
    events_count: int
    total_points: int


class ChurnSplitResponse(BaseModel):
    data: List[ChurnSplitItem]
    threshold: int
