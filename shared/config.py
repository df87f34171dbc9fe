from pydantic_settings import BaseSettings
from pathlib import Path
from typing import Optional, Set

BATCH_SIZE = 100_000
TOTAL_ROWS = 10_000_000
CHURN_THRESHOLD = 4_000  # ids 1..4000 are churn companies (40%)
COMPANY_POOL = 10_000

class Settings(BaseSettings):
    DATABASE_URL: str = "clickhouse+http://default:@localhost:8123/default"
    API_KEYS: Set[str] = set()

    BATCH_SIZE: int = BATCH_SIZE
    TOTAL_ROWS: int = TOTAL_ROWS
    CHURN_THRESHOLD: int = CHURN_THRESHOLD
    COMPANY_POOL: int = COMPANY_POOL
    SEED: Optional[int] = None

    # Best-effort by default: a failed commit is logged and the next batch runs.
    ABORT_ON_COMMIT_FAILURE: bool = False
    # Off keeps floor(TOTAL_ROWS / BATCH_SIZE) full batches only.
    INCLUDE_REMAINDER: bool = False

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = Path(__file__).parent.parent / ".env"
        case_sensitive = True

settings = Settings()
