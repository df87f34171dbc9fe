import logging
import random
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List

from sqlalchemy import insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from loader.app import events
from loader.app.exceptions import FatalLoadError, StatementClosedError
from shared.config import Settings, settings
from shared.database import engine
from shared.models import churn_events

logger = logging.getLogger(__name__)


def plan_batches(total_rows: int, batch_size: int, include_remainder: bool = False) -> List[int]:
    """
    Row counts for each batch.

    Floor division drops the trailing partial batch unless include_remainder
    is set, in which case the last batch is capped at the rows that are left.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if total_rows <= 0:
        return []

    full_batches, remainder = divmod(total_rows, batch_size)
    sizes = [batch_size] * full_batches
    if include_remainder and remainder:
        sizes.append(remainder)
    return sizes


class PreparedInsert:
    """Insert into churn_events, compiled once per batch and executed once per row."""

    def __init__(self, conn: Connection):
        self._conn = conn
        self._statement = insert(churn_events)
        # Compiled up front only so prepare-time errors surface before any row runs.
        compiled = self._statement.compile(dialect=conn.dialect)
        logger.debug(f"Prepared statement: {compiled}")
        self.closed = False

    def execute(self, row: Dict[str, Any]) -> None:
        if self.closed:
            raise StatementClosedError("insert statement is already closed")
        self._conn.execute(self._statement, row)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._conn.closed or self._conn.invalidated:
            raise StatementClosedError("connection was lost while the statement was open")


@dataclass
class BatchResult:
    number: int
    attempted: int
    inserted: int
    committed: bool
    elapsed: float

    @property
    def failed(self) -> int:
        return self.attempted - self.inserted


@dataclass
class LoadReport:
    batches: List[BatchResult] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def rows_attempted(self) -> int:
        return sum(b.attempted for b in self.batches)

    @property
    def rows_inserted(self) -> int:
        return sum(b.inserted for b in self.batches)

    @property
    def rows_failed(self) -> int:
        return sum(b.failed for b in self.batches)


def _rate(rows: int, seconds: float) -> float:
    return rows / seconds if seconds > 0 else 0.0


class BatchLoader:
    def __init__(
        self,
        engine: Engine,
        config: Settings,
        rng: random.Random,
        clock: Callable[[], datetime] = datetime.now,
        statement_factory: Callable[[Connection], PreparedInsert] = PreparedInsert,
    ):
        self.engine = engine
        self.config = config
        self.rng = rng
        self.clock = clock
        self.statement_factory = statement_factory

    def run(self) -> LoadReport:
        sizes = plan_batches(self.config.TOTAL_ROWS, self.config.BATCH_SIZE, self.config.INCLUDE_REMAINDER)
        churn_share = 100 * self.config.CHURN_THRESHOLD / self.config.COMPANY_POOL
        print(
            f"Generating {sum(sizes):,} rows ({churn_share:.0f}% churn) "
            f"in batches of {self.config.BATCH_SIZE:,}..."
        )

        try:
            conn = self.engine.connect()
        except SQLAlchemyError as e:
            raise FatalLoadError("connect", str(e)) from e

        report = LoadReport()
        start = time.perf_counter()
        with conn:
            for number, size in enumerate(sizes, start=1):
                result = self._run_batch(conn, number, size)
                report.batches.append(result)
                print(
                    f"Batch {number}/{len(sizes)}: {result.inserted} rows in {result.elapsed:.2f}s "
                    f"({_rate(result.inserted, result.elapsed):.0f} rows/sec)"
                )
        report.elapsed = time.perf_counter() - start

        print(
            f"\nCOMPLETE! {report.rows_inserted} rows in {report.elapsed / 60:.2f} minutes "
            f"({_rate(report.rows_inserted, report.elapsed):.0f} rows/sec)"
        )
        if report.rows_failed:
            logger.warning(f"{report.rows_failed} rows failed to insert and were skipped")
        return report

    def _run_batch(self, conn: Connection, number: int, size: int) -> BatchResult:
        try:
            trans = conn.begin()
        except SQLAlchemyError as e:
            raise FatalLoadError("begin", str(e)) from e

        try:
            statement = self.statement_factory(conn)
        except SQLAlchemyError as e:
            self._rollback(trans)
            raise FatalLoadError("prepare", str(e)) from e

        batch_start = time.perf_counter()
        inserted = 0
        for _ in range(size):
            event = events.generate_event(
                self.rng,
                self.clock(),
                company_pool=self.config.COMPANY_POOL,
                threshold=self.config.CHURN_THRESHOLD,
            )
            try:
                statement.execute(event.as_row())
            except SQLAlchemyError as e:
                logger.error(f"Insert failed: {e}")
                continue
            inserted += 1

        try:
            statement.close()
        except (SQLAlchemyError, StatementClosedError) as e:
            self._rollback(trans)
            raise FatalLoadError("close", str(e)) from e

        committed = True
        try:
            trans.commit()
        except SQLAlchemyError as e:
            committed = False
            logger.error(f"Commit failed for batch {number}: {e}")
            # A failed commit leaves the transaction attached until rolled back.
            self._rollback(trans)
            if self.config.ABORT_ON_COMMIT_FAILURE:
                raise FatalLoadError("commit", str(e)) from e

        return BatchResult(
            number=number,
            attempted=size,
            inserted=inserted,
            committed=committed,
            elapsed=time.perf_counter() - batch_start,
        )

    @staticmethod
    def _rollback(trans) -> None:
        try:
            trans.rollback()
        except SQLAlchemyError as e:
            logger.error(f"Rollback failed: {e}")


def main():
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s")

    rng = events.make_rng(settings.SEED)
    loader = BatchLoader(engine, settings, rng)
    try:
        loader.run()
    except FatalLoadError as e:
        logger.critical(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
