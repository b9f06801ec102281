"""Sequential batch runner with failure isolation, deadline and result cache."""

import time
from typing import Iterable, Optional, Union

from tribunal_scraper.lib.config import Config
from tribunal_scraper.lib.deadline import Deadline
from tribunal_scraper.lib.errors import InvalidQueryError, NavigationError
from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.lib.rate_limiter import EthicalRateLimiter
from tribunal_scraper.lib.storage import BaseResultCache
from tribunal_scraper.metrics_emitter import emit_metric
from tribunal_scraper.models.outcome import BatchItem, BatchSummary, ErrorKind, ExtractionOutcome
from tribunal_scraper.models.query import SearchQuery

logger = get_logger()

QueryLike = Union[SearchQuery, dict]


def _query_dict(raw: QueryLike) -> dict:
    if isinstance(raw, SearchQuery):
        return raw.to_dict()
    return dict(raw) if isinstance(raw, dict) else {"value": repr(raw)}


class BatchService:
    """Runs queries one after another; one query's failure never stops the batch."""

    def __init__(
        self,
        search_service,
        cache: Optional[BaseResultCache] = None,
        rate_limiter: Optional[EthicalRateLimiter] = None,
    ):
        self.search_service = search_service
        self.cache = cache
        self.rate_limiter = rate_limiter or EthicalRateLimiter(
            interval_seconds=Config.get_query_delay_seconds(),
            backoff_factor=Config.get_backoff_factor(),
            max_backoff_seconds=Config.get_max_backoff_seconds(),
        )

    def run(self, queries: Iterable[QueryLike], deadline: Optional[Deadline] = None) -> BatchSummary:
        deadline = deadline or Deadline.unbounded()
        started = time.monotonic()
        summary = BatchSummary()
        pending = list(queries)

        for i, raw in enumerate(pending):
            if deadline.expired():
                remaining = pending[i:]
                logger.warning(f"Run deadline reached, skipping {len(remaining)} remaining queries")
                for rest in remaining:
                    summary.items.append(BatchItem(query=_query_dict(rest), status="skipped", error="deadline"))
                break
            summary.items.append(self._run_one(raw, deadline))

        summary.elapsed_seconds = time.monotonic() - started
        emit_metric("batch.succeeded", summary.succeeded)
        emit_metric("batch.failed", summary.failed)
        emit_metric("batch.skipped", summary.skipped)
        emit_metric("batch.elapsed_seconds", summary.elapsed_seconds)
        logger.info(
            f"Batch finished: {summary.succeeded} succeeded, {summary.failed} failed, "
            f"{summary.skipped} skipped in {summary.elapsed_seconds:.1f}s"
        )
        return summary

    def _run_one(self, raw: QueryLike, deadline: Deadline) -> BatchItem:
        try:
            query = raw if isinstance(raw, SearchQuery) else SearchQuery.from_dict(raw)
        except InvalidQueryError as exc:
            logger.error(f"Invalid query {raw!r}: {exc}")
            return BatchItem(
                query=_query_dict(raw),
                status="failed",
                error=str(exc),
                outcome=ExtractionOutcome(success=False, error_kind=ErrorKind.INVALID_QUERY, message=str(exc)),
            )

        key = query.cache_key()
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.info(f"Serving {query.describe()} from cache")
                return BatchItem(query=query.to_dict(), status="skipped", outcome=cached, from_cache=True)

        self.rate_limiter.wait_if_needed()
        try:
            outcome = self.search_service.search(query, deadline)
        except NavigationError as exc:
            delay = self.rate_limiter.record_failure()
            logger.error(f"Query {query.describe()} failed to navigate: {exc}; backing off {delay:.1f}s")
            time.sleep(min(delay, deadline.remaining()))
            return self._failure(query, ErrorKind.NAVIGATION_FAILED, exc)
        except Exception as exc:
            logger.exception(f"Query {query.describe()} failed: {exc}")
            self.rate_limiter.record_failure()
            return self._failure(query, ErrorKind.INFRASTRUCTURE, exc)

        self.rate_limiter.reset_failures()
        if outcome.success and self.cache is not None:
            self.cache.put(key, outcome)
        return BatchItem(
            query=query.to_dict(),
            status="succeeded" if outcome.success else "failed",
            outcome=outcome,
            error="" if outcome.success else outcome.message,
        )

    def _failure(self, query: SearchQuery, kind: ErrorKind, exc: Exception) -> BatchItem:
        outcome = ExtractionOutcome(success=False, error_kind=kind, query=query, message=str(exc))
        return BatchItem(query=query.to_dict(), status="failed", outcome=outcome, error=str(exc))
