"""Merges result rows with detail records and builds the query outcome."""

from typing import Dict, List, Optional, Sequence

from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.models.case import CaseRecord, DetailRecord, ResultRow
from tribunal_scraper.models.outcome import (
    ErrorKind,
    ExtractionOutcome,
    VerificationOutcome,
    VerificationStatus,
)
from tribunal_scraper.models.query import SearchQuery
from tribunal_scraper.services.artifact_links import ArtifactLinkCollector

logger = get_logger()


class ResultAggregator:
    def __init__(self, collector: Optional[ArtifactLinkCollector] = None):
        self.collector = collector or ArtifactLinkCollector()

    def merge(self, row: ResultRow, detail: Optional[DetailRecord] = None) -> CaseRecord:
        """Row fields overlaid with detail fields; detail wins wherever it has a value."""
        record = CaseRecord.from_row(row)
        if detail is None:
            return record
        return record.enriched(detail, tuple(self.collector.collect(detail.history)))

    def merge_all(self, rows: Sequence[ResultRow], details: Sequence[DetailRecord]) -> List[CaseRecord]:
        by_url: Dict[str, DetailRecord] = {d.source_url: d for d in details}
        return [self.merge(row, by_url.get(row.detail_link) if row.detail_link else None) for row in rows]

    def build_outcome(
        self,
        verification: VerificationOutcome,
        records: Sequence[CaseRecord] = (),
        diagnostics: Optional[dict] = None,
        query: Optional[SearchQuery] = None,
    ) -> ExtractionOutcome:
        diagnostics = dict(diagnostics or {})
        diagnostics["verification_status"] = verification.status.value

        if verification.status is VerificationStatus.NO_CASE_FOUND:
            return ExtractionOutcome(
                success=False,
                error_kind=ErrorKind.NO_CASE_FOUND,
                diagnostics=diagnostics,
                query=query,
                message=verification.message,
            )
        if verification.status is VerificationStatus.CAPTCHA_REJECTED:
            return ExtractionOutcome(
                success=False,
                error_kind=ErrorKind.CAPTCHA_FAILED,
                diagnostics=diagnostics,
                query=query,
                message=verification.message,
            )
        if verification.status is VerificationStatus.NO_RESULTS:
            return ExtractionOutcome(
                success=True,
                error_kind=ErrorKind.NO_RESULTS,
                diagnostics=diagnostics,
                query=query,
                message=verification.message,
            )
        if not records:
            diagnostics["extraction_empty"] = True
            logger.warning(f"Page classified {verification.status.value} but nothing was extracted")
            return ExtractionOutcome(
                success=True,
                error_kind=ErrorKind.EXTRACTION_EMPTY,
                diagnostics=diagnostics,
                query=query,
                message="no rows extracted",
            )
        diagnostics["extraction_empty"] = False
        return ExtractionOutcome(
            success=True,
            records=tuple(records),
            diagnostics=diagnostics,
            query=query,
            message=f"{len(records)} records",
        )
