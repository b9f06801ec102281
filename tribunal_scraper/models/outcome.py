"""Outcome and report types passed between pipeline stages."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from tribunal_scraper.models.case import CaseRecord
from tribunal_scraper.models.query import SearchQuery


class ErrorKind(str, Enum):
    NO_CASE_FOUND = "NO_CASE_FOUND"
    CAPTCHA_FAILED = "CAPTCHA_FAILED"
    NO_RESULTS = "NO_RESULTS"
    EXTRACTION_EMPTY = "EXTRACTION_EMPTY"
    FORM_FILL_FAILED = "FORM_FILL_FAILED"
    NAVIGATION_FAILED = "NAVIGATION_FAILED"
    INVALID_QUERY = "INVALID_QUERY"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"
    INFRASTRUCTURE = "INFRASTRUCTURE"


class VerificationStatus(str, Enum):
    NO_CASE_FOUND = "NO_CASE_FOUND"
    CAPTCHA_REJECTED = "CAPTCHA_REJECTED"
    NO_RESULTS = "NO_RESULTS"
    HAS_RESULTS = "HAS_RESULTS"
    AMBIGUOUS_CONTENT = "AMBIGUOUS_CONTENT"


class FieldStatus(str, Enum):
    FILLED = "filled"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FillReport:
    """Per-field result of filling the search form."""

    fields: Dict[str, FieldStatus] = field(default_factory=dict)
    selected: Dict[str, str] = field(default_factory=dict)

    @property
    def filled_count(self) -> int:
        return sum(1 for s in self.fields.values() if s is FieldStatus.FILLED)

    @property
    def skipped_count(self) -> int:
        return sum(1 for s in self.fields.values() if s is FieldStatus.SKIPPED)

    @property
    def failed_fields(self) -> List[str]:
        return [name for name, s in self.fields.items() if s is FieldStatus.FAILED]

    @property
    def partial(self) -> bool:
        return bool(self.failed_fields)

    def acceptable(self, min_fields: int) -> bool:
        """Fields the query did not supply count towards the threshold."""
        return self.filled_count + self.skipped_count >= min_fields


@dataclass(frozen=True)
class CaptchaChallenge:
    image_bytes: bytes
    attempt: int


@dataclass(frozen=True)
class CaptchaOutcome:
    solved: bool
    attempts: int
    present: bool = True
    answer: Optional[str] = None
    states: Tuple[str, ...] = ()
    solver_calls: int = 0


@dataclass(frozen=True)
class SubmissionOutcome:
    reached_results_context: bool
    url: str
    strategy: str = ""


@dataclass(frozen=True)
class VerificationOutcome:
    status: VerificationStatus
    message: str = ""
    score: int = 0
    row_count: int = 0


@dataclass
class ExtractionOutcome:
    """Result of one query; the primary channel for empty/not-found conditions."""

    success: bool
    error_kind: Optional[ErrorKind] = None
    records: Tuple[CaseRecord, ...] = ()
    diagnostics: Dict[str, object] = field(default_factory=dict)
    query: Optional[SearchQuery] = None
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.message,
            "query": self.query.to_dict() if self.query else None,
            "records": [r.to_dict() for r in self.records],
            "diagnostics": dict(self.diagnostics),
        }


@dataclass
class BatchItem:
    """One query's entry in a batch summary."""

    query: dict
    status: str
    outcome: Optional[ExtractionOutcome] = None
    error: str = ""
    from_cache: bool = False

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "status": self.status,
            "from_cache": self.from_cache,
            "error": self.error,
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }


@dataclass
class BatchSummary:
    items: List[BatchItem] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def _count(self, status: str) -> int:
        return sum(1 for i in self.items if i.status == status)

    @property
    def succeeded(self) -> int:
        return self._count("succeeded")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    def to_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "items": [i.to_dict() for i in self.items],
        }
