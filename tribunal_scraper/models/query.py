"""SearchQuery data model."""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from tribunal_scraper.lib.errors import InvalidQueryError

_KEY_ALIASES = {
    "bench": ("bench", "bench_name", "location"),
    "case_type": ("case_type", "caseType", "type"),
    "case_number": ("case_number", "caseNumber", "diaryNumber", "diary_number", "cpNo", "cp_no"),
    "year": ("year",),
}


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class SearchQuery:
    """Caller-supplied search parameters.

    Attributes:
        bench: Bench label or site code (required)
        case_type: Case type label or site code
        case_number: Diary/CP number
        year: Filing year
    """

    bench: str
    case_type: Optional[str] = None
    case_number: Optional[str] = None
    year: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("bench", "case_type", "case_number", "year"):
            object.__setattr__(self, name, _clean(getattr(self, name)))
        self._validate()

    def _validate(self) -> None:
        if not self.bench:
            raise InvalidQueryError("bench is required")
        if not (self.case_number or self.case_type or self.year):
            raise InvalidQueryError(
                "at least one of case_number, case_type or year is required alongside bench"
            )

    @classmethod
    def from_dict(cls, data: dict) -> "SearchQuery":
        """Build a query from snake_case or camelCase keys."""
        if not isinstance(data, dict):
            raise InvalidQueryError(f"query must be an object, got {type(data).__name__}")
        values = {}
        for name, aliases in _KEY_ALIASES.items():
            for alias in aliases:
                if data.get(alias) not in (None, ""):
                    values[name] = data[alias]
                    break
        return cls(
            bench=values.get("bench"),
            case_type=values.get("case_type"),
            case_number=values.get("case_number"),
            year=values.get("year"),
        )

    def provided_fields(self) -> dict:
        """Logical field name -> value for every field the caller supplied."""
        return {
            name: getattr(self, name)
            for name in ("bench", "case_type", "case_number", "year")
            if getattr(self, name)
        }

    def cache_key(self, on: Optional[date] = None) -> Tuple[str, str, str]:
        """``(bench, date, list_type)`` key used by result caches.

        The list type for a case search is the case-type/number/year triple.
        """
        day = (on or date.today()).isoformat()
        list_type = "|".join([self.case_type or "", self.case_number or "", self.year or ""])
        return (self.bench.lower(), day, list_type)

    def to_dict(self) -> dict:
        return {
            "bench": self.bench,
            "case_type": self.case_type,
            "case_number": self.case_number,
            "year": self.year,
        }

    def describe(self) -> str:
        parts = [self.bench, self.case_type or "-", self.case_number or "-", self.year or "-"]
        return "/".join(parts)
