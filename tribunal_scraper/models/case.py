"""Result row, detail record and case record data models."""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Optional, Tuple

from tribunal_scraper.models.history_entry import DocumentLink, HistoryEntry


class SourceStrategy(str, Enum):
    TABLE = "table"
    BLOCK = "block"
    TEXT_SCAN = "text-scan"


# CaseRecord fields a DetailRecord overrides when it has a value
MERGEABLE_FIELDS = (
    "filing_number",
    "case_number",
    "parties_text",
    "status_text",
    "filing_date",
    "petitioner_advocate",
    "respondent_advocate",
    "registered_on",
    "next_listing_date",
)


@dataclass(frozen=True)
class ResultRow:
    """One candidate case row from a results page.

    Attributes:
        raw_cells: Cell texts in column order
        source_strategy: Which extraction strategy produced the row
    """

    serial_number: str = ""
    filing_number: str = ""
    case_number: str = ""
    parties_text: str = ""
    last_listing_date: str = ""
    status_text: str = ""
    detail_link: Optional[str] = None
    raw_cells: Tuple[str, ...] = ()
    source_strategy: SourceStrategy = SourceStrategy.TABLE

    @property
    def has_minimum_cells(self) -> bool:
        return len(self.raw_cells) >= 3

    @property
    def key(self) -> str:
        """Identity used to pair rows with detail records."""
        return self.detail_link or self.filing_number or "|".join(self.raw_cells)

    def to_dict(self) -> dict:
        return {
            "serial_number": self.serial_number,
            "filing_number": self.filing_number,
            "case_number": self.case_number,
            "parties_text": self.parties_text,
            "last_listing_date": self.last_listing_date,
            "status_text": self.status_text,
            "detail_link": self.detail_link,
            "raw_cells": list(self.raw_cells),
            "source_strategy": self.source_strategy.value,
        }


@dataclass(frozen=True)
class DetailRecord:
    """Data read from one case detail page."""

    source_url: str
    filing_number: str = ""
    filing_date: str = ""
    case_number: str = ""
    parties_text: str = ""
    petitioner_advocate: str = ""
    respondent_advocate: str = ""
    registered_on: str = ""
    last_listed: str = ""
    next_listing_date: str = ""
    status_text: str = ""
    history: Tuple[HistoryEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.history and not any(
            getattr(self, f.name) for f in fields(self) if f.name not in ("source_url", "history")
        )


@dataclass(frozen=True)
class CaseRecord:
    """Final per-case record handed to persistence collaborators."""

    filing_number: str = ""
    case_number: str = ""
    parties_text: str = ""
    status_text: str = ""
    serial_number: str = ""
    last_listing_date: str = ""
    detail_link: Optional[str] = None
    filing_date: str = ""
    petitioner_advocate: str = ""
    respondent_advocate: str = ""
    registered_on: str = ""
    next_listing_date: str = ""
    history: Tuple[HistoryEntry, ...] = ()
    document_links: Tuple[DocumentLink, ...] = ()
    has_detailed_info: bool = False
    source_strategy: SourceStrategy = SourceStrategy.TABLE
    raw_cells: Tuple[str, ...] = field(default=(), compare=False)

    @classmethod
    def from_row(cls, row: ResultRow) -> "CaseRecord":
        return cls(
            filing_number=row.filing_number,
            case_number=row.case_number,
            parties_text=row.parties_text,
            status_text=row.status_text,
            serial_number=row.serial_number,
            last_listing_date=row.last_listing_date,
            detail_link=row.detail_link,
            source_strategy=row.source_strategy,
            raw_cells=row.raw_cells,
        )

    def enriched(self, detail: DetailRecord, document_links: Tuple[DocumentLink, ...]) -> "CaseRecord":
        """Overlay non-empty detail values onto this record."""
        changes = {
            name: getattr(detail, name)
            for name in MERGEABLE_FIELDS
            if getattr(detail, name)
        }
        if detail.last_listed:
            changes["last_listing_date"] = detail.last_listed
        return replace(
            self,
            history=tuple(detail.history),
            document_links=tuple(document_links),
            has_detailed_info=True,
            **changes,
        )

    def to_dict(self) -> dict:
        return {
            "filing_number": self.filing_number,
            "case_number": self.case_number,
            "parties_text": self.parties_text,
            "status_text": self.status_text,
            "serial_number": self.serial_number,
            "last_listing_date": self.last_listing_date,
            "detail_link": self.detail_link,
            "filing_date": self.filing_date,
            "petitioner_advocate": self.petitioner_advocate,
            "respondent_advocate": self.respondent_advocate,
            "registered_on": self.registered_on,
            "next_listing_date": self.next_listing_date,
            "history": [h.to_dict() for h in self.history],
            "document_links": [d.to_dict() for d in self.document_links],
            "has_detailed_info": self.has_detailed_info,
            "source_strategy": self.source_strategy.value,
        }
