"""HistoryEntry and DocumentLink data models."""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from tribunal_scraper.lib.case_utils import parse_date_str


@dataclass(frozen=True)
class DocumentLink:
    """A link to an order/judgment document. Identity is the url."""

    url: str
    display_text: str = ""

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise ValueError("DocumentLink url cannot be empty")

    def to_dict(self) -> dict:
        return {"url": self.url, "display_text": self.display_text}

    @classmethod
    def from_dict(cls, data: dict) -> "DocumentLink":
        return cls(url=data["url"], display_text=data.get("display_text") or "")


@dataclass(frozen=True)
class HistoryEntry:
    """One row of a detail page's listing history table.

    Attributes:
        serial_no: S.No as printed
        date_of_listing: Hearing/listing date text
        date_of_upload: Order upload date text
        order_label: Order/judgment cell text
        document_links: Document links of the row, in encounter order
        primary_document: Single-link view for older consumers (first link)
    """

    serial_no: str = ""
    date_of_listing: str = ""
    date_of_upload: str = ""
    order_label: str = ""
    document_links: Tuple[DocumentLink, ...] = ()
    primary_document: Optional[DocumentLink] = None

    @property
    def listing_date(self) -> Optional[date]:
        return parse_date_str(self.date_of_listing)

    @property
    def upload_date(self) -> Optional[date]:
        return parse_date_str(self.date_of_upload)

    def to_dict(self) -> dict:
        listing = self.listing_date
        upload = self.upload_date
        return {
            "serial_no": self.serial_no,
            "date_of_listing": self.date_of_listing,
            "date_of_upload": self.date_of_upload,
            "listing_date": listing.isoformat() if listing else None,
            "upload_date": upload.isoformat() if upload else None,
            "order_label": self.order_label,
            "document_links": [d.to_dict() for d in self.document_links],
            "primary_document": self.primary_document.to_dict() if self.primary_document else None,
        }
