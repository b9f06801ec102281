"""Listing history (hearing/order) tables on case detail pages."""

from typing import Dict, List, Sequence

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By

from tribunal_scraper.lib.case_utils import normalize_space
from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.lib.site_profile import SiteProfile
from tribunal_scraper.lib.url_validator import URLValidator
from tribunal_scraper.models.history_entry import DocumentLink, HistoryEntry
from tribunal_scraper.services.page_actions import cell_texts

logger = get_logger()

HISTORY_COLUMN_KEYS = (
    ("serial_no", ("s.no", "s. no", "sr", "serial", "#")),
    ("date_of_listing", ("listing", "hearing")),
    ("date_of_upload", ("upload",)),
    ("order_label", ("order", "judgement", "judgment")),
)
POSITIONAL_HISTORY = ("serial_no", "date_of_listing", "date_of_upload", "order_label")


def is_history_header(headers: Sequence[str]) -> bool:
    joined = " ".join(headers).lower()
    if "date" in joined and ("listing" in joined or "upload" in joined):
        return True
    return "order" in joined or "judgment" in joined or "judgement" in joined


def map_history_columns(headers: Sequence[str]) -> Dict[str, int]:
    lowered = [normalize_space(h).lower() for h in headers]
    mapping: Dict[str, int] = {}
    for fld, keys in HISTORY_COLUMN_KEYS:
        for idx, h in enumerate(lowered):
            if idx not in mapping.values() and any(k in h for k in keys):
                mapping[fld] = idx
                break
    if not mapping:
        mapping = {fld: idx for idx, fld in enumerate(POSITIONAL_HISTORY)}
    return mapping


class ListingHistoryParser:
    def __init__(self, profile: SiteProfile):
        self.profile = profile

    def _table_headers(self, table) -> List[str]:
        rows = table.find_elements(By.TAG_NAME, "tr")
        if not rows:
            return []
        return cell_texts(rows[0], "th") or cell_texts(rows[0])

    def is_history_table(self, table) -> bool:
        try:
            return is_history_header(self._table_headers(table))
        except WebDriverException:
            return False

    def parse(self, page) -> List[HistoryEntry]:
        """History entries of every history table, in document order."""
        entries: List[HistoryEntry] = []
        base_url = page.current_url
        for table in page.find_elements(By.TAG_NAME, "table"):
            try:
                headers = self._table_headers(table)
                if not is_history_header(headers):
                    continue
                columns = map_history_columns(headers)
                for tr in table.find_elements(By.TAG_NAME, "tr")[1:]:
                    entry = self._parse_row(tr, columns, base_url)
                    if entry is not None:
                        entries.append(entry)
            except WebDriverException as exc:
                logger.debug(f"Skipping unreadable history table: {exc}")
        logger.debug(f"Parsed {len(entries)} history entries")
        return entries

    def _parse_row(self, tr, columns: Dict[str, int], base_url: str):
        cells = cell_texts(tr)
        if not any(cells):
            return None

        def col(name: str) -> str:
            idx = columns.get(name)
            return cells[idx] if idx is not None and idx < len(cells) else ""

        links = self._document_links(tr, base_url)
        return HistoryEntry(
            serial_no=col("serial_no"),
            date_of_listing=col("date_of_listing"),
            date_of_upload=col("date_of_upload"),
            order_label=col("order_label"),
            document_links=tuple(links),
            primary_document=links[0] if links else None,
        )

    def _document_links(self, tr, base_url: str) -> List[DocumentLink]:
        vocab = self.profile.document_vocabulary
        links: List[DocumentLink] = []
        seen = set()
        for a in tr.find_elements(By.TAG_NAME, "a"):
            href = a.get_attribute("href") or ""
            text = normalize_space(a.text)
            haystack = f"{href} {text}".lower()
            if not any(word in haystack for word in vocab):
                continue
            url = URLValidator.resolve(base_url, href)
            if url and url not in seen:
                seen.add(url)
                links.append(DocumentLink(url=url, display_text=text))
        return links
