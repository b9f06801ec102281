"""Result row extraction through an ordered chain of strategies.

Strategies are tried in order (structured table, generic blocks, raw text
scan) and the first one that yields at least one row wins. Table and block
candidates must pass the same case-shape check before they are accepted.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By

from tribunal_scraper.lib.case_utils import (
    CASE_NUMBER_RE,
    DATE_RE,
    FILING_ID_RE,
    PARTY_SEPARATOR_RE,
    find_filing_numbers,
    first_match,
    is_case_shaped,
    normalize_space,
)
from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.lib.site_profile import SiteProfile
from tribunal_scraper.lib.url_validator import URLValidator
from tribunal_scraper.models.case import ResultRow, SourceStrategy
from tribunal_scraper.services.page_actions import body_text, cell_texts, has_ancestor
from tribunal_scraper.services.result_verifier import LANDMARK_TAGS, is_header_row

logger = get_logger()

MIN_TABLE_CELLS = 3

# Header fragments per field; fields are matched in this order
COLUMN_KEYS = (
    ("status_text", ("status",)),
    ("filing_number", ("filing", "diary")),
    ("case_number", ("case no", "case number", "cp no", "case")),
    ("parties_text", ("part", "petitioner", "title")),
    ("last_listing_date", ("listing", "listed", "hearing", "date")),
    ("serial_number", ("s.no", "s. no", "sr.", "sr no", "serial", "sl.", "#")),
)
POSITIONAL_COLUMNS = ("serial_number", "filing_number", "case_number", "parties_text", "last_listing_date")

CONTAINER_TAGS = ("div", "li", "article", "section")
LANDMARK_ATTR_MARKERS = ("nav", "menu", "footer", "header", "breadcrumb")


def accept_cells(cells: Sequence[str], min_cells: int = MIN_TABLE_CELLS) -> bool:
    """Shape and substance: enough cells, and at least one looks like case data."""
    return len(cells) >= min_cells and any(is_case_shaped(c) for c in cells)


def map_columns(headers: Sequence[str]) -> Dict[str, int]:
    lowered = [normalize_space(h).lower() for h in headers]
    mapping: Dict[str, int] = {}
    used = set()
    for fld, keys in COLUMN_KEYS:
        for idx, h in enumerate(lowered):
            if idx in used or not h:
                continue
            if any(k in h for k in keys):
                mapping[fld] = idx
                used.add(idx)
                break
    return mapping


@dataclass
class ExtractionReport:
    strategy: Optional[str] = None
    rows_scanned: int = 0
    rows_skipped: int = 0
    tried: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "rows_scanned": self.rows_scanned,
            "rows_skipped": self.rows_skipped,
            "strategies_tried": list(self.tried),
        }


class ExtractionStrategy:
    source = SourceStrategy.TABLE

    def __init__(self, profile: SiteProfile):
        self.profile = profile

    def extract(self, page, report: ExtractionReport) -> List[ResultRow]:  # pragma: no cover - abstract
        raise NotImplementedError()

    def _is_status_text(self, text: str) -> bool:
        lowered = (text or "").lower()
        return any(word in lowered for word in self.profile.status_vocabulary)

    def _links(self, element, base_url: str):
        out = []
        try:
            anchors = element.find_elements(By.TAG_NAME, "a")
        except WebDriverException:
            return out
        for a in anchors:
            url = URLValidator.resolve(base_url, a.get_attribute("href"))
            if url:
                out.append((normalize_space(a.text), url))
        return out


class TableStrategy(ExtractionStrategy):
    source = SourceStrategy.TABLE

    def extract(self, page, report: ExtractionReport) -> List[ResultRow]:
        rows: List[ResultRow] = []
        seen = set()
        base_url = page.current_url
        for table in page.find_elements(By.TAG_NAME, "table"):
            try:
                table_rows = table.find_elements(By.TAG_NAME, "tr")
            except WebDriverException:
                continue
            columns: Dict[str, int] = {}
            for tr in table_rows:
                report.rows_scanned += 1
                try:
                    cells = cell_texts(tr)
                    if is_header_row(tr, cells):
                        if not columns:
                            headers = cell_texts(tr, "th") or cells
                            columns = map_columns(headers)
                            logger.debug(f"Table headers {headers} -> {columns}")
                        report.rows_skipped += 1
                        continue
                    if not any(cells) or not accept_cells(cells):
                        report.rows_skipped += 1
                        continue
                    key = tuple(cells)
                    if key in seen:
                        report.rows_skipped += 1
                        continue
                    seen.add(key)
                    rows.append(self._build_row(tr, cells, columns, base_url))
                except WebDriverException as exc:
                    logger.debug(f"Skipping unreadable table row: {exc}")
                    report.rows_skipped += 1
        return rows

    def _build_row(self, tr, cells: List[str], columns: Dict[str, int], base_url: str) -> ResultRow:
        values = {}
        if columns:
            for fld, idx in columns.items():
                if idx < len(cells):
                    values[fld] = cells[idx]
        else:
            for idx, fld in enumerate(POSITIONAL_COLUMNS):
                if idx < len(cells):
                    values[fld] = cells[idx]
            if self._is_status_text(cells[-1]):
                values["status_text"] = cells[-1]

        return ResultRow(
            serial_number=values.get("serial_number", ""),
            filing_number=values.get("filing_number", ""),
            case_number=values.get("case_number", ""),
            parties_text=values.get("parties_text", ""),
            last_listing_date=values.get("last_listing_date", ""),
            status_text=values.get("status_text", ""),
            detail_link=self._detail_link(tr, len(cells), base_url),
            raw_cells=tuple(cells),
            source_strategy=self.source,
        )

    def _detail_link(self, tr, cell_count: int, base_url: str) -> Optional[str]:
        """Status-worded links first, then any link in the last two columns."""
        positioned = []
        for idx, cell in enumerate(tr.find_elements(By.TAG_NAME, "td")):
            for text, url in self._links(cell, base_url):
                if self._is_status_text(text):
                    return url
                positioned.append((idx, url))
        for idx, url in positioned:
            if idx >= cell_count - 2:
                return url
        return None


class BlockStrategy(ExtractionStrategy):
    """Case cards rendered as generic containers instead of table rows."""

    source = SourceStrategy.BLOCK

    def _excluded(self, el) -> bool:
        attrs = " ".join((el.get_attribute(a) or "") for a in ("id", "class", "role")).lower()
        if any(marker in attrs for marker in LANDMARK_ATTR_MARKERS):
            return True
        return has_ancestor(el, LANDMARK_TAGS)

    def _has_shaped_descendant(self, el) -> bool:
        for tag in CONTAINER_TAGS:
            try:
                for child in el.find_elements(By.XPATH, f".//{tag}"):
                    if is_case_shaped(child.text):
                        return True
            except WebDriverException:
                continue
        return False

    def extract(self, page, report: ExtractionReport) -> List[ResultRow]:
        rows: List[ResultRow] = []
        seen = set()
        base_url = page.current_url
        for tag in CONTAINER_TAGS:
            for el in page.find_elements(By.TAG_NAME, tag):
                report.rows_scanned += 1
                try:
                    text = el.text or ""
                    if not is_case_shaped(text) or self._excluded(el) or self._has_shaped_descendant(el):
                        report.rows_skipped += 1
                        continue
                    key = normalize_space(text)
                    if key in seen:
                        report.rows_skipped += 1
                        continue
                    seen.add(key)
                    rows.append(self._build_row(el, text, base_url))
                except WebDriverException as exc:
                    logger.debug(f"Skipping unreadable block: {exc}")
                    report.rows_skipped += 1
        return rows

    def _build_row(self, el, text: str, base_url: str) -> ResultRow:
        lines = [normalize_space(line) for line in text.splitlines() if line.strip()]
        filings = find_filing_numbers(text)
        filing = filings[0] if filings else (first_match(FILING_ID_RE, text) or "")
        parties = next((line for line in lines if PARTY_SEPARATOR_RE.search(line)), "")
        status = next((line for line in lines if self._is_status_text(line)), "")

        links = self._links(el, base_url)
        detail = next((url for t, url in links if self._is_status_text(t)), None)
        if detail is None and links:
            detail = links[-1][1]

        return ResultRow(
            filing_number=filing,
            case_number=first_match(CASE_NUMBER_RE, text.replace(filing, " ") if filing else text) or "",
            parties_text=parties,
            last_listing_date=first_match(DATE_RE, text) or "",
            status_text=status,
            detail_link=detail,
            raw_cells=tuple(lines),
            source_strategy=self.source,
        )


class TextScanStrategy(ExtractionStrategy):
    """Last resort: filing numbers anywhere in the page text."""

    source = SourceStrategy.TEXT_SCAN

    def extract(self, page, report: ExtractionReport) -> List[ResultRow]:
        found = find_filing_numbers(body_text(page))
        report.rows_scanned += len(found)
        return [
            ResultRow(filing_number=num, raw_cells=(num,), source_strategy=self.source)
            for num in found
        ]


class TableExtractor:
    """Runs the strategy chain; never raises, an empty list means nothing extractable."""

    def __init__(self, profile: SiteProfile, strategies: Optional[Sequence[ExtractionStrategy]] = None):
        self.profile = profile
        self.strategies = list(strategies) if strategies is not None else [
            TableStrategy(profile),
            BlockStrategy(profile),
            TextScanStrategy(profile),
        ]
        self.last_report = ExtractionReport()

    def extract(self, page) -> List[ResultRow]:
        report = ExtractionReport()
        self.last_report = report
        for strategy in self.strategies:
            name = strategy.source.value
            report.tried.append(name)
            try:
                rows = strategy.extract(page, report)
            except WebDriverException as exc:
                logger.warning(f"Extraction strategy {name} failed: {exc}")
                continue
            if rows:
                report.strategy = name
                logger.info(f"Extracted {len(rows)} rows with {name} strategy")
                return rows
            logger.debug(f"Strategy {name} found no rows")
        logger.warning("No strategy extracted any rows")
        return []
