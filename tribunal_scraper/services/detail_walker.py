"""Visits case detail pages for actionable result rows."""

from dataclasses import dataclass, fields as dataclass_fields
from typing import Dict, List, Optional, Sequence

from selenium.common.exceptions import InvalidSessionIdException, NoSuchWindowException, WebDriverException
from selenium.webdriver.common.by import By

from tribunal_scraper.lib.config import Config
from tribunal_scraper.lib.deadline import Deadline
from tribunal_scraper.lib.errors import DetailPageFailure, NavigationError
from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.lib.rate_limiter import EthicalRateLimiter
from tribunal_scraper.lib.site_profile import SiteProfile
from tribunal_scraper.models.case import DetailRecord, ResultRow
from tribunal_scraper.services.history_parser import ListingHistoryParser
from tribunal_scraper.services.navigation import NavigationController
from tribunal_scraper.services.page_actions import row_cell_texts

logger = get_logger()

_DETAIL_FIELDS = frozenset(f.name for f in dataclass_fields(DetailRecord)) - {"source_url", "history"}

# The browser itself is gone; no later row can succeed
SESSION_LOST_ERRORS = (InvalidSessionIdException, NoSuchWindowException)


@dataclass
class WalkReport:
    visited: int = 0
    failed: int = 0
    skipped_status: int = 0
    skipped_deadline: int = 0

    def to_dict(self) -> dict:
        return {
            "detail_pages_visited": self.visited,
            "detail_pages_failed": self.failed,
            "detail_pages_skipped_status": self.skipped_status,
            "detail_pages_skipped_deadline": self.skipped_deadline,
        }


class DetailPageWalker:
    """Follows detail links one row at a time and returns to the results page between rows."""

    def __init__(
        self,
        profile: SiteProfile,
        navigation: NavigationController,
        history_parser: Optional[ListingHistoryParser] = None,
        rate_limiter: Optional[EthicalRateLimiter] = None,
        actionable_statuses: Optional[Sequence[str]] = None,
        min_budget_seconds: Optional[float] = None,
    ):
        self.profile = profile
        self.navigation = navigation
        self.history_parser = history_parser or ListingHistoryParser(profile)
        self.rate_limiter = rate_limiter or EthicalRateLimiter(interval_seconds=Config.get_row_delay_seconds())
        self.actionable_statuses = tuple(
            s.lower() for s in (actionable_statuses if actionable_statuses is not None else Config.get_actionable_statuses())
        )
        self.min_budget_seconds = (
            Config.get_min_detail_budget_seconds() if min_budget_seconds is None else min_budget_seconds
        )
        self.last_report = WalkReport()

    def is_actionable(self, row: ResultRow) -> bool:
        if not row.detail_link:
            return False
        status = (row.status_text or "").lower()
        return any(s in status for s in self.actionable_statuses)

    def walk(self, page, rows: Sequence[ResultRow], deadline: Optional[Deadline] = None) -> List[DetailRecord]:
        report = WalkReport()
        self.last_report = report
        deadline = deadline or Deadline.unbounded()
        results_url = self.navigation.current_url
        records: List[DetailRecord] = []

        targets = []
        for row in rows:
            if self.is_actionable(row):
                targets.append(row)
            else:
                report.skipped_status += 1

        for i, row in enumerate(targets):
            if not deadline.has_budget(self.min_budget_seconds):
                report.skipped_deadline = len(targets) - i
                logger.warning(
                    f"Deadline budget low ({deadline.remaining():.0f}s left), "
                    f"skipping {report.skipped_deadline} detail pages"
                )
                break

            self.rate_limiter.wait_if_needed()
            report.visited += 1
            try:
                records.append(self.visit(page, row.detail_link))
            except SESSION_LOST_ERRORS:
                raise
            except (NavigationError, DetailPageFailure, WebDriverException) as exc:
                report.failed += 1
                logger.warning(f"Detail page for {row.filing_number or row.detail_link} failed: {exc}")
            finally:
                if results_url:
                    self._return_to(results_url)

        logger.info(
            f"Detail walk: {report.visited} visited, {report.failed} failed, "
            f"{report.skipped_status} not actionable, {report.skipped_deadline} skipped for deadline"
        )
        return records

    def visit(self, page, url: str) -> DetailRecord:
        self.navigation.open(url)
        try:
            history = self.history_parser.parse(page)
            fields = self.parse_key_values(page)
        except SESSION_LOST_ERRORS:
            raise
        except WebDriverException as exc:
            raise DetailPageFailure(f"could not read {url}: {exc}") from exc
        record = DetailRecord(source_url=url, history=tuple(history), **fields)
        if record.is_empty:
            raise DetailPageFailure(f"no case details on {url}")
        return record

    def _return_to(self, url: str) -> None:
        try:
            self.navigation.back_to(url)
        except SESSION_LOST_ERRORS:
            raise
        except (NavigationError, WebDriverException) as exc:
            logger.warning(f"Could not return to results page: {exc}")

    def parse_key_values(self, page) -> Dict[str, str]:
        """Label/value pairs from non-history tables (``label | value`` cells, repeated per row)."""
        parsed: Dict[str, str] = {}
        for table in page.find_elements(By.TAG_NAME, "table"):
            try:
                if self.history_parser.is_history_table(table):
                    continue
                for tr in table.find_elements(By.TAG_NAME, "tr"):
                    cells = row_cell_texts(tr)
                    for j in range(0, len(cells) - 1, 2):
                        fld = self._label_field(cells[j])
                        if fld in _DETAIL_FIELDS and cells[j + 1] and fld not in parsed:
                            parsed[fld] = cells[j + 1]
            except WebDriverException:
                continue
        return parsed

    def _label_field(self, label: str) -> Optional[str]:
        lowered = (label or "").strip().lower().rstrip(":").strip()
        if not lowered or len(lowered) > 60:
            return None
        for key, fld in self.profile.detail_labels:
            if key in lowered:
                return fld
        return None
