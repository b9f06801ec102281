"""Classifies the page reached after submission."""

import re
from typing import Tuple

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By

from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.lib.site_profile import SiteProfile
from tribunal_scraper.models.outcome import VerificationOutcome, VerificationStatus
from tribunal_scraper.services.page_actions import body_text, cell_texts

logger = get_logger()

LANDMARK_TAGS = ("nav", "header", "footer")
HEADER_CELL_MARKERS = ("s.no", "s. no", "sr. no", "sr.no", "serial", "filing")


def is_header_row(row, cells=None) -> bool:
    """Rows built from <th> cells, or whose first cell reads like a column title."""
    try:
        if row.find_elements(By.TAG_NAME, "th"):
            return True
    except WebDriverException:
        return False
    cells = cell_texts(row) if cells is None else cells
    first = cells[0].lower() if cells else ""
    return any(marker in first for marker in HEADER_CELL_MARKERS)


class ResultVerifier:
    """Weighted page classification.

    One point each for: a table, domain keywords outside navigation landmarks,
    and data rows (3+ cells, not header-shaped). No-record phrases win outright,
    then captcha rejection messages.
    """

    def __init__(self, profile: SiteProfile, min_score: int = 2):
        self.profile = profile
        self.min_score = min_score
        self._negative_res = [re.compile(p, re.IGNORECASE) for p in profile.negative_result_patterns]
        self._rejection_res = [re.compile(p, re.IGNORECASE) for p in profile.captcha_rejection_patterns]

    def verify(self, page) -> VerificationOutcome:
        text = body_text(page)
        for r in self._negative_res:
            m = r.search(text)
            if m:
                logger.info(f"Results page reports no case: {m.group(0)!r}")
                return VerificationOutcome(VerificationStatus.NO_CASE_FOUND, m.group(0))
        for r in self._rejection_res:
            m = r.search(text)
            if m:
                logger.warning(f"Results page rejected the captcha: {m.group(0)!r}")
                return VerificationOutcome(VerificationStatus.CAPTCHA_REJECTED, m.group(0))

        tables, row_count = self._count_data_rows(page)
        content = self._content_text(page, text).lower()
        keywords = [k for k in self.profile.result_keywords if k in content]

        score = 0
        if tables:
            score += 1
        if keywords:
            score += 1
        if row_count > 0:
            score += 1

        if score >= self.min_score and row_count > 0:
            status = VerificationStatus.HAS_RESULTS
        elif score >= self.min_score:
            status = VerificationStatus.AMBIGUOUS_CONTENT
        else:
            status = VerificationStatus.NO_RESULTS

        message = f"tables={tables} rows={row_count} keywords={keywords}"
        logger.info(f"Verification {status.value} (score={score}): {message}")
        return VerificationOutcome(status, message, score=score, row_count=row_count)

    def _count_data_rows(self, page) -> Tuple[int, int]:
        try:
            tables = page.find_elements(By.TAG_NAME, "table")
        except WebDriverException:
            return 0, 0
        rows = 0
        for table in tables:
            try:
                for row in table.find_elements(By.TAG_NAME, "tr"):
                    cells = cell_texts(row)
                    if len(cells) >= 3 and any(cells) and not is_header_row(row, cells):
                        rows += 1
            except WebDriverException:
                continue
        return len(tables), rows

    def _content_text(self, page, text: str) -> str:
        """Body text minus navigation landmarks, whose menus reuse domain words."""
        for tag in LANDMARK_TAGS:
            try:
                for el in page.find_elements(By.TAG_NAME, tag):
                    landmark = el.text or ""
                    if landmark:
                        text = text.replace(landmark, " ")
            except WebDriverException:
                continue
        return text
