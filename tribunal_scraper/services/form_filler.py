"""Fills the case search form from a SearchQuery."""

from typing import List, Optional, Sequence, Tuple

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import Select

from tribunal_scraper.lib.config import Config
from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.lib.site_profile import LOGICAL_FIELDS, SiteProfile
from tribunal_scraper.models.outcome import FieldStatus, FillReport
from tribunal_scraper.models.query import SearchQuery
from tribunal_scraper.services.page_actions import safe_send_keys

logger = get_logger()

Option = Tuple[str, str]  # (value, visible text)


def match_option(options: Sequence[Option], candidates: Sequence[str], year_fallback: bool = False) -> Optional[int]:
    """Return the index of the option that best matches any candidate.

    Order: exact value, exact text, then case-insensitive containment in
    either direction. Placeholder options (empty value) never match. A year
    selector with no match falls back to the first non-empty option.
    """
    wanted = [c.strip().lower() for c in candidates if c and c.strip()]
    normalized = [((v or "").strip().lower(), (t or "").strip().lower()) for v, t in options]

    for w in wanted:
        for i, (value, _) in enumerate(normalized):
            if value and value == w:
                return i
    for w in wanted:
        for i, (value, text) in enumerate(normalized):
            if value and text == w:
                return i
    for w in wanted:
        for i, (value, text) in enumerate(normalized):
            if not value or not text:
                continue
            if w in text or text in w:
                return i

    if year_fallback:
        for i, (value, _) in enumerate(normalized):
            if value:
                return i
    return None


class FormFiller:
    """Maps logical query fields onto the live form's inputs and dropdowns."""

    def __init__(self, profile: SiteProfile, min_filled_fields: Optional[int] = None):
        self.profile = profile
        self.min_filled_fields = Config.get_min_filled_fields() if min_filled_fields is None else min_filled_fields

    def fill(self, page, query: SearchQuery) -> FillReport:
        report = FillReport()
        provided = query.provided_fields()

        for logical in LOGICAL_FIELDS:
            value = provided.get(logical)
            if not value:
                report.fields[logical] = FieldStatus.SKIPPED
                continue

            element = self._locate_field(page, self.profile.field_names.get(logical, logical))
            if element is None:
                logger.warning(f"[UI_ACTION] Form field for {logical} not found")
                report.fields[logical] = FieldStatus.FAILED
                continue

            try:
                selected = self._fill_element(page, element, logical, value)
            except WebDriverException as exc:
                logger.warning(f"[UI_ACTION] Filling {logical} failed: {exc}")
                selected = None

            if selected is None:
                report.fields[logical] = FieldStatus.FAILED
            else:
                report.fields[logical] = FieldStatus.FILLED
                report.selected[logical] = selected

        if report.partial:
            logger.warning(
                f"Form filled partially: {report.filled_count} filled, "
                f"failed={report.failed_fields}"
            )
        else:
            logger.info(f"Form filled: {report.selected}")
        return report

    def is_acceptable(self, report: FillReport) -> bool:
        return report.acceptable(self.min_filled_fields)

    def candidates_for(self, logical: str, value: str) -> List[str]:
        """Site code first, then the caller's text."""
        if logical == "bench":
            resolved = self.profile.resolve_bench(value)
        elif logical == "case_type":
            resolved = self.profile.resolve_case_type(value)
        else:
            resolved = value
        out = [resolved] if resolved else []
        if value not in out:
            out.append(value)
        return out

    def _locate_field(self, page, name: str):
        for by in (By.NAME, By.ID):
            try:
                found = page.find_elements(by, name)
            except WebDriverException:
                continue
            if found:
                return found[0]
        return None

    def _fill_element(self, page, element, logical: str, value: str) -> Optional[str]:
        tag = (element.tag_name or "").lower()
        if tag == "select":
            return self._select_option(page, element, logical, value)
        safe_send_keys(page, element, value)
        return value

    def _select_option(self, page, select, logical: str, value: str) -> Optional[str]:
        option_elements = select.find_elements(By.TAG_NAME, "option")
        options = [((o.get_attribute("value") or ""), (o.text or "")) for o in option_elements]
        idx = match_option(options, self.candidates_for(logical, value), year_fallback=(logical == "year"))
        if idx is None:
            logger.warning(f"[UI_ACTION] No option for {logical}={value!r} among {len(options)} options")
            return None

        chosen_value, chosen_text = options[idx]
        logger.info(f"[UI_ACTION] Selecting {logical} option '{chosen_text.strip()}' (value={chosen_value})")
        try:
            Select(select).select_by_index(idx)
        except (WebDriverException, NotImplementedError) as exc:
            logger.info(f"[UI_ACTION] Select helper failed for {logical}, setting value via JavaScript: {exc}")
            page.execute_script(
                "arguments[0].value = arguments[1];"
                "arguments[0].dispatchEvent(new Event('change', {bubbles: true}));",
                select,
                chosen_value,
            )
        return chosen_value
