"""Form submission: direct results link first, in-page form submit as fallback."""

import base64
from urllib.parse import urlencode

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By

from tribunal_scraper.lib.errors import NavigationError
from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.lib.site_profile import LOGICAL_FIELDS, SiteProfile
from tribunal_scraper.models.outcome import SubmissionOutcome
from tribunal_scraper.models.query import SearchQuery
from tribunal_scraper.services.navigation import NavigationController
from tribunal_scraper.services.page_actions import safe_click

logger = get_logger()


def encode_param(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


class SubmissionController:
    def __init__(self, profile: SiteProfile, navigation: NavigationController):
        self.profile = profile
        self.navigation = navigation

    def normalized_params(self, query: SearchQuery) -> dict:
        """Logical field -> site value for every field the query supplies."""
        values = {
            "bench": self.profile.resolve_bench(query.bench),
            "case_type": self.profile.resolve_case_type(query.case_type),
            "case_number": query.case_number,
            "year": query.year,
        }
        return {k: v for k, v in values.items() if v}

    def build_direct_link(self, query: SearchQuery) -> str:
        """Results URL with each parameter base64-encoded, as the site's share links are."""
        params = self.normalized_params(query)
        pairs = [
            (self.profile.link_params.get(name, name), encode_param(params[name]))
            for name in LOGICAL_FIELDS
            if name in params
        ]
        return f"{self.profile.results_url}?{urlencode(pairs)}"

    def in_results_context(self) -> bool:
        return self.profile.is_results_url(self.navigation.current_url)

    def submit(self, page, query: SearchQuery) -> SubmissionOutcome:
        if self.in_results_context():
            logger.info("Already on results page after captcha submission")
            return SubmissionOutcome(True, self.navigation.current_url, "form-submit")

        link = self.build_direct_link(query)
        try:
            self.navigation.open(link)
            if self.in_results_context():
                logger.info(f"Reached results via direct link: {link}")
                return SubmissionOutcome(True, self.navigation.current_url, "direct-link")
            logger.warning(f"Direct link redirected to {self.navigation.current_url}")
        except NavigationError as exc:
            logger.warning(f"Direct link navigation failed: {exc}")

        if self.find_search_form(page) is None:
            try:
                self.navigation.back()
            except NavigationError as exc:
                logger.warning(f"Could not return to the search form: {exc}")

        submitted = self.submit_form(page)
        reached = submitted and self.in_results_context()
        if not reached:
            logger.warning("Form submission did not reach a results page")
        return SubmissionOutcome(reached, self.navigation.current_url, "form-submit" if submitted else "none")

    def _is_excluded(self, form) -> bool:
        attrs = " ".join(
            (form.get_attribute(a) or "") for a in ("id", "class", "action")
        ).lower()
        return any(marker in attrs for marker in self.profile.excluded_form_markers)

    def find_search_form(self, page):
        """The form holding the most of the expected fields; all four wins outright.

        Site-wide utility forms (header search etc.) are never chosen.
        """
        try:
            forms = page.find_elements(By.TAG_NAME, "form")
        except WebDriverException:
            return None
        names = [self.profile.field_names.get(f, f) for f in LOGICAL_FIELDS]
        best, best_score = None, 0
        for form in forms:
            try:
                if self._is_excluded(form):
                    continue
                score = sum(1 for n in names if form.find_elements(By.NAME, n))
            except WebDriverException:
                continue
            if score == len(names):
                return form
            if score > best_score:
                best, best_score = form, score
        return best

    def _submit_control(self, form):
        for btn in form.find_elements(By.TAG_NAME, "button"):
            if (btn.get_attribute("type") or "submit").lower() == "submit":
                return btn
        for inp in form.find_elements(By.TAG_NAME, "input"):
            if (inp.get_attribute("type") or "").lower() in ("submit", "image"):
                return inp
        return None

    def submit_form(self, page) -> bool:
        """Submit the search form in place. Returns False when no form was found."""
        form = self.find_search_form(page)
        if form is None:
            logger.warning("[UI_ACTION] No search form found on page")
            return False
        try:
            control = self._submit_control(form)
            if control is not None:
                logger.info("[UI_ACTION] Clicking search form submit control")
                safe_click(page, control)
            else:
                logger.info("[UI_ACTION] No submit control, submitting form via JavaScript")
                page.execute_script("arguments[0].submit();", form)
        except WebDriverException as exc:
            logger.error(f"[UI_ACTION] Form submission failed: {exc}")
            return False
        self.navigation.wait_until_ready(self.navigation.current_url)
        return True
