"""End-to-end case search: form, captcha, submission, verification, extraction."""

import time
from typing import Optional

from tribunal_scraper.lib.config import Config
from tribunal_scraper.lib.deadline import Deadline
from tribunal_scraper.lib.errors import NavigationError
from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.lib.rate_limiter import EthicalRateLimiter
from tribunal_scraper.lib.site_profile import SiteProfile
from tribunal_scraper.metrics_emitter import emit_metric, incr_metric
from tribunal_scraper.models.outcome import ErrorKind, ExtractionOutcome, VerificationStatus
from tribunal_scraper.models.query import SearchQuery
from tribunal_scraper.services.captcha_handler import CaptchaHandler
from tribunal_scraper.services.captcha_solver import CaptchaSolver
from tribunal_scraper.services.detail_walker import DetailPageWalker
from tribunal_scraper.services.form_filler import FormFiller
from tribunal_scraper.services.navigation import BrowserSession, NavigationController
from tribunal_scraper.services.result_aggregator import ResultAggregator
from tribunal_scraper.services.result_verifier import ResultVerifier
from tribunal_scraper.services.submission import SubmissionController
from tribunal_scraper.services.table_extractor import TableExtractor

logger = get_logger()


class CaseSearchService:
    """Runs one query at a time on a shared browser session.

    Content problems come back as ``ExtractionOutcome`` values. Only an
    unreachable form page (after one retry) or a dead browser raises.
    """

    def __init__(
        self,
        session: BrowserSession,
        profile: Optional[SiteProfile] = None,
        solver: Optional[CaptchaSolver] = None,
        max_captcha_attempts: Optional[int] = None,
        row_rate_limiter: Optional[EthicalRateLimiter] = None,
        actionable_statuses=None,
        min_detail_budget_seconds: Optional[float] = None,
    ):
        self.session = session
        self.profile = profile or SiteProfile.from_config()
        self.solver = solver
        self.max_captcha_attempts = (
            Config.get_captcha_max_attempts() if max_captcha_attempts is None else max_captcha_attempts
        )
        self.row_rate_limiter = row_rate_limiter or EthicalRateLimiter(
            interval_seconds=Config.get_row_delay_seconds()
        )
        self.actionable_statuses = actionable_statuses
        self.min_detail_budget_seconds = min_detail_budget_seconds

        self.form_filler = FormFiller(self.profile)
        self.verifier = ResultVerifier(self.profile)
        self.extractor = TableExtractor(self.profile)
        self.aggregator = ResultAggregator()

    def _open_form(self, navigation: NavigationController) -> None:
        try:
            navigation.open(self.profile.form_url)
        except NavigationError as exc:
            logger.warning(f"Opening search form failed, retrying once: {exc}")
            navigation.open(self.profile.form_url)

    def search(self, query: SearchQuery, deadline: Optional[Deadline] = None) -> ExtractionOutcome:
        deadline = deadline or Deadline.unbounded()
        started = time.monotonic()
        diagnostics: dict = {"query": query.describe()}

        if deadline.expired():
            logger.warning(f"Deadline exhausted before searching {query.describe()}")
            return ExtractionOutcome(
                success=False,
                error_kind=ErrorKind.DEADLINE_EXCEEDED,
                diagnostics=diagnostics,
                query=query,
                message="run deadline exhausted",
            )

        logger.info(f"Searching {query.describe()}")
        page = self.session.get_driver()
        navigation = NavigationController(page)
        submission = SubmissionController(self.profile, navigation)
        captcha = CaptchaHandler(
            self.profile,
            self.solver,
            navigation,
            submit_form=submission.submit_form,
            max_attempts=self.max_captcha_attempts,
        )
        walker = DetailPageWalker(
            self.profile,
            navigation,
            rate_limiter=self.row_rate_limiter,
            actionable_statuses=self.actionable_statuses,
            min_budget_seconds=self.min_detail_budget_seconds,
        )

        self._open_form(navigation)

        fill = self.form_filler.fill(page, query)
        diagnostics["form_fields_filled"] = fill.filled_count
        diagnostics["form_fill_partial"] = fill.partial
        if not self.form_filler.is_acceptable(fill):
            logger.error(f"Search form could not be filled: failed={fill.failed_fields}")
            diagnostics["elapsed_seconds"] = round(time.monotonic() - started, 3)
            return ExtractionOutcome(
                success=False,
                error_kind=ErrorKind.FORM_FILL_FAILED,
                diagnostics=diagnostics,
                query=query,
                message=f"form fields not filled: {', '.join(fill.failed_fields)}",
            )

        captcha_outcome = captcha.resolve(
            page,
            max_attempts=self.max_captcha_attempts,
            refill=lambda p: self.form_filler.fill(p, query),
        )
        diagnostics["captcha_present"] = captcha_outcome.present
        diagnostics["captcha_attempts"] = captcha_outcome.attempts
        diagnostics["captcha_solved"] = captcha_outcome.solved
        emit_metric("search.captcha_attempts", captcha_outcome.attempts)

        submitted = submission.submit(page, query)
        diagnostics["submission_strategy"] = submitted.strategy
        diagnostics["reached_results_context"] = submitted.reached_results_context

        verification = self.verifier.verify(page)
        records = []
        if verification.status in (VerificationStatus.HAS_RESULTS, VerificationStatus.AMBIGUOUS_CONTENT):
            rows = self.extractor.extract(page)
            diagnostics.update(self.extractor.last_report.to_dict())
            details = walker.walk(page, rows, deadline)
            diagnostics.update(walker.last_report.to_dict())
            records = self.aggregator.merge_all(rows, details)

        diagnostics["elapsed_seconds"] = round(time.monotonic() - started, 3)
        outcome = self.aggregator.build_outcome(verification, records, diagnostics, query)
        emit_metric("search.records", len(outcome.records))
        incr_metric("search.queries")
        logger.info(
            f"Search {query.describe()} finished: success={outcome.success} "
            f"kind={outcome.error_kind.value if outcome.error_kind else None} records={len(outcome.records)}"
        )
        return outcome
