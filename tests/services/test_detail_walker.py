from unittest.mock import MagicMock

import pytest
from selenium.common.exceptions import InvalidSessionIdException, TimeoutException, UnexpectedAlertPresentException

from tribunal_scraper.lib.deadline import Deadline
from tribunal_scraper.models.case import ResultRow
from tribunal_scraper.services.detail_walker import DetailPageWalker
from tribunal_scraper.services.table_extractor import TableExtractor
from tests.utils.fake_webelement import FakeDriver
from tests.utils.pages import DETAIL_URL, DISPOSED_DETAIL_URL, RESULTS_URL, detail_page, page, results_page


def _setup(profile, make_navigation, limiter, detail=None, disposed=None, statuses=("pending",)):
    driver = FakeDriver(
        {
            RESULTS_URL: results_page(),
            DETAIL_URL: detail if detail is not None else detail_page(),
            DISPOSED_DETAIL_URL: disposed if disposed is not None else detail_page(),
        }
    )
    nav = make_navigation(driver)
    nav.open(RESULTS_URL)
    rows = TableExtractor(profile).extract(driver)
    walker = DetailPageWalker(
        profile,
        nav,
        rate_limiter=limiter,
        actionable_statuses=statuses,
        min_budget_seconds=30,
    )
    return driver, rows, walker


def test_walk_visits_only_actionable_rows(profile, make_navigation, no_wait_limiter):
    driver, rows, walker = _setup(profile, make_navigation, no_wait_limiter)

    records = walker.walk(driver, rows)

    assert len(records) == 1
    record = records[0]
    assert record.source_url == DETAIL_URL
    assert record.filing_number == "2709137045762022"
    assert record.filing_date == "05-01-2022"
    assert record.parties_text == "ABC Limited VS XYZ Limited"
    assert record.petitioner_advocate == "A. Sharma"
    assert record.status_text == "Pending"
    assert record.next_listing_date == "20-03-2023"
    assert len(record.history) == 2
    assert walker.last_report.to_dict() == {
        "detail_pages_visited": 1,
        "detail_pages_failed": 0,
        "detail_pages_skipped_status": 1,
        "detail_pages_skipped_deadline": 0,
    }
    assert DISPOSED_DETAIL_URL not in driver.visited
    assert driver.current_url == RESULTS_URL


def test_failed_detail_page_does_not_stop_the_walk(profile, make_navigation, no_wait_limiter):
    driver, rows, walker = _setup(
        profile,
        make_navigation,
        no_wait_limiter,
        detail=TimeoutException("detail page timeout"),
        statuses=("pending", "disposed"),
    )

    records = walker.walk(driver, rows)

    assert [r.source_url for r in records] == [DISPOSED_DETAIL_URL]
    assert walker.last_report.failed == 1
    assert walker.last_report.visited == 2
    assert driver.current_url == RESULTS_URL



class BrokenPageDriver(FakeDriver):
    """Raises `error` from element lookups while `broken_url` is loaded."""

    def __init__(self, pages, broken_url, error):
        super().__init__(pages)
        self.broken_url = broken_url
        self.error = error

    def find_elements(self, by, selector):
        if self.current_url == self.broken_url:
            raise self.error
        return super().find_elements(by, selector)


def _broken_walk(profile, make_navigation, limiter, error):
    driver = BrokenPageDriver(
        {RESULTS_URL: results_page(), DETAIL_URL: detail_page(), DISPOSED_DETAIL_URL: detail_page()},
        broken_url=DETAIL_URL,
        error=error,
    )
    nav = make_navigation(driver)
    nav.open(RESULTS_URL)
    rows = TableExtractor(profile).extract(driver)
    walker = DetailPageWalker(
        profile, nav, rate_limiter=limiter, actionable_statuses=("pending", "disposed"), min_budget_seconds=30
    )
    return driver, rows, walker


def test_browser_error_on_one_detail_page_is_isolated(profile, make_navigation, no_wait_limiter):
    driver, rows, walker = _broken_walk(
        profile, make_navigation, no_wait_limiter, UnexpectedAlertPresentException("alert open")
    )

    records = walker.walk(driver, rows)

    assert [r.source_url for r in records] == [DISPOSED_DETAIL_URL]
    assert walker.last_report.failed == 1
    assert walker.last_report.visited == 2
    assert DISPOSED_DETAIL_URL in driver.visited


def test_lost_browser_session_stops_the_walk(profile, make_navigation, no_wait_limiter):
    driver, rows, walker = _broken_walk(
        profile, make_navigation, no_wait_limiter, InvalidSessionIdException("session deleted")
    )

    with pytest.raises(InvalidSessionIdException):
        walker.walk(driver, rows)
    assert DISPOSED_DETAIL_URL not in driver.visited

def test_empty_detail_page_counts_as_failure(profile, make_navigation, no_wait_limiter):
    driver, rows, walker = _setup(profile, make_navigation, no_wait_limiter, detail=page("<p>Session expired</p>"))

    assert walker.walk(driver, rows) == []
    assert walker.last_report.failed == 1


def test_low_deadline_budget_skips_detail_pages(profile, make_navigation, no_wait_limiter):
    driver, rows, walker = _setup(profile, make_navigation, no_wait_limiter)
    now = [0.0]
    deadline = Deadline(60, clock=lambda: now[0])
    now[0] = 45.0

    assert walker.walk(driver, rows, deadline) == []
    assert walker.last_report.skipped_deadline == 1
    assert walker.last_report.visited == 0
    assert driver.visited == [RESULTS_URL]


def test_rate_limiter_paces_each_detail_visit(profile, make_navigation):
    limiter = MagicMock()
    driver, rows, walker = _setup(profile, make_navigation, limiter, statuses=("pending", "disposed"))

    walker.walk(driver, rows)

    assert limiter.wait_if_needed.call_count == 2


def test_rows_without_detail_link_are_not_actionable(profile, make_navigation, no_wait_limiter):
    _, _, walker = _setup(profile, make_navigation, no_wait_limiter)
    assert not walker.is_actionable(ResultRow(status_text="Pending"))
    assert walker.is_actionable(ResultRow(status_text="PENDING for admission", detail_link=DETAIL_URL))
