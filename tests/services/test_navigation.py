import pytest
from unittest.mock import MagicMock
from selenium.common.exceptions import TimeoutException, WebDriverException

from tribunal_scraper.lib.errors import NavigationError
from tribunal_scraper.services.navigation import BrowserSession
from tests.utils.fake_webelement import FakeDriver
from tests.utils.pages import FORM_URL, RESULTS_URL, form_page, page, results_page


def _dead_driver():
    driver = MagicMock()
    type(driver).current_window_handle = property(
        lambda self: (_ for _ in ()).throw(WebDriverException("session closed"))
    )
    return driver


def test_restart_driver_called_on_dead_driver(monkeypatch):
    monkeypatch.setattr("tribunal_scraper.services.navigation.time.sleep", lambda s: None)
    session = BrowserSession(headless=True, max_restarts=1)
    session._driver = _dead_driver()

    new_driver = MagicMock()
    monkeypatch.setattr(session, "_setup_driver", lambda: new_driver)

    assert session.get_driver() is new_driver
    assert session._driver is new_driver


def test_restart_exceeds_limit_raises(monkeypatch):
    session = BrowserSession(headless=True, max_restarts=0)
    session._driver = _dead_driver()
    monkeypatch.setattr(session, "_setup_driver", lambda: MagicMock())

    with pytest.raises(RuntimeError):
        session.get_driver()


def test_session_context_manager_quits_driver():
    driver = FakeDriver({})
    with BrowserSession(headless=True) as session:
        session._driver = driver
        assert session.get_driver() is driver
    assert driver.quit_called
    assert session._driver is None


def test_open_loads_page_and_sets_timeout(make_navigation):
    driver = FakeDriver({FORM_URL: form_page()})
    nav = make_navigation(driver)

    assert nav.open(FORM_URL) is driver
    assert nav.current_url == FORM_URL
    assert driver.page_load_timeout == 5
    assert "Select Bench" in nav.page_text()


def test_open_timeout_becomes_navigation_error(make_navigation):
    driver = FakeDriver({FORM_URL: TimeoutException("page load timeout")})
    nav = make_navigation(driver)

    with pytest.raises(NavigationError) as excinfo:
        nav.open(FORM_URL)
    assert excinfo.value.url == FORM_URL
    assert "timed out" in excinfo.value.reason


def test_open_server_error_page_raises(make_navigation):
    driver = FakeDriver({FORM_URL: page("<h1>Service Unavailable</h1>", title="503 Service Unavailable")})
    with pytest.raises(NavigationError):
        make_navigation(driver).open(FORM_URL)


def test_back_to_reopens_when_history_lands_elsewhere(make_navigation):
    driver = FakeDriver({FORM_URL: form_page(), RESULTS_URL: results_page()})
    nav = make_navigation(driver)
    nav.open(RESULTS_URL)

    # no history behind the results page: back is a no-op, so the url is reopened
    nav.back_to(FORM_URL)
    assert driver.current_url == FORM_URL
    assert driver.visited == [RESULTS_URL, FORM_URL]


def test_back_to_uses_history(make_navigation):
    driver = FakeDriver({FORM_URL: form_page(), RESULTS_URL: results_page()})
    nav = make_navigation(driver)
    nav.open(FORM_URL)
    nav.open(RESULTS_URL)

    nav.back_to(FORM_URL)
    assert driver.current_url == FORM_URL
    assert driver.visited == [FORM_URL, RESULTS_URL]


def test_reload_refreshes_current_page(make_navigation):
    driver = FakeDriver({FORM_URL: form_page()})
    nav = make_navigation(driver)
    nav.open(FORM_URL)
    nav.reload()
    assert driver.refreshes == 1
