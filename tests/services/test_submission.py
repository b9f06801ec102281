import base64
from urllib.parse import parse_qs, urlparse

from selenium.common.exceptions import WebDriverException

from tribunal_scraper.models.query import SearchQuery
from tribunal_scraper.services.submission import SubmissionController, encode_param
from tests.utils.fake_webelement import FakeDriver
from tests.utils.pages import FORM_URL, POSTED_RESULTS_URL, RESULTS_URL, form_page, page, results_page

QUERY = SearchQuery(bench="Mumbai", case_type="Company Petition IB (IBC)", case_number="123", year="2022")


def _decoded(link):
    params = parse_qs(urlparse(link).query)
    return {k: base64.b64decode(v[0]).decode("utf-8") for k, v in params.items()}


def test_direct_link_encodes_site_codes(profile, make_navigation):
    controller = SubmissionController(profile, make_navigation(FakeDriver({})))

    link = controller.build_direct_link(QUERY)

    assert link.startswith("https://nclt.gov.in/order-cp-wise-search?")
    assert _decoded(link) == {"bench": "mumbai", "case_type": "16", "cp_no": "123", "year": "2022"}
    assert encode_param("123") == "MTIz"


def test_direct_link_omits_missing_fields(profile, make_navigation):
    controller = SubmissionController(profile, make_navigation(FakeDriver({})))
    link = controller.build_direct_link(SearchQuery(bench="Chennai", year="2021"))
    assert _decoded(link) == {"bench": "chennai", "year": "2021"}


def test_already_on_results_page(profile, make_navigation):
    driver = FakeDriver({RESULTS_URL: results_page()})
    nav = make_navigation(driver)
    nav.open(RESULTS_URL)

    outcome = SubmissionController(profile, nav).submit(driver, QUERY)

    assert outcome.reached_results_context
    assert outcome.strategy == "form-submit"
    assert driver.visited == [RESULTS_URL]


def test_direct_link_strategy(profile, make_navigation):
    controller = SubmissionController(profile, None)
    link = controller.build_direct_link(QUERY)
    driver = FakeDriver({FORM_URL: form_page(), link: results_page()})
    nav = make_navigation(driver)
    controller.navigation = nav
    nav.open(FORM_URL)

    outcome = controller.submit(driver, QUERY)

    assert outcome.reached_results_context
    assert outcome.strategy == "direct-link"
    assert outcome.url == link


def test_falls_back_to_form_submit_when_direct_link_fails(profile, make_navigation):
    controller = SubmissionController(profile, None)
    link = controller.build_direct_link(QUERY)
    driver = FakeDriver(
        {
            FORM_URL: form_page(),
            link: WebDriverException("net::ERR_CONNECTION_RESET"),
            POSTED_RESULTS_URL: results_page(),
        },
        on_submit=lambda d, form: POSTED_RESULTS_URL,
    )
    nav = make_navigation(driver)
    controller.navigation = nav
    nav.open(FORM_URL)

    outcome = controller.submit(driver, QUERY)

    assert outcome.reached_results_context
    assert outcome.url == POSTED_RESULTS_URL
    assert outcome.strategy == "form-submit"
    assert driver.submitted[0].get_attribute("id") == "order-cp-wise"


def test_redirect_away_from_results_goes_back_to_form(profile, make_navigation):
    controller = SubmissionController(profile, None)
    link = controller.build_direct_link(QUERY)
    home = "https://nclt.gov.in/"
    driver = FakeDriver(
        {FORM_URL: form_page(), home: page("<p>Home</p>"), POSTED_RESULTS_URL: results_page()},
        on_submit=lambda d, form: POSTED_RESULTS_URL,
    )
    # the direct link lands on the home page instead of the results page
    driver.redirects[link] = home
    nav = make_navigation(driver)
    controller.navigation = nav
    nav.open(FORM_URL)

    outcome = controller.submit(driver, QUERY)

    assert outcome.reached_results_context
    assert outcome.strategy == "form-submit"
    assert outcome.url == POSTED_RESULTS_URL
    assert driver.visited[-1] == POSTED_RESULTS_URL


def test_find_search_form_skips_site_search(profile, make_navigation):
    driver = FakeDriver({FORM_URL: form_page()})
    driver.get(FORM_URL)
    form = SubmissionController(profile, make_navigation(driver)).find_search_form(driver)
    assert form.get_attribute("id") == "order-cp-wise"


def test_form_without_button_submits_via_javascript(profile, make_navigation):
    html = (
        '<html><body><form id="only">'
        '<select name="bench"><option value="mumbai">Mumbai</option></select>'
        '<input name="cp_no"/></form></body></html>'
    )
    driver = FakeDriver({FORM_URL: html}, on_submit=lambda d, form: RESULTS_URL)
    driver.pages[RESULTS_URL] = results_page()
    nav = make_navigation(driver)
    nav.open(FORM_URL)

    assert SubmissionController(profile, nav).submit_form(driver)
    assert any("arguments[0].submit();" in script for script, _ in driver.executed)
    assert driver.current_url == RESULTS_URL


def test_submit_form_without_form_returns_false(profile, make_navigation):
    driver = FakeDriver({FORM_URL: page("<p>maintenance</p>")})
    nav = make_navigation(driver)
    nav.open(FORM_URL)
    assert not SubmissionController(profile, nav).submit_form(driver)
