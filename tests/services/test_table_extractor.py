from tribunal_scraper.models.case import SourceStrategy
from tribunal_scraper.services.table_extractor import (
    BlockStrategy,
    ExtractionReport,
    TableExtractor,
    TextScanStrategy,
    accept_cells,
    map_columns,
)
from tests.utils.fake_webelement import FakeDriver
from tests.utils.pages import DETAIL_URL, RESULTS_URL, page, results_page


def _load(html, url=RESULTS_URL):
    driver = FakeDriver({url: html})
    driver.get(url)
    return driver


def test_header_and_pending_row_with_detail_link(profile):
    html = page(
        "<table>"
        "<tr><td>S.No</td><td>Filing No</td><td>Case No</td><td>Status</td></tr>"
        '<tr><td>1</td><td>123456/2022</td><td>CP 5/2022</td><td><a href="/case-details?id=1">Pending</a></td></tr>'
        "</table>"
    )
    driver = _load(html)
    rows = TableExtractor(profile).extract(driver)

    assert len(rows) == 1
    row = rows[0]
    assert row.status_text == "Pending"
    assert row.detail_link == "https://nclt.gov.in/case-details?id=1"
    assert row.filing_number == "123456/2022"
    assert row.case_number == "CP 5/2022"
    assert row.serial_number == "1"
    assert row.source_strategy is SourceStrategy.TABLE


def test_results_page_rows_and_report(profile):
    driver = _load(results_page())
    extractor = TableExtractor(profile)

    rows = extractor.extract(driver)

    assert [r.filing_number for r in rows] == ["2709137045762022", "2709137045772022"]
    assert rows[0].parties_text == "ABC Ltd VS XYZ Ltd"
    assert rows[0].last_listing_date == "12-01-2023"
    assert rows[0].detail_link == DETAIL_URL
    assert extractor.last_report.strategy == "table"
    assert extractor.last_report.to_dict()["strategies_tried"] == ["table"]


def test_extraction_is_idempotent(profile):
    driver = _load(results_page())
    extractor = TableExtractor(profile)
    assert extractor.extract(driver) == extractor.extract(driver)


def test_rows_with_fewer_than_three_cells_are_rejected(profile):
    html = page(
        "<table>"
        "<tr><td>2709137045762022</td><td>Pending</td></tr>"
        "<tr><td>Home</td><td>About</td><td>Contact</td></tr>"
        "</table>"
    )
    assert TableExtractor(profile).extract(_load(html)) == []


def test_duplicate_rows_are_dropped(profile):
    row = "<tr><td>1</td><td>2709137045762022</td><td>CP 5/2022</td></tr>"
    rows = TableExtractor(profile).extract(_load(page(f"<table>{row}{row}</table>")))
    assert len(rows) == 1


def test_positional_columns_without_header(profile):
    html = page("<table><tr><td>7</td><td>2709137045762022</td><td>CP 5/2022</td><td>A VS B</td><td>Disposed</td></tr></table>")
    row = TableExtractor(profile).extract(_load(html))[0]
    assert row.serial_number == "7"
    assert row.parties_text == "A VS B"
    assert row.status_text == "Disposed"
    assert row.detail_link is None


def test_block_fallback_ignores_navigation(profile):
    html = page(
        "<nav><div>Menu 2709/1111/2022</div></nav>"
        "<div class='results'>"
        "<div class='case-card'>Filing No: 2709/1234/2022\nABC Ltd VS XYZ Ltd\nListed 12-01-2023\n"
        "<a href='/case-details?id=9'>Pending</a></div>"
        "</div>"
    )
    extractor = TableExtractor(profile)
    rows = extractor.extract(_load(html))

    assert len(rows) == 1
    row = rows[0]
    assert row.source_strategy is SourceStrategy.BLOCK
    assert row.filing_number == "2709/1234/2022"
    assert row.parties_text == "ABC Ltd VS XYZ Ltd"
    assert row.last_listing_date == "12-01-2023"
    assert row.status_text == "Pending"
    assert row.detail_link == "https://nclt.gov.in/case-details?id=9"
    assert extractor.last_report.tried == ["table", "block"]


def test_text_scan_is_last_resort(profile):
    html = page("<p>Filed as 2709/1234/2022 and 2709/5678/2022</p>")
    extractor = TableExtractor(profile, strategies=[TextScanStrategy(profile)])
    rows = extractor.extract(_load(html))
    assert [r.filing_number for r in rows] == ["2709/1234/2022", "2709/5678/2022"]
    assert all(r.source_strategy is SourceStrategy.TEXT_SCAN for r in rows)


def test_nothing_extractable_returns_empty_list(profile):
    extractor = TableExtractor(profile)
    assert extractor.extract(_load(page("<p>Welcome</p>"))) == []
    assert extractor.last_report.strategy is None
    assert extractor.last_report.tried == ["table", "block", "text-scan"]


def test_accept_cells_and_map_columns():
    assert accept_cells(["1", "123456/2022", "x"])
    assert not accept_cells(["1", "x", "y"])
    assert not accept_cells(["123456/2022", "x"])
    assert map_columns(["S.No", "Filing No", "Case No", "Status"]) == {
        "status_text": 3,
        "filing_number": 1,
        "case_number": 2,
        "serial_number": 0,
    }


def test_block_strategy_alone(profile):
    html = page("<ul><li>2709/1234/2022 A VS B</li></ul>")
    report = ExtractionReport()
    rows = BlockStrategy(profile).extract(_load(html), report)
    assert len(rows) == 1
    assert report.rows_scanned == 1
