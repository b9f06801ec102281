from datetime import date

from tribunal_scraper.lib.case_utils import (
    CASE_NUMBER_RE,
    find_filing_numbers,
    first_match,
    is_case_shaped,
    normalize_space,
    parse_date_str,
)


def test_case_shaped_markers():
    assert is_case_shaped("2709137045762022")
    assert is_case_shaped("CP(IB) 5/2022")
    assert is_case_shaped("12-01-2023")
    assert is_case_shaped("ABC Ltd VS XYZ Ltd")
    assert is_case_shaped("ABC Ltd v/s XYZ Ltd")


def test_menu_text_is_not_case_shaped():
    for text in ("Home", "Old Orders and Judgments", "Cause List", "12345", "", None):
        assert not is_case_shaped(text)


def test_find_filing_numbers_distinct_in_order():
    text = "Filed 2709/1234/2022 and 2709/99/2021 ... again 2709/1234/2022; also 3301/12345/7"
    assert find_filing_numbers(text) == ["2709/1234/2022", "3301/12345/7"]


def test_first_match_and_normalize_space():
    assert first_match(CASE_NUMBER_RE, "CP(IB) No. 45/2021 pending") == "45/2021"
    assert first_match(CASE_NUMBER_RE, "nothing here") is None
    assert normalize_space("  a \n b\t c ") == "a b c"


def test_parse_date_str_day_first_formats():
    assert parse_date_str("12-01-2023") == date(2023, 1, 12)
    assert parse_date_str("05/03/2022") == date(2022, 3, 5)
    assert parse_date_str("2023-01-12") == date(2023, 1, 12)
    assert parse_date_str("12 Jan 2023") == date(2023, 1, 12)


def test_parse_date_str_fuzzy_fallback():
    assert parse_date_str("Listed on 12.01.2023") == date(2023, 1, 12)


def test_parse_date_str_rejects_non_dates():
    assert parse_date_str(None) is None
    assert parse_date_str("") is None
    assert parse_date_str("3") is None
    assert parse_date_str("View PDF") is None
