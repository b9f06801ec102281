import pytest

from tribunal_scraper.models.case import CaseRecord, DetailRecord, ResultRow, SourceStrategy
from tribunal_scraper.models.history_entry import DocumentLink, HistoryEntry
from tribunal_scraper.models.outcome import ErrorKind, ExtractionOutcome, FieldStatus, FillReport


def _row(**kw):
    base = dict(
        serial_number="1",
        filing_number="2709137045762022",
        case_number="CP(IB) 5/2022",
        parties_text="ABC Ltd VS XYZ Ltd",
        last_listing_date="12-01-2023",
        status_text="Pending",
        detail_link="https://nclt.gov.in/case-details?filing_no=MQ==",
        raw_cells=("1", "2709137045762022", "CP(IB) 5/2022", "ABC Ltd VS XYZ Ltd", "12-01-2023", "Pending"),
    )
    base.update(kw)
    return ResultRow(**base)


def test_document_link_requires_url():
    with pytest.raises(ValueError):
        DocumentLink(url="  ")
    link = DocumentLink.from_dict({"url": "https://nclt.gov.in/a.pdf"})
    assert link.display_text == ""


def test_history_entry_parses_dates():
    entry = HistoryEntry(serial_no="1", date_of_listing="12-01-2023", date_of_upload="not uploaded")
    data = entry.to_dict()
    assert data["listing_date"] == "2023-01-12"
    assert data["upload_date"] is None


def test_row_key_and_minimum_cells():
    row = _row()
    assert row.has_minimum_cells
    assert row.key == row.detail_link
    assert _row(detail_link=None, raw_cells=("a", "b")).key == "2709137045762022"
    assert not ResultRow(raw_cells=("a", "b")).has_minimum_cells


def test_detail_record_is_empty():
    assert DetailRecord(source_url="u").is_empty
    assert not DetailRecord(source_url="u", status_text="Pending").is_empty
    assert not DetailRecord(source_url="u", history=(HistoryEntry(serial_no="1"),)).is_empty


def test_enriched_prefers_non_empty_detail_values():
    record = CaseRecord.from_row(_row())
    detail = DetailRecord(
        source_url=record.detail_link,
        parties_text="ABC Limited VS XYZ Limited",
        case_number="",
        last_listed="15-02-2023",
        petitioner_advocate="A. Sharma",
    )
    merged = record.enriched(detail, ())

    assert merged.parties_text == "ABC Limited VS XYZ Limited"
    assert merged.case_number == "CP(IB) 5/2022"
    assert merged.last_listing_date == "15-02-2023"
    assert merged.petitioner_advocate == "A. Sharma"
    assert merged.has_detailed_info
    assert not record.has_detailed_info


def test_case_record_to_dict_shape():
    data = CaseRecord.from_row(_row(source_strategy=SourceStrategy.BLOCK)).to_dict()
    assert data["source_strategy"] == "block"
    assert data["history"] == []
    assert "raw_cells" not in data


def test_fill_report_threshold_counts_skipped_fields():
    report = FillReport(
        fields={
            "bench": FieldStatus.FILLED,
            "case_type": FieldStatus.SKIPPED,
            "case_number": FieldStatus.FILLED,
            "year": FieldStatus.FAILED,
        }
    )
    assert report.partial
    assert report.failed_fields == ["year"]
    assert report.acceptable(3)
    assert not report.acceptable(4)


def test_outcome_to_dict():
    outcome = ExtractionOutcome(success=False, error_kind=ErrorKind.NO_CASE_FOUND, message="No records found")
    data = outcome.to_dict()
    assert data["error_kind"] == "NO_CASE_FOUND"
    assert data["records"] == []
    assert data["query"] is None
