from tribunal_scraper.lib.config import Config
from tribunal_scraper.lib.site_profile import SiteProfile


def test_resolve_bench_by_label_or_code(profile):
    assert profile.resolve_bench("Mumbai") == "mumbai"
    assert profile.resolve_bench("principal bench") == "delhi_1"
    assert profile.resolve_bench("DELHI_1") == "delhi_1"
    assert profile.resolve_bench(" Atlantis ") == "Atlantis"
    assert profile.resolve_bench(None) is None


def test_resolve_case_type(profile):
    assert profile.resolve_case_type("Company Petition IB (IBC)") == "16"
    assert profile.resolve_case_type("16") == "16"
    assert profile.resolve_case_type("Unknown Type") == "Unknown Type"


def test_is_results_url(profile):
    assert profile.is_results_url("https://nclt.gov.in/order-cp-wise-search?bench=eA==")
    assert not profile.is_results_url("https://nclt.gov.in/order-cp-wise")
    assert not profile.is_results_url(None)


def test_with_overrides_merges_maps_and_replaces_lists(profile):
    updated = profile.with_overrides(
        {
            "benches": {"Shillong": "shillong"},
            "field_names": {"case_number": "diary_no"},
            "results_url_markers": ["case-search"],
            "no_such_setting": 1,
        }
    )
    assert updated.resolve_bench("Shillong") == "shillong"
    assert updated.resolve_bench("Mumbai") == "mumbai"
    assert updated.field_names["case_number"] == "diary_no"
    assert updated.field_names["bench"] == "bench"
    assert updated.results_url_markers == ("case-search",)
    # the original is untouched
    assert profile.field_names["case_number"] == "cp_no"


def test_with_overrides_empty_returns_same(profile):
    assert profile.with_overrides({}) is profile


def test_from_config_applies_site_table(monkeypatch):
    monkeypatch.setattr(Config, "get_site_overrides", classmethod(lambda cls: {"form_url": "https://example.test/form"}))
    assert SiteProfile.from_config().form_url == "https://example.test/form"
