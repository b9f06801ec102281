"""Per-site data: URLs, form field names, option code maps and page vocabulary.

Components receive a ``SiteProfile`` at construction so a portal redesign
(renamed fields, new bench codes) is a data change. ``SiteProfile.nclt()``
describes the NCLT order/case-status search.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from loguru import logger

from tribunal_scraper.lib.config import Config

LOGICAL_FIELDS = ("bench", "case_type", "case_number", "year")

NCLT_BENCHES = {
    "Principal Bench": "delhi_1",
    "New Delhi Bench Court-II": "delhi_2",
    "New Delhi Bench Court-III": "delhi_3",
    "New Delhi Bench Court-IV": "delhi_4",
    "New Delhi Bench Court-V": "delhi_5",
    "New Delhi Bench Court-VI": "delhi_6",
    "Ahmedabad": "ahmedabad",
    "Allahabad": "allahabad",
    "Amravati": "amravati",
    "Bengaluru": "bengaluru",
    "Chandigarh": "chandigarh",
    "Chennai": "chennai",
    "Cuttak": "cuttak",
    "Guwahati": "guwahati",
    "Hyderabad": "hyderabad",
    "Indore": "indore",
    "Jaipur": "jaipur",
    "Kochi": "kochi",
    "Kolkata": "kolkata",
    "Mumbai": "mumbai",
}

NCLT_CASE_TYPES = {
    "Rule 63 Appeal": "42",
    "IA (Liq.) Progress Report": "41",
    "Interlocutory Application(IBC)(Dis.)": "40",
    "Interlocutory Application(IBC)(Liq.)": "39",
    "Interlocutory Application(IBC)(Plan)": "38",
    "Restored Company Petition (Companies Act)": "37",
    "Restored Company Petition (IBC)": "36",
    "Voluntary Liquidation (IBC)": "35",
    "Transfer Application (IBC)": "34",
    "Insolvency & Bankruptcy (Pre-Packaged)": "33",
    "Transfer Application": "32",
    "Interlocutory Application (I.B.C)": "31",
    "Execution Petition": "30",
    "Transfer Petition (IBC)": "29",
    "Cross Appeal (IBC)": "28",
    "Company Appeal (IBC)": "27",
    "Miscellaneous Application (IBC)": "26",
    "Contempt Petition (IBC)": "25",
    "Cross Application (IBC)": "24",
    "Intervention Petition (IBC)": "23",
    "Restoration Application (IBC)": "22",
    "Review Application (IBC)": "21",
    "Interlocatory Application (IBC)": "20",
    "Rehabilitation petition(IBC)": "19",
    "Company Application(IBC)": "18",
    "Company Petition IB (IBC)": "16",
    "CP(AA) Merger and Amalgamation(Companies Act)": "15",
    "CA(A) Merger and Amalgamation(Companies Act)": "14",
    "Company Application(Companies Act)": "13",
    "Cross Appeal(Companies Act)": "12",
    "Company Appeal(Companies Act)": "11",
    "Miscellaneous Application(Companies Act)": "10",
    "Contempt Petition(Companies Act)": "9",
    "Cross Application (Companies Act)": "8",
    "Intervention Petition(Companies Act)": "7",
    "Restoration Application (Companies Act)": "6",
    "Review Application (Companies Act)": "5",
    "Interlocatory Application(Companies Act)": "4",
    "Rehabilitation petition (Companies Act)": "3",
    "Company Petition (Companies Act)": "2",
    "Transfer Petition(Companies Act)": "1",
}

# Detail-page label fragments, most specific first
NCLT_DETAIL_LABELS = (
    ("petitioner advocate", "petitioner_advocate"),
    ("respondent advocate", "respondent_advocate"),
    ("next listing date", "next_listing_date"),
    ("next date", "next_listing_date"),
    ("last listed", "last_listed"),
    ("registered on", "registered_on"),
    ("registration date", "registered_on"),
    ("filing number", "filing_number"),
    ("filing no", "filing_number"),
    ("diary number", "filing_number"),
    ("filing date", "filing_date"),
    ("date of filing", "filing_date"),
    ("case number", "case_number"),
    ("case no", "case_number"),
    ("party name", "parties_text"),
    ("case status", "status_text"),
    ("status", "status_text"),
)


def _freeze(mapping: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping))


def _lookup_code(mapping: Mapping[str, str], value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    wanted = value.strip().lower()
    codes = {c.lower(): c for c in mapping.values()}
    if wanted in codes:
        return codes[wanted]
    for label, code in mapping.items():
        if label.lower() == wanted:
            return code
    return value.strip()


@dataclass(frozen=True)
class SiteProfile:
    """Everything that ties the pipeline to one version of one portal."""

    name: str
    form_url: str
    results_url: str
    results_url_markers: Tuple[str, ...]
    field_names: Mapping[str, str]
    link_params: Mapping[str, str]
    benches: Mapping[str, str] = field(default_factory=dict)
    case_types: Mapping[str, str] = field(default_factory=dict)
    captcha_input_ids: Tuple[str, ...] = ()
    captcha_display_ids: Tuple[str, ...] = ()
    captcha_display_classes: Tuple[str, ...] = ()
    captcha_rejection_patterns: Tuple[str, ...] = ()
    negative_result_patterns: Tuple[str, ...] = ()
    result_keywords: Tuple[str, ...] = ()
    excluded_form_markers: Tuple[str, ...] = ()
    detail_labels: Tuple[Tuple[str, str], ...] = ()
    status_vocabulary: Tuple[str, ...] = ("pending", "disposed", "status")
    document_vocabulary: Tuple[str, ...] = ("view", "pdf", "download", "order", "judgement", "judgment")

    @classmethod
    def nclt(cls) -> "SiteProfile":
        fields = {
            "bench": "bench",
            "case_type": "case_type",
            "case_number": "cp_no",
            "year": "year",
        }
        return cls(
            name="nclt",
            form_url="https://nclt.gov.in/order-cp-wise",
            results_url="https://nclt.gov.in/order-cp-wise-search",
            results_url_markers=("order-cp-wise-search",),
            field_names=_freeze(fields),
            link_params=_freeze(fields),
            benches=_freeze(NCLT_BENCHES),
            case_types=_freeze(NCLT_CASE_TYPES),
            captcha_input_ids=("txtInput", "captcha", "captcha_input"),
            captcha_display_ids=("mainCaptcha", "captchaImage", "captcha_image"),
            captcha_display_classes=("captchabg",),
            captcha_rejection_patterns=(
                r"\b(?:wrong|invalid|incorrect)\s+(?:captcha|code|security code)",
                r"captcha\s+(?:is\s+)?(?:wrong|invalid|incorrect|mismatch|error|failed)",
                r"(?:enter|fill)\s+(?:the\s+)?(?:valid|correct)\s+captcha",
            ),
            negative_result_patterns=(
                r"no\s+records?\s+found",
                r"no\s+data\s+(?:available|found)",
                r"case\s+not\s+found",
                r"invalid\s+case\s+number",
                r"data\s+prior\s+to\s+\S+",
            ),
            result_keywords=(
                "filing",
                "petitioner",
                "respondent",
                "party name",
                "pending",
                "disposed",
                "case no",
                "listing",
            ),
            excluded_form_markers=("search-form", "search/node"),
            detail_labels=NCLT_DETAIL_LABELS,
        )

    @classmethod
    def from_config(cls) -> "SiteProfile":
        """Default profile overlaid with the ``[site]`` table from config files."""
        return cls.nclt().with_overrides(Config.get_site_overrides())

    def with_overrides(self, overrides: Mapping) -> "SiteProfile":
        """Return a copy with values from a ``[site]`` mapping applied.

        ``benches`` and ``case_types`` tables are merged into the existing
        maps; ``field_names`` / ``link_params`` are merged per logical field;
        list values replace tuples.
        """
        if not overrides:
            return self
        changes = {}
        for key, value in overrides.items():
            if not hasattr(self, key):
                logger.warning(f"Ignoring unknown site setting: {key}")
                continue
            current = getattr(self, key)
            if key in ("benches", "case_types", "field_names", "link_params"):
                merged = dict(current)
                merged.update({str(k): str(v) for k, v in value.items()})
                changes[key] = _freeze(merged)
            elif key == "detail_labels":
                changes[key] = tuple((str(k), str(v)) for k, v in value.items())
            elif isinstance(current, tuple):
                changes[key] = tuple(value)
            else:
                changes[key] = value
        return replace(self, **changes)

    def resolve_bench(self, value: Optional[str]) -> Optional[str]:
        """Map a bench label or code to the site's code; unknown values pass through."""
        return _lookup_code(self.benches, value)

    def resolve_case_type(self, value: Optional[str]) -> Optional[str]:
        return _lookup_code(self.case_types, value)

    def is_results_url(self, url: Optional[str]) -> bool:
        lowered = (url or "").lower()
        return any(marker.lower() in lowered for marker in self.results_url_markers)
