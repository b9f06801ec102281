"""Pytest configuration and fixtures."""

import pytest

from tribunal_scraper.lib.rate_limiter import EthicalRateLimiter
from tribunal_scraper.lib.site_profile import SiteProfile
from tribunal_scraper.metrics_emitter import reset_metrics
from tribunal_scraper.services.navigation import NavigationController


@pytest.fixture(autouse=True)
def clean_metrics():
    """Start every test with an empty shared metrics emitter."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def profile():
    """NCLT site profile."""
    return SiteProfile.nclt()


@pytest.fixture
def no_wait_limiter():
    """Rate limiter that never sleeps."""
    return EthicalRateLimiter(interval_seconds=0.0, backoff_factor=0.0, max_backoff_seconds=0.0)


@pytest.fixture
def make_navigation():
    """Build a NavigationController over a fake driver with short waits."""

    def _make(driver):
        return NavigationController(driver, page_load_timeout=5, selector_wait=1)

    return _make


@pytest.fixture
def sample_query_dict():
    return {
        "bench": "Mumbai",
        "case_type": "Company Petition IB (IBC)",
        "case_number": "123",
        "year": "2022",
    }
