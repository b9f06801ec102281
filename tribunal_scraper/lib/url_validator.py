"""URL helpers for links scraped from results and detail pages."""

from urllib.parse import urljoin, urlparse
from typing import Optional


class URLValidator:
    """Resolves scraped hrefs and rejects the ones a browser cannot follow."""

    UNUSABLE_PREFIXES = ("javascript:", "mailto:", "tel:", "#", "data:")

    @staticmethod
    def is_http_url(url: Optional[str]) -> bool:
        if not url:
            return False
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    @staticmethod
    def resolve(base_url: Optional[str], href: Optional[str]) -> Optional[str]:
        """Return an absolute http(s) URL for `href`, or None when it is unusable.

        Args:
            base_url: URL of the page the link was found on
            href: raw href attribute (Selenium usually returns it absolute already)
        """
        if not href:
            return None
        href = href.strip()
        if not href or href.lower().startswith(URLValidator.UNUSABLE_PREFIXES):
            return None
        url = urljoin(base_url or "", href)
        return url if URLValidator.is_http_url(url) else None
