"""Browser session ownership and page navigation."""

import re
import time
from typing import Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from tribunal_scraper.lib.config import Config
from tribunal_scraper.lib.errors import NavigationError
from tribunal_scraper.lib.logging_config import get_logger

logger = get_logger()

# Titles/bodies of server error pages; the browser does not expose status codes
_HTTP_ERROR_RE = re.compile(
    r"\b(?:404 not found|403 forbidden|500 internal server error|502 bad gateway|"
    r"503 service (?:temporarily )?unavailable|504 gateway time-?out)\b",
    re.IGNORECASE,
)


class BrowserSession:
    """Owns one Chrome WebDriver for a run and restarts it if it dies."""

    def __init__(self, headless: Optional[bool] = None, max_restarts: Optional[int] = None):
        self.headless = Config.get_headless() if headless is None else headless
        self._driver: Optional[webdriver.Chrome] = None
        self._restart_count = 0
        self._max_restarts = Config.get_max_driver_restarts() if max_restarts is None else max_restarts

    def _setup_driver(self) -> webdriver.Chrome:
        """Setup Chrome WebDriver with appropriate options.

        Returns:
            webdriver.Chrome: Configured Chrome driver
        """
        options = Options()
        if self.headless:
            options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument("--window-size=1920,1080")
        options.add_argument(
            "--user-agent=Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
        )
        # Return from driver.get after DOMContentLoaded
        options.page_load_strategy = "eager"

        service = Service(ChromeDriverManager().install())
        driver = webdriver.Chrome(service=service, options=options)
        driver.set_page_load_timeout(Config.get_navigation_timeout_seconds())

        logger.info("Chrome WebDriver initialized")
        return driver

    def get_driver(self) -> webdriver.Chrome:
        """Get or create the WebDriver, restarting a dead session."""
        if self._driver is None:
            self._driver = self._setup_driver()
            return self._driver

        try:
            # Liveness check
            _ = self._driver.current_window_handle
            return self._driver
        except WebDriverException as exc:
            logger.warning(f"WebDriver appears dead or unresponsive (attempting restart): {exc}")
            return self._restart_driver()

    def _restart_driver(self) -> webdriver.Chrome:
        """Restart the WebDriver, raising once the configured limit is exceeded."""
        if self._driver is not None:
            try:
                self._driver.quit()
            except WebDriverException:
                logger.opt(exception=True).debug("Existing driver quit failed during restart")
            finally:
                self._driver = None

        self._restart_count += 1
        if self._restart_count > self._max_restarts:
            logger.error(f"Exceeded max WebDriver restart attempts ({self._max_restarts})")
            raise RuntimeError("Exceeded max WebDriver restart attempts")

        logger.info(f"Restarting WebDriver (attempt {self._restart_count}/{self._max_restarts})")
        time.sleep(1)
        self._driver = self._setup_driver()
        return self._driver

    def close(self) -> None:
        if self._driver is not None:
            try:
                self._driver.quit()
                logger.info("Chrome WebDriver closed")
            except WebDriverException as exc:
                logger.warning(f"Error while closing WebDriver: {exc}")
            finally:
                self._driver = None

    def __enter__(self) -> "BrowserSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class NavigationController:
    """Moves the single page of a session between the form, results and detail pages.

    No implicit retries: callers decide whether a NavigationError is retried.
    """

    def __init__(
        self,
        driver,
        page_load_timeout: Optional[float] = None,
        selector_wait: Optional[float] = None,
    ):
        self.driver = driver
        self.page_load_timeout = (
            Config.get_navigation_timeout_seconds() if page_load_timeout is None else page_load_timeout
        )
        self.selector_wait = Config.get_selector_wait_seconds() if selector_wait is None else selector_wait

    @property
    def current_url(self) -> str:
        try:
            return self.driver.current_url or ""
        except WebDriverException:
            return ""

    def open(self, url: str):
        """Navigate to `url` and return the page handle (the driver)."""
        logger.info(f"[UI_ACTION] Opening {url}")
        try:
            self.driver.set_page_load_timeout(self.page_load_timeout)
        except (WebDriverException, AttributeError):
            logger.debug("Driver does not accept a page load timeout")
        try:
            self.driver.get(url)
        except TimeoutException as exc:
            raise NavigationError(url, f"timed out after {self.page_load_timeout}s") from exc
        except WebDriverException as exc:
            raise NavigationError(url, exc.msg or str(exc)) from exc

        self.wait_until_ready(url)
        self._raise_for_error_page(url)
        return self.driver

    def reload(self):
        """Reload the current page (used between captcha attempts)."""
        url = self.current_url
        logger.info(f"[UI_ACTION] Reloading {url}")
        try:
            self.driver.refresh()
        except TimeoutException as exc:
            raise NavigationError(url, "reload timed out") from exc
        except WebDriverException as exc:
            raise NavigationError(url, exc.msg or str(exc)) from exc
        self.wait_until_ready(url)
        return self.driver

    def back(self):
        logger.debug("[UI_ACTION] Browser back")
        try:
            self.driver.back()
        except WebDriverException as exc:
            raise NavigationError(self.current_url, f"back failed: {exc}") from exc
        self.wait_until_ready(self.current_url)
        return self.driver

    def back_to(self, url: str):
        """Go back in history; reopen `url` directly if that did not land on it."""
        try:
            self.back()
        except NavigationError as exc:
            logger.debug(f"Back navigation failed, reopening {url}: {exc}")
        if self.current_url.rstrip("/") != url.rstrip("/"):
            logger.debug(f"Back landed on {self.current_url}, reopening {url}")
            return self.open(url)
        return self.driver

    def page_text(self) -> str:
        try:
            return self.driver.find_element(By.TAG_NAME, "body").text or ""
        except WebDriverException:
            return ""

    def wait_until_ready(self, url: str) -> None:
        try:
            WebDriverWait(self.driver, self.selector_wait).until(
                lambda d: d.execute_script("return document.readyState") in ("interactive", "complete")
            )
        except TimeoutException:
            logger.warning(f"Page {url} not ready after {self.selector_wait}s, continuing")

    def _raise_for_error_page(self, url: str) -> None:
        try:
            title = self.driver.title or ""
        except WebDriverException:
            title = ""
        if _HTTP_ERROR_RE.search(title):
            raise NavigationError(url, f"server error page: {title.strip()}")
