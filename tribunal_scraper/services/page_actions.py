"""Low-level element interactions with JavaScript fallbacks."""

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By

from tribunal_scraper.lib.logging_config import get_logger

logger = get_logger()


def element_label(element) -> str:
    try:
        return element.get_attribute("id") or element.get_attribute("name") or "<anonymous>"
    except WebDriverException:
        return "<anonymous>"


def safe_send_keys(driver, element, text: str) -> None:
    """Type `text` into `element`, falling back to setting the value via JS."""
    element_id = element_label(element)
    logger.info(f"[UI_ACTION] Typing text '{text}' into input element (id: {element_id})")

    try:
        element.clear()
    except WebDriverException:
        logger.debug(f"[UI_ACTION] Failed to clear input element (id: {element_id}), continuing")

    try:
        element.send_keys(text)
        return
    except WebDriverException:
        logger.info(f"[UI_ACTION] send_keys failed, trying JavaScript fallback (id: {element_id})")

    driver.execute_script(
        "arguments[0].value = arguments[1];"
        "arguments[0].dispatchEvent(new Event('input', {bubbles: true}));"
        "arguments[0].dispatchEvent(new Event('change', {bubbles: true}));",
        element,
        text,
    )
    logger.info(f"[UI_ACTION] Typed '{text}' using JavaScript fallback (id: {element_id})")


def safe_click(driver, element) -> None:
    """Native click, then JS click."""
    element_id = element_label(element)
    try:
        element.click()
        logger.debug(f"[UI_ACTION] Clicked element (id: {element_id}) using native click")
    except WebDriverException:
        logger.info(f"[UI_ACTION] Native click failed, trying JavaScript click (id: {element_id})")
        driver.execute_script("arguments[0].click();", element)


def body_text(driver) -> str:
    try:
        return driver.find_element(By.TAG_NAME, "body").text or ""
    except WebDriverException:
        return ""


def cell_texts(row, tag: str = "td") -> list:
    return [(c.text or "").strip() for c in row.find_elements(By.TAG_NAME, tag)]


def has_ancestor(element, tags) -> bool:
    """True when `element` sits inside any of the given landmark tags."""
    for tag in tags:
        try:
            if element.find_elements(By.XPATH, f"ancestor::{tag}"):
                return True
        except WebDriverException:
            continue
    return False


def row_cell_texts(row) -> list:
    """Texts of a row's th/td children in document order."""
    return [
        (c.text or "").strip()
        for c in row.find_elements(By.XPATH, "./*")
        if (c.tag_name or "").lower() in ("th", "td")
    ]
