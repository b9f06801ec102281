import xml.etree.ElementTree as ET

from selenium.common.exceptions import ElementNotInteractableException
from selenium.webdriver.common.by import By

from tests.utils.fake_webelement import FakeDriver, FakeWebElement
from tribunal_scraper.services.page_actions import (
    body_text,
    has_ancestor,
    row_cell_texts,
    safe_click,
    safe_send_keys,
)


class NotInteractableElement(FakeWebElement):
    def send_keys(self, text: str):
        raise ElementNotInteractableException("element not interactable")

    def click(self):
        raise ElementNotInteractableException("element not interactable")


def test_safe_send_keys_uses_native_send_keys_when_available():
    el = ET.Element("input", {"id": "cp_no"})
    driver = FakeDriver({})

    safe_send_keys(driver, FakeWebElement(el), "123")

    assert el.get("value") == "123"
    assert driver.executed == []


def test_safe_send_keys_falls_back_to_javascript():
    el = ET.Element("input", {"id": "txtInput"})
    driver = FakeDriver({})

    safe_send_keys(driver, NotInteractableElement(el), "AB12")

    assert el.get("value") == "AB12"
    script, args = driver.executed[0]
    assert "arguments[0].value = arguments[1]" in script
    assert args[1] == "AB12"


def test_safe_click_falls_back_to_javascript():
    driver = FakeDriver({})
    element = NotInteractableElement(ET.Element("button"))

    safe_click(driver, element)

    assert driver.executed[0][0] == "arguments[0].click();"


def test_row_cells_and_landmarks():
    driver = FakeDriver({"https://nclt.gov.in/": "<html><body><nav><table><tr><th>A</th><td> B </td></tr></table></nav></body></html>"})
    driver.get("https://nclt.gov.in/")
    row = driver.find_element(By.TAG_NAME, "tr")

    assert row_cell_texts(row) == ["A", "B"]
    assert has_ancestor(row, ("nav",))
    assert not has_ancestor(row, ("footer",))
    assert body_text(driver) == "A B"
