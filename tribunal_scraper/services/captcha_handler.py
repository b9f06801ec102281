"""Captcha detection, capture, solving and bounded retry.

The retry loop is an explicit state machine:

    IDLE -> DETECTING -> CAPTURING -> SOLVING -> VERIFYING -> SOLVED
                ^            |           |           |
                +------------+-----------+-----------+-- FAILED (attempts left)
                                                     +-- FAILED (no attempts) -> EXHAUSTED

An attempt starts every time CAPTURING is entered, so the solver is called
at most ``max_attempts`` times per query.
"""

import re
from enum import Enum
from io import BytesIO
from typing import Callable, List, Optional

from PIL import Image
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By

from tribunal_scraper.lib.config import Config
from tribunal_scraper.lib.errors import NavigationError
from tribunal_scraper.lib.logging_config import get_logger
from tribunal_scraper.lib.site_profile import SiteProfile
from tribunal_scraper.models.outcome import CaptchaChallenge, CaptchaOutcome
from tribunal_scraper.services.captcha_solver import ANSWER_RE, MIN_IMAGE_BYTES, CaptchaSolver, clean_answer
from tribunal_scraper.services.navigation import NavigationController
from tribunal_scraper.services.page_actions import body_text, safe_send_keys

logger = get_logger()

# Region captured around the captcha input when no captcha image is found
CROP_LEFT_OFFSET = 200
CROP_TOP_OFFSET = 100
CROP_MAX_WIDTH = 500
CROP_MAX_HEIGHT = 200

_RECT_SCRIPT = (
    "var r = arguments[0].getBoundingClientRect();"
    "return {x: r.left, y: r.top, w: r.width, h: r.height, dpr: window.devicePixelRatio || 1};"
)


class CaptchaState(str, Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    CAPTURING = "capturing"
    SOLVING = "solving"
    VERIFYING = "verifying"
    SOLVED = "solved"
    EXHAUSTED = "exhausted"


class CaptchaEvent(str, Enum):
    START = "start"
    ABSENT = "absent"
    PRESENT = "present"
    CAPTURED = "captured"
    ANSWERED = "answered"
    ACCEPTED = "accepted"
    FAILED = "failed"


TERMINAL_STATES = frozenset({CaptchaState.SOLVED, CaptchaState.EXHAUSTED})

_TRANSITIONS = {
    (CaptchaState.IDLE, CaptchaEvent.START): CaptchaState.DETECTING,
    (CaptchaState.DETECTING, CaptchaEvent.ABSENT): CaptchaState.SOLVED,
    (CaptchaState.DETECTING, CaptchaEvent.PRESENT): CaptchaState.CAPTURING,
    (CaptchaState.CAPTURING, CaptchaEvent.CAPTURED): CaptchaState.SOLVING,
    (CaptchaState.SOLVING, CaptchaEvent.ANSWERED): CaptchaState.VERIFYING,
    (CaptchaState.VERIFYING, CaptchaEvent.ACCEPTED): CaptchaState.SOLVED,
}

_FAILABLE = frozenset({CaptchaState.CAPTURING, CaptchaState.SOLVING, CaptchaState.VERIFYING})


def transition(state: CaptchaState, event: CaptchaEvent, attempts: int, max_attempts: int) -> CaptchaState:
    """Next state for `event`; a failure retries only while attempts remain."""
    if event is CaptchaEvent.FAILED and state in _FAILABLE:
        return CaptchaState.DETECTING if attempts < max_attempts else CaptchaState.EXHAUSTED
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise ValueError(f"invalid captcha transition: {state.value} --{event.value}-->") from None


class CaptchaHandler:
    """Gets a search form past its captcha, or gives up after a bounded number of tries."""

    def __init__(
        self,
        profile: SiteProfile,
        solver: Optional[CaptchaSolver],
        navigation: NavigationController,
        submit_form: Callable[[object], bool],
        max_attempts: Optional[int] = None,
    ):
        self.profile = profile
        self.solver = solver
        self.navigation = navigation
        self.submit_form = submit_form
        self.max_attempts = Config.get_captcha_max_attempts() if max_attempts is None else max_attempts
        self._rejection_res = [re.compile(p, re.IGNORECASE) for p in profile.captcha_rejection_patterns]

    def resolve(
        self,
        page,
        max_attempts: Optional[int] = None,
        refill: Optional[Callable[[object], object]] = None,
    ) -> CaptchaOutcome:
        limit = max(1, max_attempts if max_attempts is not None else self.max_attempts)
        state = CaptchaState.IDLE
        history: List[str] = [state.value]
        attempts = 0
        solve_calls = 0
        present = False
        input_el = None
        challenge: Optional[CaptchaChallenge] = None
        answer: Optional[str] = None

        def step(event: CaptchaEvent) -> CaptchaState:
            nxt = transition(state, event, attempts, limit)
            history.append(nxt.value)
            logger.debug(f"[CAPTCHA] {state.value} --{event.value}--> {nxt.value}")
            return nxt

        state = step(CaptchaEvent.START)
        while state not in TERMINAL_STATES:
            if state is CaptchaState.DETECTING:
                if attempts > 0:
                    self._restart_form(page, refill)
                input_el = self.find_input(page)
                if input_el is None:
                    logger.info("[CAPTCHA] No captcha on page")
                    answer = None
                    state = step(CaptchaEvent.ABSENT)
                else:
                    present = True
                    state = step(CaptchaEvent.PRESENT)

            elif state is CaptchaState.CAPTURING:
                attempts += 1
                challenge, answer = None, None
                literal = self.literal_text(page)
                if literal:
                    logger.info(f"[CAPTCHA] Attempt {attempts}/{limit}: text captcha {literal!r}")
                    answer = literal
                    state = step(CaptchaEvent.CAPTURED)
                    continue
                image = self.capture_image(page, input_el)
                if image is None:
                    logger.warning(f"[CAPTCHA] Attempt {attempts}/{limit}: could not capture captcha image")
                    state = step(CaptchaEvent.FAILED)
                    continue
                challenge = CaptchaChallenge(image_bytes=image, attempt=attempts)
                state = step(CaptchaEvent.CAPTURED)

            elif state is CaptchaState.SOLVING:
                if answer is None and challenge is not None:
                    solve_calls += 1
                    answer = self._solve(challenge)
                if answer:
                    state = step(CaptchaEvent.ANSWERED)
                else:
                    state = step(CaptchaEvent.FAILED)

            elif state is CaptchaState.VERIFYING:
                if self._submit_answer(page, input_el, answer):
                    logger.info(f"[CAPTCHA] Answer {answer!r} accepted on attempt {attempts}")
                    state = step(CaptchaEvent.ACCEPTED)
                else:
                    state = step(CaptchaEvent.FAILED)

        if state is CaptchaState.EXHAUSTED:
            logger.warning(f"[CAPTCHA] Giving up after {attempts} attempts; continuing without a solved captcha")
        return CaptchaOutcome(
            solved=state is CaptchaState.SOLVED,
            attempts=attempts,
            present=present,
            answer=answer if state is CaptchaState.SOLVED else None,
            states=tuple(history),
            solver_calls=solve_calls,
        )

    def find_input(self, page):
        for by, names in ((By.ID, self.profile.captcha_input_ids), (By.NAME, self.profile.captcha_input_ids)):
            for name in names:
                try:
                    found = page.find_elements(by, name)
                except WebDriverException:
                    continue
                if found:
                    return found[0]
        try:
            inputs = page.find_elements(By.TAG_NAME, "input")
        except WebDriverException:
            return None
        for el in inputs:
            attrs = " ".join(
                (el.get_attribute(a) or "") for a in ("id", "name", "placeholder")
            ).lower()
            if "captcha" in attrs:
                return el
        return None

    def _display_elements(self, page) -> list:
        found = []
        for by, names in (
            (By.ID, self.profile.captcha_display_ids),
            (By.CLASS_NAME, self.profile.captcha_display_classes),
        ):
            for name in names:
                try:
                    found.extend(page.find_elements(by, name))
                except WebDriverException:
                    continue
        return found

    def literal_text(self, page) -> Optional[str]:
        """Text captchas render the code as plain text next to the input."""
        for el in self._display_elements(page):
            try:
                if (el.tag_name or "").lower() in ("img", "canvas"):
                    continue
                text = (el.text or el.get_attribute("value") or "").strip()
            except WebDriverException:
                continue
            compact = re.sub(r"\s+", "", text)
            if ANSWER_RE.match(compact):
                return compact
        return None

    def _captcha_images(self, page) -> list:
        images = [el for el in self._display_elements(page) if (el.tag_name or "").lower() in ("img", "canvas")]
        try:
            for img in page.find_elements(By.TAG_NAME, "img"):
                attrs = " ".join(
                    (img.get_attribute(a) or "") for a in ("src", "id", "alt", "class")
                ).lower()
                if "captcha" in attrs:
                    images.append(img)
        except WebDriverException:
            pass
        return images

    def capture_image(self, page, input_el) -> Optional[bytes]:
        for img in self._captcha_images(page):
            try:
                png = img.screenshot_as_png
            except WebDriverException as exc:
                logger.debug(f"[CAPTCHA] Element screenshot failed: {exc}")
                continue
            if png and len(png) >= MIN_IMAGE_BYTES:
                return png
        if input_el is None:
            return None
        return self._crop_around(page, input_el)

    def _crop_around(self, page, input_el) -> Optional[bytes]:
        try:
            rect = page.execute_script(_RECT_SCRIPT, input_el) or {}
            png = page.get_screenshot_as_png()
        except WebDriverException as exc:
            logger.warning(f"[CAPTCHA] Page screenshot failed: {exc}")
            return None
        try:
            im = Image.open(BytesIO(png))
            dpr = float(rect.get("dpr") or 1)
            left = max(0, int((float(rect.get("x", 0)) - CROP_LEFT_OFFSET) * dpr))
            upper = max(0, int((float(rect.get("y", 0)) - CROP_TOP_OFFSET) * dpr))
            right = min(im.size[0], left + int(CROP_MAX_WIDTH * dpr))
            lower = min(im.size[1], upper + int(CROP_MAX_HEIGHT * dpr))
            if right <= left or lower <= upper:
                return png
            out = BytesIO()
            im.crop((left, upper, right, lower)).save(out, format="PNG")
            return out.getvalue()
        except (OSError, ValueError, TypeError) as exc:
            logger.warning(f"[CAPTCHA] Could not crop screenshot: {exc}")
            return None

    def _solve(self, challenge: CaptchaChallenge) -> Optional[str]:
        if self.solver is None:
            logger.warning("[CAPTCHA] No solver configured")
            return None
        try:
            raw = self.solver.solve(challenge.image_bytes)
        except Exception as exc:
            logger.warning(f"[CAPTCHA] Solver failed on attempt {challenge.attempt}: {exc}")
            return None
        answer = clean_answer(raw)
        if answer is None:
            logger.warning(f"[CAPTCHA] Solver answer {raw!r} does not look like a captcha code")
        elif answer != (raw or "").strip():
            logger.info(f"[CAPTCHA] Salvaged {answer!r} from solver answer {raw!r}")
        return answer

    def _submit_answer(self, page, input_el, answer: str) -> bool:
        try:
            safe_send_keys(page, input_el, answer)
        except WebDriverException as exc:
            logger.warning(f"[CAPTCHA] Could not type answer: {exc}")
            return False
        if not self.submit_form(page):
            logger.warning("[CAPTCHA] Form could not be submitted")
            return False
        message = self.rejection_message(page)
        if message:
            logger.warning(f"[CAPTCHA] Answer {answer!r} rejected: {message}")
            return False
        return True

    def rejection_message(self, page) -> Optional[str]:
        try:
            alert = page.switch_to.alert
            text = alert.text or ""
            alert.accept()
            if any(r.search(text) for r in self._rejection_res):
                return text.strip()
        except WebDriverException:
            pass
        text = body_text(page)
        for r in self._rejection_res:
            m = r.search(text)
            if m:
                return m.group(0)
        return None

    def _restart_form(self, page, refill) -> None:
        try:
            self.navigation.reload()
        except NavigationError as exc:
            logger.warning(f"[CAPTCHA] Reload failed ({exc}), reopening the form")
            self.navigation.open(self.profile.form_url)
        if refill is not None:
            refill(page)
