"""Captcha solver collaborator interface and a vision-model HTTP adapter."""

import base64
import re
from typing import Optional, Protocol

import requests

from tribunal_scraper.lib.config import Config
from tribunal_scraper.lib.errors import SolverUnavailable
from tribunal_scraper.lib.logging_config import get_logger

logger = get_logger()

PRIMARY_PROMPT = (
    "This image is a website captcha. Read the characters exactly as shown and "
    "reply with ONLY those characters, no spaces or explanation."
)
FALLBACK_PROMPT = (
    "The image contains a short code of 3 to 6 letters or digits, possibly on a noisy "
    "background. Reply with the code only."
)

MIN_IMAGE_BYTES = 100

ANSWER_RE = re.compile(r"^[A-Za-z0-9]{3,6}$")
_TOKEN_RE = re.compile(r"[A-Za-z0-9]+")

# Model replies that fit the answer pattern but mean "no answer"
REFUSAL_WORDS = frozenset(
    {"none", "null", "nil", "sorry", "unable", "cannot", "cant", "unknown", "error", "blank", "empty", "unclear"}
)


def clean_answer(raw: Optional[str]) -> Optional[str]:
    """Return `raw` if it looks like a captcha answer, else salvage one.

    Salvage joins alphanumerics ("a b c 1" -> "abc1"), then takes the last
    3-6 character token containing a digit ("The code is: X7K2" -> "X7K2").
    Refusal words never count as answers.
    """
    if raw is None:
        return None
    text = raw.strip()
    for candidate in (text, "".join(_TOKEN_RE.findall(text))):
        if ANSWER_RE.match(candidate):
            return None if candidate.lower() in REFUSAL_WORDS else candidate
    tokens = [t for t in _TOKEN_RE.findall(text) if ANSWER_RE.match(t)]
    with_digits = [t for t in tokens if any(ch.isdigit() for ch in t)]
    return with_digits[-1] if with_digits else None


class CaptchaSolver(Protocol):
    def solve(self, image_bytes: bytes) -> str:
        ...


class VisionCaptchaSolver:
    """Reads captcha images through an OpenAI-compatible chat completions endpoint.

    Each prompt's reply must pass `clean_answer`; a malformed reply moves on
    to the fallback prompt. Every failure surfaces as ``SolverUnavailable``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or Config.get_captcha_solver_api_key()
        self.model = model or Config.get_captcha_solver_model()
        self.endpoint = endpoint or Config.get_captcha_solver_url()
        self.timeout = timeout or Config.get_captcha_solver_timeout_seconds()
        self.session = session or requests.Session()

    def solve(self, image_bytes: bytes) -> str:
        if not self.api_key:
            raise SolverUnavailable("no captcha solver API key configured")
        if not image_bytes or len(image_bytes) < MIN_IMAGE_BYTES:
            raise SolverUnavailable("captcha image is empty")

        data_url = "data:image/png;base64," + base64.b64encode(image_bytes).decode("ascii")
        last_error = None
        for prompt in (PRIMARY_PROMPT, FALLBACK_PROMPT):
            try:
                text = self._ask(prompt, data_url)
            except SolverUnavailable as exc:
                last_error = exc
                logger.warning(f"[CAPTCHA] Solver request failed: {exc}")
                continue
            answer = clean_answer(text)
            if answer:
                logger.info(f"[CAPTCHA] Solver answered {text!r}")
                return answer
            logger.debug(f"[CAPTCHA] Solver answer {text!r} is not a captcha code")
            last_error = SolverUnavailable(f"solver gave no usable answer: {text!r}")

        raise last_error or SolverUnavailable("solver returned no answer")

    def _ask(self, prompt: str, data_url: str) -> str:
        payload = {
            "model": self.model,
            "max_tokens": 16,
            "temperature": 0,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                }
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            resp = self.session.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as exc:
            raise SolverUnavailable(f"solver request failed: {exc}") from exc
        except ValueError as exc:
            raise SolverUnavailable("solver returned invalid JSON") from exc

        try:
            return (body["choices"][0]["message"]["content"] or "").strip()
        except (KeyError, IndexError, TypeError) as exc:
            raise SolverUnavailable(f"unexpected solver response shape: {body!r}") from exc
