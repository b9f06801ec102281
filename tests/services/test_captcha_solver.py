from unittest.mock import MagicMock

import pytest
import requests

from tribunal_scraper.lib.errors import SolverUnavailable
from tribunal_scraper.services.captcha_solver import FALLBACK_PROMPT, PRIMARY_PROMPT, VisionCaptchaSolver

IMAGE = b"\x89PNG\r\n\x1a\n" + b"\x01" * 200


def _response(content=None, json_error=None, status_error=None):
    resp = MagicMock()
    if status_error is not None:
        resp.raise_for_status.side_effect = status_error
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = {"choices": [{"message": {"content": content}}]}
    return resp


def _solver(session):
    return VisionCaptchaSolver(
        api_key="sk-test",
        model="vision-model",
        endpoint="https://llm.example/v1/chat/completions",
        timeout=5,
        session=session,
    )


def test_solve_posts_image_and_returns_text():
    session = MagicMock()
    session.post.return_value = _response(" 7XK2 ")

    assert _solver(session).solve(IMAGE) == "7XK2"

    args, kwargs = session.post.call_args
    assert args[0] == "https://llm.example/v1/chat/completions"
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert kwargs["timeout"] == 5
    content = kwargs["json"]["messages"][0]["content"]
    assert content[0]["text"] == PRIMARY_PROMPT
    assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")


def test_empty_answer_tries_fallback_prompt():
    session = MagicMock()
    session.post.side_effect = [_response(""), _response("AB12")]

    assert _solver(session).solve(IMAGE) == "AB12"
    second = session.post.call_args_list[1][1]["json"]["messages"][0]["content"][0]["text"]
    assert second == FALLBACK_PROMPT


def test_malformed_answer_tries_fallback_prompt():
    session = MagicMock()
    session.post.side_effect = [_response("I cannot read this image"), _response("AB12")]

    assert _solver(session).solve(IMAGE) == "AB12"
    assert session.post.call_count == 2
    second = session.post.call_args_list[1][1]["json"]["messages"][0]["content"][0]["text"]
    assert second == FALLBACK_PROMPT


def test_salvaged_answer_is_returned_clean():
    session = MagicMock()
    session.post.return_value = _response("The code is: X7K2")

    assert _solver(session).solve(IMAGE) == "X7K2"
    assert session.post.call_count == 1


def test_two_malformed_answers_are_unavailable():
    session = MagicMock()
    session.post.side_effect = [_response("Sorry"), _response("I see a picture of letters")]

    with pytest.raises(SolverUnavailable):
        _solver(session).solve(IMAGE)
    assert session.post.call_count == 2


def test_http_errors_become_solver_unavailable():
    session = MagicMock()
    session.post.return_value = _response(status_error=requests.HTTPError("429 Too Many Requests"))

    with pytest.raises(SolverUnavailable):
        _solver(session).solve(IMAGE)
    assert session.post.call_count == 2


def test_invalid_json_and_unexpected_shape():
    session = MagicMock()
    bad_shape = MagicMock()
    bad_shape.json.return_value = {"error": "quota"}
    session.post.side_effect = [_response(json_error=ValueError("bad json")), bad_shape]

    with pytest.raises(SolverUnavailable):
        _solver(session).solve(IMAGE)


def test_missing_key_or_image_is_unavailable(monkeypatch):
    monkeypatch.delenv("TRIBUNAL_CAPTCHA_SOLVER_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    session = MagicMock()

    with pytest.raises(SolverUnavailable):
        VisionCaptchaSolver(session=session).solve(IMAGE)
    with pytest.raises(SolverUnavailable):
        _solver(session).solve(b"tiny")
    session.post.assert_not_called()
