"""Shared fakes: a scripted OpenAI client and a Nutritionix session."""

import json
from unittest.mock import MagicMock

import pytest


def chat_response(content):
    """Mock ChatCompletion carrying `content` as the first choice."""
    response = MagicMock()
    choice = MagicMock()
    choice.message.content = content
    response.choices = [choice]
    return response


def http_response(data=None, status=200, text=""):
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.reason = "OK" if resp.ok else "Error"
    resp.text = text or json.dumps(data)
    resp.json.return_value = data
    return resp


@pytest.fixture
def make_openai_client():
    """Client whose chat.completions.create() returns the given replies in order.

    A reply may be a str (JSON text the model "said"), a dict/list (dumped
    to JSON) or an exception instance (raised).
    """
    def _make(*replies):
        effects = []
        for reply in replies:
            if isinstance(reply, BaseException):
                effects.append(reply)
            elif isinstance(reply, str):
                effects.append(chat_response(reply))
            else:
                effects.append(chat_response(json.dumps(reply)))
        client = MagicMock()
        client.chat.completions.create.side_effect = effects
        return client
    return _make


@pytest.fixture
def make_nutritionix_session():
    def _make(data=None, status=200, error=None):
        session = MagicMock()
        if error is not None:
            session.post.side_effect = error
        else:
            session.post.return_value = http_response(data, status)
        return session
    return _make


@pytest.fixture
def eggs_and_banana_foods():
    return {
        "foods": [
            {"food_name": "egg", "serving_qty": 2, "serving_unit": "large", "nf_calories": 140},
            {"food_name": "banana", "serving_qty": 1, "serving_unit": "medium", "nf_calories": 105},
        ]
    }
