import base64
import json
from unittest.mock import MagicMock

import pytest

import lambda_function
from errors import ConfigurationError
from lambda_function import UNEXPECTED_ERROR, build_response, lambda_handler, load_context

CONTEXT = {"originalClarified": [{"food": "rice", "quantity": "1 cup"}], "missing": ["chicken"]}


@pytest.fixture
def analyzer(monkeypatch):
    fake = MagicMock()
    fake.process_message.return_value = ({"totalCalories": 245}, 200)
    monkeypatch.setattr(lambda_function, "_analyzer", fake)
    return fake


def event(payload):
    return {"body": json.dumps(payload)}


class TestLoadContext:
    def test_dict(self):
        assert load_context(CONTEXT) == CONTEXT

    def test_json_string(self):
        assert load_context(json.dumps(CONTEXT)) == CONTEXT

    @pytest.mark.parametrize("raw", [None, "", "{not json", "[]", {"missing": ["x"]}, {"originalClarified": {}, "missing": []}])
    def test_not_a_context(self, raw):
        assert load_context(raw) is None

    def test_drops_bad_entries(self):
        raw = {"originalClarified": [{"food": "rice"}, {"quantity": "1"}, "toast"], "missing": ["chicken", ""]}
        assert load_context(raw) == {"originalClarified": [{"food": "rice"}], "missing": ["chicken"]}


def test_build_response():
    response = build_response({"error": "nope"}, 400)
    assert response["statusCode"] == 400
    assert response["headers"]["Content-Type"] == "application/json"
    assert json.loads(response["body"]) == {"error": "nope"}


def test_passes_message_and_context(analyzer):
    response = lambda_handler(event({"message": "1 breast", "clarificationContext": CONTEXT}), None)

    assert response["statusCode"] == 200
    assert json.loads(response["body"]) == {"totalCalories": 245}
    analyzer.process_message.assert_called_once_with("1 breast", CONTEXT)


def test_base64_body(analyzer):
    body = base64.b64encode(json.dumps({"message": "toast"}).encode()).decode()
    lambda_handler({"body": body, "isBase64Encoded": True}, None)
    analyzer.process_message.assert_called_once_with("toast", None)


def test_status_comes_from_analyzer(analyzer):
    analyzer.process_message.return_value = ({"error": "Message is required and must be a string"}, 400)
    response = lambda_handler(event({}), None)
    assert response["statusCode"] == 400
    analyzer.process_message.assert_called_once_with(None, None)


@pytest.mark.parametrize("body", ["{oops", "[1, 2]"])
def test_bad_body(analyzer, body):
    response = lambda_handler({"body": body}, None)
    assert response["statusCode"] == 400
    analyzer.process_message.assert_not_called()


def test_configuration_error(analyzer):
    analyzer.process_message.side_effect = ConfigurationError("Nutritionix credentials not configured")
    response = lambda_handler(event({"message": "toast"}), None)
    assert response["statusCode"] == 500
    assert json.loads(response["body"]) == {"error": "Nutritionix credentials not configured"}


def test_unexpected_error(analyzer):
    analyzer.process_message.side_effect = KeyError("boom")
    response = lambda_handler(event({"message": "toast"}), None)
    assert response["statusCode"] == 500
    assert json.loads(response["body"]) == {"error": UNEXPECTED_ERROR}
