"""
AWS Lambda handler (API Gateway proxy) for the meal analyzer.

Request body:  {"message": str, "clarificationContext": {...} | null}
Response body: whatever MealAnalyzer.process_message() returns, with its
status code.
"""

import base64
import json
import traceback

from errors import ConfigurationError
from meal_analyzer import MealAnalyzer

# ── Globals (persist across warm Lambda invocations) ─────────────────────

_analyzer = None

UNEXPECTED_ERROR = "An unexpected error occurred. Please try again."


def get_analyzer():
    """Lazy-init the analyzer (reused across warm invocations)."""
    global _analyzer
    if _analyzer is None:
        _analyzer = MealAnalyzer()
    return _analyzer


# ── Context helpers ──────────────────────────────────────────────────────

def load_context(raw):
    """Deserialize a clarification context sent back by the client.

    Accepts the dict itself or a JSON string of it. Anything that doesn't
    look like {"originalClarified": [...], "missing": [...]} is treated as
    no context, i.e. a fresh message.
    """
    if not raw:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None
    if not isinstance(raw, dict):
        return None

    original = raw.get("originalClarified")
    missing = raw.get("missing")
    if not isinstance(original, list) or not isinstance(missing, list):
        return None
    return {
        "originalClarified": [e for e in original if isinstance(e, dict) and e.get("food")],
        "missing": [str(m) for m in missing if m],
    }


def _load_body(event):
    body = event.get("body")
    if body is None:
        return {}
    if isinstance(body, dict):
        return body
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    return json.loads(body)


# ── Response builders ────────────────────────────────────────────────────

def build_response(body, status=200):
    """Build an API Gateway proxy response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }


# ── Main handler ─────────────────────────────────────────────────────────

def lambda_handler(event, context):
    """Main entry point for POST /api/analyzeMeal."""
    try:
        try:
            payload = _load_body(event or {})
        except (ValueError, UnicodeDecodeError):
            return build_response({"error": "Request body must be valid JSON"}, 400)
        if not isinstance(payload, dict):
            return build_response({"error": "Request body must be a JSON object"}, 400)

        clarification_context = load_context(payload.get("clarificationContext"))
        print(f"  [api] Request: message={payload.get('message')!r} "
              f"has_context={clarification_context is not None}")

        body, status = get_analyzer().process_message(payload.get("message"), clarification_context)
        return build_response(body, status)

    except ConfigurationError as e:
        print(f"ERROR: {e}")
        return build_response({"error": str(e)}, 500)
    except Exception:
        print(f"ERROR: {traceback.format_exc()}")
        return build_response({"error": UNEXPECTED_ERROR}, 500)
