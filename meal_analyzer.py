"""
Stateless meal analyzer: one message in, one structured response out.

`process_message(message, clarification_context) -> (body, status)` where
body is one of:

    {"clarificationNeeded": True, "clarificationPrompt", "missing", "originalClarified"}
    {"error": str}
    {"totalCalories", "breakdown", "date", "nutritionix"}

The clarification context comes from the previous response and is handed
back by the caller; nothing is stored between calls.
"""

import os
from datetime import date, timedelta

from dotenv import load_dotenv

from clarifier import (
    FAILED_PARSE,
    INITIAL,
    NEEDS_MORE_CLARIFICATION,
    advance,
    initial_state,
)
from errors import CollaboratorCallError, UserInputError
from food_entries import make_entry, merge_duplicates
from gpt_helpers import (
    clarify_food_entries,
    create_openai_client,
    parse_clarification_foods,
    validate_foods,
)
from nutritionix import analyze_with_nutritionix, create_session, resolve_nutrition

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
load_dotenv(os.path.join(SCRIPT_DIR, ".env"))

EXTRACTION_FAILED = "Could not process your food entry. Please try rephrasing with specific quantities."
NO_FOODS = "No valid food entries found. Please specify what you ate with quantities."
VALIDATION_FAILED = "Could not validate food entries. Please try again."
NO_VALID_FOODS = "No valid food entries found after validation. Please specify recognizable foods."
NOTHING_TO_ANALYZE = "No foods to analyze after merging. Please try again."


def parse_date_from_message(message, today=None):
    """ISO date for a relative day mentioned in the message, or None."""
    today = today or date.today()
    if "yesterday" in (message or "").lower():
        return (today - timedelta(days=1)).isoformat()
    return None


def _require_message(message):
    if not message or not isinstance(message, str) or not message.strip():
        raise UserInputError("Message is required and must be a string")
    return message.strip()


def clarification_response(prompt, missing, original_clarified):
    return {
        "clarificationNeeded": True,
        "clarificationPrompt": prompt,
        "missing": list(missing),
        "originalClarified": [dict(e) for e in original_clarified],
    }


class MealAnalyzer:
    """Clarify → validate → merge → Nutritionix, one turn per call.

    Clients are created on first use, so a turn that only asks a
    clarification question never needs Nutritionix credentials.
    """

    def __init__(self, openai_client=None, nutritionix_session=None, model=None):
        self.model = model
        self._client = openai_client
        self._session = nutritionix_session

    @property
    def client(self):
        if self._client is None:
            self._client = create_openai_client()
        return self._client

    @property
    def session(self):
        if self._session is None:
            self._session = create_session()
        return self._session

    # ── Collaborators ────────────────────────────────────────────────────

    def _extract(self, message):
        return clarify_food_entries(self.client, message, model=self.model)

    def _interpret(self, message, missing):
        return parse_clarification_foods(self.client, message, missing, model=self.model)

    # ── Turn ─────────────────────────────────────────────────────────────

    def process_message(self, message, clarification_context=None):
        """Process one turn. Returns (response_body, http_status)."""
        try:
            message = _require_message(message)
        except UserInputError as e:
            return {"error": str(e)}, 400

        state = initial_state(clarification_context)
        first_turn = state == INITIAL
        state, context, result = advance(
            state, clarification_context, message, self._extract, self._interpret
        )

        if state == FAILED_PARSE:
            if context is None:
                return {"error": EXTRACTION_FAILED}, 400
            return clarification_response(
                result["clarificationPrompt"], context["missing"], context["originalClarified"]
            ), 200

        if state == NEEDS_MORE_CLARIFICATION:
            return clarification_response(
                result["clarificationPrompt"], context["missing"], context["originalClarified"]
            ), 200

        foods = result["clarified"]
        if not foods:
            return {"error": NO_FOODS}, 400

        date_key = result.get("date")
        if not date_key and first_turn:
            date_key = parse_date_from_message(message)
        return self._analyze(foods, date_key or date.today().isoformat())

    def _analyze(self, foods, date_key):
        try:
            validation = validate_foods(self.client, foods, model=self.model)
        except CollaboratorCallError as e:
            print(f"  [validate] {e}")
            return {"error": VALIDATION_FAILED}, 500

        valid, invalid = validation["valid"], validation["invalid"]
        if invalid and not valid:
            suggestions = " ".join(validation["suggestions"])
            prompt = f"Sorry, I couldn't recognize any valid foods. {suggestions} Please rephrase with recognizable food names."
            return clarification_response(" ".join(prompt.split()), [e["food"] for e in invalid], []), 200
        if not valid:
            return {"error": NO_VALID_FOODS}, 400

        merged = merge_duplicates([
            make_entry(item["food"], item.get("quantity"), 0, item.get("mealTime") or "")
            for item in valid
        ])
        if not merged:
            return {"error": NOTHING_TO_ANALYZE}, 400

        # raises ConfigurationError before any request if credentials are missing
        session = self.session
        nutrition = resolve_nutrition(lambda q: analyze_with_nutritionix(session, q), merged)

        return {
            "totalCalories": nutrition["total"],
            "breakdown": nutrition["breakdown"],
            "date": date_key,
            "nutritionix": nutrition["raw"],
        }, 200
