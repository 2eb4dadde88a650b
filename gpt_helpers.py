"""
GPT collaborators: extraction, clarification parsing and food validation.

Each helper sends one chat completion and reads a JSON answer back through
parse_json_or_fallback(), so a malformed reply degrades to a documented
fallback instead of an exception. SDK/network failures are re-raised as
CollaboratorCallError.
"""

import json
import os
import re

from openai import OpenAI, OpenAIError

from errors import CollaboratorCallError, CollaboratorParseError, ConfigurationError
from food_entries import entry_from_dict, normalize_quantity

DEFAULT_MODEL = "gpt-4o"

FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
FENCE_CLOSE_RE = re.compile(r"\s*```$")

REPHRASE_PROMPT = (
    "I couldn't understand your food entry. Please specify what you ate with clear "
    "quantities (e.g., '2 slices pizza', '1 cup rice')."
)


def create_openai_client(api_key=None, timeout=30.0, max_retries=2):
    api_key = api_key or os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY is not configured")
    return OpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)


# ── Response parsing ──────────────────────────────────────────────────────

def strip_code_fences(text):
    """Remove a ```json ... ``` wrapper if the model added one."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = FENCE_OPEN_RE.sub("", text, count=1)
        text = FENCE_CLOSE_RE.sub("", text, count=1)
    return text.strip()


def parse_json_or_fallback(raw, expect, fallback, label="gpt"):
    """Decode a model reply as JSON of type `expect`, else return `fallback`."""
    text = strip_code_fences(raw)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        print(f"  [{label}] JSON parse error: {e}. Response was: {text[:200]!r}")
        return fallback
    if not isinstance(parsed, expect):
        print(f"  [{label}] Expected {expect.__name__} but got {type(parsed).__name__}")
        return fallback
    return parsed


def _chat(client, system, prompt, model=None, max_tokens=700):
    try:
        completion = client.chat.completions.create(
            model=model or os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
            temperature=0.1,
            max_tokens=max_tokens,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        )
    except OpenAIError as e:
        raise CollaboratorCallError(f"OpenAI request failed: {e}") from e
    if not completion.choices:
        return ""
    return (completion.choices[0].message.content or "").strip()


def _as_list(value):
    """A JSON list field; a lone string/object the model didn't wrap counts as one item."""
    if isinstance(value, list):
        return value
    if isinstance(value, (str, dict)):
        return [value]
    return []


def _string_list(values):
    out = []
    for v in _as_list(values):
        if isinstance(v, dict):
            v = v.get("food")
        if isinstance(v, str) and v.strip():
            out.append(v.strip())
    return out


def _entries(values):
    out = []
    for v in _as_list(values):
        if isinstance(v, str):
            v = {"food": v}
        if isinstance(v, dict) and v.get("food"):
            out.append(entry_from_dict(v))
    return out


def _text_or_none(value):
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# ── Extraction ────────────────────────────────────────────────────────────

def clarify_food_entries(client, message, model=None):
    """Split a meal description into clear entries and still-vague foods.

    Returns {"clarified", "missing", "clarificationPrompt", "date"}.
    """
    prompt = (
        "Clarify vague food entries into specific, measurable quantities suitable for "
        "nutrition analysis, and detect temporal references (e.g. 'yesterday', "
        "'for breakfast', 'after gym').\n\n"
        "1. For each food in the user's message, output an object: { food, quantity, notes, mealTime }\n"
        "2. If any food is missing a quantity, unit, or type, do NOT guess. List it in \"missing\" "
        "and write a clarification question.\n"
        "3. \"a\" or \"an\" before a food (e.g. \"a banana\") means quantity \"1\"; do not ask about it.\n"
        "4. Merge duplicates and synonyms, summing quantities where possible.\n"
        "5. Exclude anything that is not a food and add a note.\n"
        "6. Put any temporal reference in mealTime.\n"
        "7. If all foods are clear, return the clarified list only.\n\n"
        f"User message: \"{message}\"\n\n"
        "Respond in this JSON format:\n"
        "{\n"
        '  "clarified": [ { "food": string, "quantity": string, "notes": string, "mealTime": string } ],\n'
        '  "missing": [ ...foods missing info... ],\n'
        '  "clarificationPrompt": "your clarification question, or null if all foods are clear",\n'
        '  "date": "YYYY-MM-DD or null"\n'
        "}"
    )
    raw = _chat(
        client,
        "You are a nutrition assistant. Always return a valid JSON object as described. "
        "Be conservative - if a food lacks clear quantity, mark it as missing.",
        prompt,
        model=model,
        max_tokens=700,
    )
    parsed = parse_json_or_fallback(raw, dict, None, label="clarify")
    if parsed is None:
        return {
            "clarified": [],
            "missing": [message],
            "clarificationPrompt": REPHRASE_PROMPT,
            "date": None,
        }

    return {
        "clarified": _entries(parsed.get("clarified")),
        "missing": _string_list(parsed.get("missing")),
        "clarificationPrompt": _text_or_none(parsed.get("clarificationPrompt")),
        "date": _text_or_none(parsed.get("date")),
    }


# ── Clarification replies ─────────────────────────────────────────────────

def parse_clarification_foods(client, clarification_text, missing_foods, model=None):
    """Turn a reply like "1 scoop protein and 1 cup oatmeal" into food objects.

    Returns [{"food", "quantity", "originalFood"}]. If the reply isn't a JSON
    array, every missing food is assumed answered with quantity "1".
    Raises CollaboratorParseError if the array holds anything but objects.
    """
    prompt = (
        "Parse the following user clarification into a list of food objects with food name "
        "and quantity. Match these with the original missing foods if possible.\n\n"
        f"Original missing foods: {json.dumps(missing_foods)}\n"
        f"User clarification: \"{clarification_text}\"\n\n"
        "For example:\n"
        'Missing: ["protein shake", "oats"]\n'
        'Input: "1 scoop protein and 1 cup oatmeal"\n'
        "Should match: [\n"
        '  { "food": "protein shake", "quantity": "1 scoop", "originalFood": "protein shake" },\n'
        '  { "food": "oats", "quantity": "1 cup", "originalFood": "oats" }\n'
        "]\n\n"
        "Respond in this JSON format:\n"
        '[ { "food": string, "quantity": string, "originalFood": string } ]\n\n'
        "originalFood should match one of the missing foods if possible."
    )
    raw = _chat(
        client,
        "You are a nutrition assistant. Always return a valid JSON array as described. "
        "Extract food name and quantity from the user's clarification.",
        prompt,
        model=model,
        max_tokens=300,
    )
    fallback = [{"food": f, "quantity": "1", "originalFood": f} for f in missing_foods]
    parsed = parse_json_or_fallback(raw, list, fallback, label="clarify-reply")

    if any(not isinstance(item, dict) for item in parsed):
        raise CollaboratorParseError(f"Expected a list of food objects, got: {parsed!r}")

    replies = []
    for item in parsed:
        food = str(item.get("food") or item.get("originalFood") or "").strip()
        if not food:
            continue
        replies.append({
            "food": food,
            "quantity": normalize_quantity(item.get("quantity")),
            "originalFood": str(item.get("originalFood") or food).strip(),
        })
    return replies


# ── Validation ────────────────────────────────────────────────────────────

def validate_foods(client, clarified, model=None):
    """Split entries into real foods and junk. Fails open (all valid)."""
    prompt = (
        "For each food entry in the list below, check if it is a real, analyzable food "
        "for nutrition analysis.\n"
        "- Valid foods (common foods like eggs, rice, chicken, etc.) go in the \"valid\" list.\n"
        "- Only mark foods \"invalid\" if they are clearly misspelled, not real foods, or "
        "completely unrecognizable.\n"
        "- Merge duplicates and synonyms (e.g. 'banana' + 'another banana', 'apple' + 'gala apple').\n"
        "- Common foods with quantities like \"2 eggs\", \"1 cup rice\", \"1 chicken breast\" are valid.\n"
        "- Be permissive - if it's a recognizable food, it's valid.\n\n"
        f"Input: {json.dumps(clarified)}\n\n"
        "Respond in this JSON format:\n"
        "{\n"
        '  "valid": [ ...valid food objects... ],\n'
        '  "invalid": [ ...invalid food objects... ],\n'
        '  "suggestions": [ ...corrections for invalid foods, in the same order as "invalid"... ]\n'
        "}"
    )
    raw = _chat(
        client,
        "You are a nutrition assistant. Be permissive with food validation - accept common "
        "foods even without specific measurements. Only reject clearly invalid or misspelled foods.",
        prompt,
        model=model,
        max_tokens=700,
    )
    parsed = parse_json_or_fallback(raw, dict, None, label="validate")
    if parsed is None:
        return {"valid": list(clarified), "invalid": [], "suggestions": []}

    return {
        "valid": _entries(parsed.get("valid")),
        "invalid": _entries(parsed.get("invalid")),
        "suggestions": _string_list(parsed.get("suggestions")),
    }
