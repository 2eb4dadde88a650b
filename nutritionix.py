"""
Nutritionix natural-language lookup.

Sends one composed query ("2 egg and 1 banana") per turn and maps the
structured foods that come back onto our entries. Any HTTP trouble falls
back to zero-calorie placeholders; only missing credentials are fatal.
"""

import math
import os

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from errors import CollaboratorCallError, ConfigurationError
from food_entries import format_number, merge_duplicates
from food_names import food_names_match

NUTRITIONIX_API_URL = "https://trackapi.nutritionix.com/v2/natural/nutrients"
DEFAULT_TIMEOUT = 15

ZERO_CALORIE_NOTE = "Zero calories or data unavailable"
UNAVAILABLE_NOTE = "Nutritionix data unavailable"
FETCH_FAILED_NOTE = "Could not fetch calorie data"


# ── Session setup ──────────────────────────────────────────────────────────

def create_session(app_id=None, app_key=None):
    """Create a requests session carrying the Nutritionix app credentials."""
    app_id = app_id or os.getenv("NUTRITIONIX_APP_ID")
    app_key = app_key or os.getenv("NUTRITIONIX_APP_KEY")
    if not app_id or not app_key:
        raise ConfigurationError("Nutritionix credentials not configured")

    session = requests.Session()
    session.headers.update({
        "x-app-id": app_id,
        "x-app-key": app_key,
        "Content-Type": "application/json",
    })
    retries = Retry(
        total=3,
        backoff_factor=0.5,
        status_forcelist=[429, 502, 503, 504],
        allowed_methods=frozenset(["POST"]),
    )
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


def analyze_with_nutritionix(session, query, timeout=None):
    """POST a natural-language query. Returns the decoded JSON body."""
    if timeout is None:
        timeout = float(os.getenv("NUTRITIONIX_TIMEOUT", DEFAULT_TIMEOUT))
    try:
        resp = session.post(NUTRITIONIX_API_URL, json={"query": query}, timeout=timeout)
    except requests.RequestException as e:
        raise CollaboratorCallError(f"Nutritionix request failed: {e}") from e

    if not resp.ok:
        raise CollaboratorCallError(
            f"Nutritionix API error: {resp.status_code} {resp.reason} - {resp.text[:200]}"
        )
    try:
        return resp.json()
    except ValueError as e:
        raise CollaboratorCallError(f"Nutritionix returned non-JSON body: {e}") from e


# ── Mapping results back onto entries ─────────────────────────────────────

def _round_calories(value):
    try:
        return int(math.floor(float(value or 0) + 0.5))
    except (ValueError, TypeError):
        return 0


def build_query(entries):
    """"2 egg and 1 banana" from merged entries."""
    parts = []
    for item in entries:
        qty = item.get("quantity")
        parts.append(f"{qty} {item['food']}" if qty else item["food"])
    return " and ".join(parts)


def _serving(item):
    qty = item.get("serving_qty")
    if isinstance(qty, (int, float)):
        qty = format_number(qty)
    unit = item.get("serving_unit")
    return " ".join(str(p) for p in (qty, unit) if p not in (None, "")).strip()


def map_nutritionix_foods(foods, merged_entries):
    """Turn Nutritionix food records into entries, restoring mealTime."""
    breakdown = []
    for item in foods:
        name = item.get("food_name") or ""
        meal_time = next(
            (e.get("mealTime") for e in merged_entries if food_names_match(e["food"], name)),
            None,
        )
        breakdown.append({
            "food": name,
            "quantity": _serving(item),
            "calories": _round_calories(item.get("nf_calories")),
            "mealTime": meal_time or "",
        })
    return merge_duplicates(breakdown)


def _placeholders(merged_entries, note):
    return [
        {
            "food": e["food"],
            "quantity": e.get("quantity"),
            "calories": 0,
            "mealTime": e.get("mealTime") or "",
            "notes": note,
        }
        for e in merged_entries
    ]


def resolve_nutrition(lookup, merged_entries):
    """Look up calories for merged entries with a single call.

    `lookup(query)` returns the Nutritionix JSON body. Returns
    {"breakdown": [...], "total": int, "raw": body-or-None}.
    """
    query = build_query(merged_entries)
    print(f"  [nutritionix] Query: {query}")

    raw = None
    try:
        raw = lookup(query)
    except CollaboratorCallError as e:
        print(f"  [nutritionix] {e}")
        breakdown = _placeholders(merged_entries, FETCH_FAILED_NOTE)
    else:
        foods = raw.get("foods") if isinstance(raw, dict) else None
        foods = [f for f in foods if isinstance(f, dict)] if isinstance(foods, list) else []
        if foods:
            breakdown = map_nutritionix_foods(foods, merged_entries)
        else:
            breakdown = _placeholders(merged_entries, UNAVAILABLE_NOTE)

    for item in breakdown:
        if item.get("calories") == 0 and not item.get("notes"):
            item["notes"] = ZERO_CALORIE_NOTE

    total = sum(item.get("calories") or 0 for item in breakdown)
    return {"breakdown": breakdown, "total": total, "raw": raw}
