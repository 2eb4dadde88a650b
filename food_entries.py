"""
Food entries and duplicate merging.

A food entry is a plain dict so it can go straight back to the caller:
    {"food": str, "quantity": str|None, "calories": number,
     "mealTime": str|None, "notes": str|None}
"""

import re

from food_names import normalize_food_name

LEADING_NUMBER_RE = re.compile(r"^\d+(\.\d+)?")
ARTICLE_QTY_RE = re.compile(r"^(a|an)\b\s*", re.IGNORECASE)


def _num_or_none(value):
    try:
        if value is None:
            return None
        return float(str(value).replace(",", "").strip())
    except (ValueError, TypeError):
        return None


def format_number(value):
    """2.0 -> "2", 2.5 -> "2.5"."""
    value = float(value)
    if value == int(value):
        return str(int(value))
    return repr(value)


def _calories(value):
    num = _num_or_none(value)
    if num is None or num < 0:
        return 0
    return int(num) if num == int(num) else num


def normalize_quantity(quantity):
    """Apply the one allowed inference: "a"/"an" means 1.

    "a" -> "1", "an apple" -> "1 apple", "a slice" -> "1 slice".
    Anything else is returned as-is (stringified), None stays None.
    """
    if quantity is None:
        return None
    qty = str(quantity).strip()
    if not qty:
        return None
    if ARTICLE_QTY_RE.match(qty):
        rest = ARTICLE_QTY_RE.sub("", qty, count=1)
        return f"1 {rest}" if rest else "1"
    return qty


def make_entry(food, quantity=None, calories=0, mealTime=None, notes=None):
    return {
        "food": str(food).strip() if food else "",
        "quantity": normalize_quantity(quantity),
        "calories": _calories(calories),
        "mealTime": mealTime or None,
        "notes": notes or None,
    }


def entry_from_dict(item):
    """Build an entry from a collaborator's dict (unknown keys dropped)."""
    return make_entry(
        item.get("food"),
        quantity=item.get("quantity"),
        calories=item.get("calories", 0),
        mealTime=item.get("mealTime"),
        notes=item.get("notes"),
    )


# ── Merging ───────────────────────────────────────────────────────────────

def _merge_quantity(prev, curr):
    prev_qty, curr_qty = str(prev), str(curr)
    m_prev = LEADING_NUMBER_RE.match(prev_qty)
    m_curr = LEADING_NUMBER_RE.match(curr_qty)
    if m_prev and m_curr:
        # units are dropped: "2 slices" + "1 slice" -> "3"
        return format_number(float(m_prev.group(0)) + float(m_curr.group(0)))
    return f"{prev_qty} + {curr_qty}"


def merge_duplicates(entries):
    """Collapse entries for the same food into one, in first-seen order.

    Calories add up, numeric quantities add up, anything else is joined with
    " + ". The first mealTime wins; notes are joined with "; ".
    Input dicts are not modified.
    """
    merged = {}
    for item in entries or []:
        if not item or not item.get("food"):
            continue
        key = normalize_food_name(item["food"])
        if not key:
            continue

        if key not in merged:
            merged[key] = dict(item)
            continue

        current = merged[key]
        current["calories"] = (_num_or_none(current.get("calories")) or 0) + (_num_or_none(item.get("calories")) or 0)
        current["calories"] = _calories(current["calories"])

        if item.get("quantity") and current.get("quantity"):
            current["quantity"] = _merge_quantity(current["quantity"], item["quantity"])
        elif item.get("quantity"):
            current["quantity"] = item["quantity"]

        if item.get("mealTime") and not current.get("mealTime"):
            current["mealTime"] = item["mealTime"]

        if item.get("notes"):
            if current.get("notes"):
                current["notes"] = f"{current['notes']}; {item['notes']}"
            else:
                current["notes"] = item["notes"]

    return list(merged.values())
