"""
Food name normalization and matching.

normalize_food_name() turns "Some Bananas" / "banana" / "a banana" into one
comparable key, and food_names_match() is the single answer to "are these
the same food?" used by merging, nutrition mapping and the clarification
completeness check.
"""

import re
from types import MappingProxyType

# ── Static tables ──────────────────────────────────────────────────────────

# canonical name -> alternate phrasings
FOOD_SYNONYMS = MappingProxyType({
    "protein": ("protein shake", "protein powder", "whey protein", "protein drink"),
    "oats": ("oatmeal", "porridge"),
    "milk": ("dairy milk", "whole milk", "skim milk"),
    "banana": ("bananas",),
    "apple": ("gala apple", "red apple", "green apple"),
    "coffee": ("espresso", "americano"),
    "tea": ("green tea", "black tea", "iced tea"),
    "rice": ("white rice", "brown rice"),
    "chicken": ("chicken breast", "chicken thigh", "chicken meat"),
    "eggs": ("egg",),
})

# Foods usually eaten by the bowl/plate/serving. Only used to phrase questions.
SERVING_FOODS = frozenset({
    "spaghetti", "pasta", "noodles", "rice", "soup", "salad", "cereal", "stew",
    "lasagna", "macaroni", "ramen", "udon", "pho", "risotto", "paella",
    "couscous", "quinoa", "chili", "porridge", "gumbo", "jambalaya", "gnocchi",
    "fettuccine", "tagliatelle", "vermicelli", "penne", "ziti", "linguine",
    "farfalle", "orzo", "fusilli", "bowls", "plates", "servings",
})

FILLER_PREFIX_RE = re.compile(r"^(a |an |the |some |fresh |raw |cooked |prepared |made )")
# "glass" and "bass" keep their double s
PLURAL_SUFFIX_RE = re.compile(r"((?<!s)s|es|ies)$")

# First matching row wins. None matches any food, so it must stay last.
MISSING_FOOD_QUESTIONS = (
    (("protein",), "How much {food} did you have? For example: 1 scoop, 30g, or 1 bottle."),
    (("oats",), "How much {food} did you have? For example: 1 cup, 100g, or 1 packet."),
    (tuple(sorted(SERVING_FOODS)), "How much {food} did you have? For example: 1 serving, 1 plate, or 1 bowl."),
    (None, "How much {food} did you have?"),
)


# ── Normalization ─────────────────────────────────────────────────────────

def _synonym_base(name):
    """Return the canonical name whose group `name` falls in, or None."""
    for base, variations in FOOD_SYNONYMS.items():
        if any(v in name for v in variations) or base in name:
            return base
    return None


def _normalize_once(name):
    name = name.lower().strip()
    name = FILLER_PREFIX_RE.sub("", name, count=1)
    name = PLURAL_SUFFIX_RE.sub("", name, count=1)
    return _synonym_base(name) or name.strip()


def normalize_food_name(food):
    """Lowercase, drop a filler word and a plural suffix, map synonyms.

    Applied until the result stops changing, so normalizing an already
    normalized name is a no-op. Never raises; returns "" for empty input.
    """
    if not food:
        return ""
    name = str(food)
    # each pass either shortens the name or lands on a canonical name
    for _ in range(len(name) + 2):
        nxt = _normalize_once(name)
        if nxt == name:
            break
        name = nxt
    return name


# ── Matching ──────────────────────────────────────────────────────────────

def food_names_match(food1, food2):
    """True if two food names refer to the same food.

    Equal after normalization, one contained in the other ("chicken" vs
    "chicken thigh"), or both in the same synonym group.
    """
    norm1 = normalize_food_name(food1)
    norm2 = normalize_food_name(food2)

    if norm1 == norm2:
        return True
    if not norm1 or not norm2:
        return False
    if norm1 in norm2 or norm2 in norm1:
        return True

    for base, variations in FOOD_SYNONYMS.items():
        in_group1 = any(v in norm1 for v in variations) or base in norm1
        in_group2 = any(v in norm2 for v in variations) or base in norm2
        if in_group1 and in_group2:
            return True
    return False


def _reply_names(reply):
    return [n for n in (reply.get("food"), reply.get("originalFood")) if n]


def reply_answers(missing, reply):
    """True if a clarification reply names the missing food."""
    return any(food_names_match(missing, name) for name in _reply_names(reply))


def all_foods_clarified(missing_foods, clarified_foods):
    """Check every missing food has been answered by at least one reply.

    A reply counts if it names the missing food, or if it carries a numeric
    quantity at all (the user clearly answered *something*, don't loop).
    """
    if not missing_foods:
        return True
    replies = [c for c in (clarified_foods or []) if c]
    if not replies:
        return False

    def satisfied(missing):
        norm_missing = normalize_food_name(missing)
        for reply in replies:
            if reply_answers(missing, reply):
                return True
            for name in _reply_names(reply):
                norm_reply = normalize_food_name(name)
                if norm_reply and (norm_reply in norm_missing or norm_missing in norm_reply):
                    return True
            if re.search(r"\d", str(reply.get("quantity") or "")):
                return True
        return False

    return all(satisfied(m) for m in missing_foods if m)


def still_missing_foods(missing_foods, clarified_foods):
    """Missing foods that no reply names."""
    replies = [c for c in (clarified_foods or []) if c]
    return [
        m for m in (missing_foods or [])
        if m and not any(reply_answers(m, r) for r in replies)
    ]


# ── Clarification questions ───────────────────────────────────────────────

def build_missing_prompt(food):
    lower = food.lower()
    for keys, template in MISSING_FOOD_QUESTIONS:
        if keys is None or any(k in lower for k in keys):
            return template.format(food=food)


def build_missing_prompts(foods):
    """One question per food, joined into a single message."""
    return " ".join(build_missing_prompt(f) for f in foods if f)
