"""
Clarification state machine.

One call to advance() is one conversation turn:

    advance(state, context, message, extract, interpret)
        -> (new_state, new_context, result)

The caller owns the context {"originalClarified": [...], "missing": [...]}
and hands it back on the next turn; nothing is remembered here. `extract`
and `interpret` are the GPT collaborators (see gpt_helpers), injected so a
turn can be driven with plain functions in tests.
"""

from errors import CollaboratorCallError, CollaboratorParseError
from food_names import all_foods_clarified, build_missing_prompts, still_missing_foods

INITIAL = "initial"
AWAITING_REPLY = "awaiting_reply"
NEEDS_MORE_CLARIFICATION = "needs_more_clarification"
READY_FOR_VALIDATION = "ready_for_validation"
FAILED_PARSE = "failed_parse"

RETRY_PROMPT = (
    "Sorry, I couldn't understand your response. Please try again with specific "
    "quantities (e.g., '1 slice', '1 cup', '2 pieces')."
)


def copy_context(context):
    """Detached copy of a context so callers can't see later edits."""
    if not context:
        return None
    return {
        "originalClarified": [dict(e) for e in context.get("originalClarified") or []],
        "missing": list(context.get("missing") or []),
    }


def initial_state(context):
    if (
        context
        and isinstance(context.get("originalClarified"), list)
        and isinstance(context.get("missing"), list)
    ):
        return AWAITING_REPLY
    return INITIAL


def _result(clarified, missing, prompt=None, date=None):
    return {
        "clarified": clarified,
        "missing": missing,
        "clarificationPrompt": prompt if missing else None,
        "date": date,
    }


# ── Turns ─────────────────────────────────────────────────────────────────

def _first_turn(message, extract):
    try:
        extracted = extract(message)
    except CollaboratorCallError as e:
        print(f"  [clarify] Extraction failed: {e}")
        return FAILED_PARSE, None, _result([], [])

    clarified = [dict(e) for e in extracted.get("clarified") or []]
    missing = [m for m in extracted.get("missing") or [] if m]
    date = extracted.get("date")

    if missing:
        prompt = extracted.get("clarificationPrompt") or build_missing_prompts(missing)
        context = {"originalClarified": clarified, "missing": missing}
        return NEEDS_MORE_CLARIFICATION, copy_context(context), _result(clarified, missing, prompt, date)

    return READY_FOR_VALIDATION, None, _result(clarified, [], date=date)


def _reply_turn(context, message, interpret):
    base = [dict(e) for e in context.get("originalClarified") or []]
    missing = list(context.get("missing") or [])

    try:
        replies = interpret(message, missing)
    except (CollaboratorCallError, CollaboratorParseError) as e:
        print(f"  [clarify] Could not parse clarification: {e}")
        return FAILED_PARSE, copy_context(context), _result(base, missing, RETRY_PROMPT)

    combined = base + [dict(r) for r in replies]

    if not all_foods_clarified(missing, replies):
        remaining = still_missing_foods(missing, replies) or missing
        print(f"  [clarify] Still missing: {remaining}")
        context = {"originalClarified": combined, "missing": remaining}
        prompt = build_missing_prompts(remaining)
        return NEEDS_MORE_CLARIFICATION, copy_context(context), _result(combined, remaining, prompt)

    return READY_FOR_VALIDATION, None, _result(combined, [])


def advance(state, context, message, extract, interpret):
    """Run one turn from `state` (INITIAL or AWAITING_REPLY)."""
    if state == AWAITING_REPLY:
        return _reply_turn(context, message, interpret)
    if state == INITIAL:
        return _first_turn(message, extract)
    raise ValueError(f"Can't advance from terminal state {state!r}")
