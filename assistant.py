#!/usr/bin/env python3
"""
Meal Logger: conversational calorie logger.

Tell it what you ate ("I had 2 eggs and a banana"). If something is too
vague to count ("some chicken") it asks, and once everything is clear it
looks up calories with Nutritionix and prints a breakdown.

Usage:
  python assistant.py              # terminal chat mode

Requires: OPENAI_API_KEY, NUTRITIONIX_APP_ID, NUTRITIONIX_APP_KEY in .env
"""

import argparse
import os
import sys
from datetime import datetime

from errors import ConfigurationError
from meal_analyzer import MealAnalyzer

EXIT_WORDS = {"quit", "exit", "bye", "q"}


# ── Output formatting ─────────────────────────────────────────────────────

def _describe(item):
    return f"{item.get('quantity') or ''} {item['food']}".strip()


def format_acknowledgment(breakdown):
    items = ", ".join(_describe(item) for item in breakdown)
    return f"Got it! I'll log that you had {items}."


def format_breakdown(body):
    """Render a result body as the lines printed after a logged meal."""
    lines = [f"Total calories: {body['totalCalories']} ({body['date']})"]
    for item in body["breakdown"]:
        line = f"    - {_describe(item)}: {item['calories']} cal"
        extras = [x for x in (item.get("mealTime"), item.get("notes")) if x]
        if extras:
            line += f"  [{'; '.join(extras)}]"
        lines.append(line)
    return "\n".join(lines)


def context_from_response(body):
    """Clarification context to send back with the next message."""
    return {
        "originalClarified": body.get("originalClarified") or [],
        "missing": body.get("missing") or [],
    }


# ── Terminal chat mode ────────────────────────────────────────────────────

def handle_turn(analyzer, user_input, context):
    """Run one message through the analyzer. Returns (reply_text, next_context)."""
    body, status = analyzer.process_message(user_input, context)

    if body.get("clarificationNeeded"):
        return body["clarificationPrompt"], context_from_response(body)
    if "error" in body:
        # keep any pending question open so the user can try again
        return body["error"], context
    return f"{format_acknowledgment(body['breakdown'])}\n  {format_breakdown(body)}", None


def run_terminal_chat(analyzer=None, input_func=input):
    """Interactive terminal chat. The clarification context lives here."""
    analyzer = analyzer or MealAnalyzer()
    print(f"\n{'═' * 50}")
    print("  Meal Logger")
    print(f"  {datetime.now().strftime('%A, %B %d %Y, %I:%M %p')}")
    print(f"{'═' * 50}\n")
    print("  Assistant: What did you eat?\n")

    context = None
    while True:
        try:
            user_input = input_func("  You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not user_input:
            continue
        if user_input.lower() in EXIT_WORDS:
            print("\n  Assistant: Later!\n")
            break
        if user_input.lower() in ("cancel", "never mind", "nevermind") and context:
            context = None
            print("\n  Assistant: Ok, dropped that. What did you eat?\n")
            continue

        reply, context = handle_turn(analyzer, user_input, context)
        print(f"\n  Assistant: {reply}\n")


# ── Main ──────────────────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(description="Conversational calorie logger")
    parser.add_argument(
        "--model",
        type=str,
        default=os.getenv("OPENAI_MODEL"),
        help="OpenAI chat model (default gpt-4o)",
    )
    args = parser.parse_args()

    if not os.getenv("OPENAI_API_KEY"):
        print("Missing OPENAI_API_KEY in .env!")
        print("Add it like: OPENAI_API_KEY=sk-...")
        sys.exit(1)

    try:
        run_terminal_chat(MealAnalyzer(model=args.model))
    except ConfigurationError as e:
        print(f"\n  Configuration error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
