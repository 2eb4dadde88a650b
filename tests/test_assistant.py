from unittest.mock import MagicMock

from assistant import format_acknowledgment, format_breakdown, handle_turn, run_terminal_chat

LOGGED = {
    "totalCalories": 245,
    "date": "2026-10-19",
    "breakdown": [
        {"food": "egg", "quantity": "2 large", "calories": 140, "mealTime": "breakfast", "notes": None},
        {"food": "banana", "quantity": "1 medium", "calories": 105, "mealTime": "", "notes": None},
    ],
    "nutritionix": {},
}

QUESTION = {
    "clarificationNeeded": True,
    "clarificationPrompt": "How much chicken did you have?",
    "missing": ["chicken"],
    "originalClarified": [{"food": "rice", "quantity": "1 cup"}],
}


def scripted(*lines):
    it = iter(lines)

    def fake_input(prompt):
        try:
            return next(it)
        except StopIteration:
            raise EOFError
    return fake_input


def test_acknowledgment():
    assert format_acknowledgment(LOGGED["breakdown"]) == "Got it! I'll log that you had 2 large egg, 1 medium banana."
    assert format_acknowledgment([{"food": "salt", "quantity": None}]) == "Got it! I'll log that you had salt."


def test_breakdown_lines():
    lines = format_breakdown(LOGGED).splitlines()
    assert lines[0] == "Total calories: 245 (2026-10-19)"
    assert lines[1] == "    - 2 large egg: 140 cal  [breakfast]"
    assert lines[2] == "    - 1 medium banana: 105 cal"


class TestHandleTurn:
    def test_question_returns_context(self):
        analyzer = MagicMock()
        analyzer.process_message.return_value = (QUESTION, 200)
        reply, context = handle_turn(analyzer, "rice and some chicken", None)
        assert reply == "How much chicken did you have?"
        assert context == {"originalClarified": [{"food": "rice", "quantity": "1 cup"}], "missing": ["chicken"]}

    def test_error_keeps_context(self):
        analyzer = MagicMock()
        analyzer.process_message.return_value = ({"error": "Could not validate food entries. Please try again."}, 500)
        pending = {"originalClarified": [], "missing": ["chicken"]}
        reply, context = handle_turn(analyzer, "1 breast", pending)
        assert reply.startswith("Could not validate")
        assert context is pending

    def test_logged_clears_context(self):
        analyzer = MagicMock()
        analyzer.process_message.return_value = (LOGGED, 200)
        reply, context = handle_turn(analyzer, "2 eggs and a banana", None)
        assert reply.startswith("Got it!")
        assert "Total calories: 245" in reply
        assert context is None


def test_chat_round_trip(capsys):
    analyzer = MagicMock()
    analyzer.process_message.side_effect = [(QUESTION, 200), (LOGGED, 200)]

    run_terminal_chat(analyzer, input_func=scripted("rice and some chicken", "", "1 breast", "quit"))

    first, second = analyzer.process_message.call_args_list
    assert first.args == ("rice and some chicken", None)
    assert second.args == ("1 breast", {"originalClarified": [{"food": "rice", "quantity": "1 cup"}], "missing": ["chicken"]})
    out = capsys.readouterr().out
    assert "How much chicken did you have?" in out
    assert "Total calories: 245" in out
    assert "Later!" in out


def test_cancel_drops_pending_question(capsys):
    analyzer = MagicMock()
    analyzer.process_message.side_effect = [(QUESTION, 200), (LOGGED, 200)]

    run_terminal_chat(analyzer, input_func=scripted("some chicken", "never mind", "2 eggs and a banana"))

    assert analyzer.process_message.call_args_list[1].args == ("2 eggs and a banana", None)
    assert "dropped that" in capsys.readouterr().out
