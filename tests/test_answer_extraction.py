# =============================================
# File: tests/test_answer_extraction.py
# Purpose: Answer text lookup across the flow response shapes, in priority order
# =============================================
import sys, os, json
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from ragdesk.utils.extract import extract_answer, FALLBACK_ANSWER, from_text


def _wrap(*inner):
    return {"outputs": [{"outputs": list(inner)}]}


def test_results_message_text():
    data = _wrap({"results": {"message": {"text": "Weekly on Fridays."}}})
    assert extract_answer(data) == "Weekly on Fridays."


def test_results_text():
    data = _wrap({"results": {"text": "From results.text"}})
    assert extract_answer(data) == "From results.text"


def test_message_text():
    data = _wrap({"message": {"text": "From message.text"}})
    assert extract_answer(data) == "From message.text"


def test_priority_prefers_results_message_over_later_paths():
    data = {
        "outputs": [
            {"outputs": [{"message": {"text": "lower priority"}}]},
            {"outputs": [{"results": {"message": {"text": "higher priority"}}}]},
        ],
        "result": "top-level result",
        "text": "top-level text",
    }
    assert extract_answer(data) == "higher priority"


def test_blank_values_are_skipped():
    data = _wrap(
        {"results": {"message": {"text": "   "}}},
        {"results": {"text": "real answer"}},
    )
    assert extract_answer(data) == "real answer"


def test_top_level_result_string_and_object():
    assert extract_answer({"result": "plain"}) == "plain"
    assert extract_answer({"result": {"text": "inner"}}) == "inner"
    obj = {"value": 42}
    assert json.loads(extract_answer({"result": obj})) == obj


def test_top_level_text():
    assert extract_answer({"text": "just text"}) == "just text"


def test_fallback_when_nothing_matches():
    assert extract_answer({}) == FALLBACK_ANSWER
    assert extract_answer({"outputs": "not-a-list"}) == FALLBACK_ANSWER
    assert extract_answer({"outputs": [{"outputs": [None, 3, "x"]}]}) == FALLBACK_ANSWER
    assert extract_answer([1, 2, 3]) == FALLBACK_ANSWER
    assert extract_answer(None) == FALLBACK_ANSWER


def test_custom_extractor_list():
    data = {"text": "t", "result": "r"}
    assert extract_answer(data, extractors=[from_text]) == "t"
