# =============================================
# File: tests/test_prompting_build.py
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from ragdesk.utils.prompting import build_analysis_messages, MAX_ANSWER_CHARS


def test_messages_contain_question_answer_and_schema():
    msgs = build_analysis_messages("What is the ATM limit?", "It is $500 per day.")
    assert msgs[0]["role"] == "system"
    assert "JSON" in msgs[0]["content"]
    assert msgs[1]["role"] == "user"
    u = msgs[1]["content"]
    assert "QUESTION:\nWhat is the ATM limit?" in u
    assert "ANSWER:\nIt is $500 per day." in u
    for field in ("quality_score", "needs_improvement", "category", "question_type", "question_complexity"):
        assert f'"{field}"' in u


def test_long_answer_is_clipped_and_empty_answer_marked():
    msgs = build_analysis_messages("Q?", "x" * (MAX_ANSWER_CHARS + 500))
    assert "x" * (MAX_ANSWER_CHARS + 1) not in msgs[1]["content"]

    empty = build_analysis_messages("Q?", "   ")
    assert "(empty answer)" in empty[1]["content"]
