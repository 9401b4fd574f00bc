"""
Tests for analytics question classification.
"""

from datetime import date

import pytest

from leave_agent.errors import InterpretationParseError, QueryUnresolvedError
from leave_agent.interpreter import InterpretationGateway
from leave_agent.models import QueryType
from leave_agent.query_classifier import QueryClassifier


@pytest.fixture
def classifier(clock, test_settings, fake_llm):
    return QueryClassifier(InterpretationGateway(clock, test_settings, completion_fn=fake_llm))


class TestClassify:
    def test_top_employee(self, classifier, fake_llm):
        fake_llm.reply_with({"query_type": "top_employee", "error": ""})

        intent = classifier.classify("Who took the most leave?")

        assert intent.query_type == QueryType.TOP_EMPLOYEE
        assert intent.start_date is None
        assert intent.username is None

    def test_period_stats(self, classifier, fake_llm):
        fake_llm.reply_with(
            {
                "query_type": "period_stats",
                "start_date": "2024-03-01",
                "end_date": "2024-03-31",
                "username": "",
                "error": "",
            }
        )

        intent = classifier.classify("leave stats for March 2024")

        assert intent.query_type == QueryType.PERIOD_STATS
        assert intent.start_date == date(2024, 3, 1)
        assert intent.end_date == date(2024, 3, 31)

    def test_employee_stats_strips_mention(self, classifier, fake_llm):
        fake_llm.reply_with({"query_type": "employee_stats", "username": "@alice", "error": ""})

        intent = classifier.classify("how much leave has @alice taken?")

        assert intent.query_type == QueryType.EMPLOYEE_STATS
        assert intent.username == "alice"

    def test_query_type_case_insensitive(self, classifier, fake_llm):
        fake_llm.reply_with({"query_type": "TOP_EMPLOYEE"})

        assert classifier.classify("top?").query_type == QueryType.TOP_EMPLOYEE

    def test_fenced_reply(self, classifier, fake_llm):
        fake_llm.reply_with('```json\n{"query_type": "top_employee"}\n```')

        assert classifier.classify("top?").query_type == QueryType.TOP_EMPLOYEE

    def test_uses_query_temperature(self, classifier, fake_llm):
        fake_llm.reply_with({"query_type": "top_employee"})

        classifier.classify("Who took the most leave?")

        assert fake_llm.calls[0]["temperature"] == 0.3
        assert '"Who took the most leave?"' in fake_llm.last_prompt
        assert "2026-03-10" in fake_llm.last_prompt


class TestUnresolved:
    def test_model_error_surfaces(self, classifier, fake_llm):
        fake_llm.reply_with({"query_type": "", "error": "I can only answer leave questions"})

        with pytest.raises(QueryUnresolvedError, match="only answer leave questions"):
            classifier.classify("what's the weather?")

    def test_error_reported_with_unknown_query_type(self, classifier, fake_llm):
        """The reason reaches the caller even when query_type is not one we know."""
        fake_llm.reply_with(
            {"query_type": "unknown", "error": "I can only answer leave statistics questions"}
        )

        with pytest.raises(QueryUnresolvedError) as exc_info:
            classifier.classify("what's the weather?")

        assert str(exc_info.value) == "I can only answer leave statistics questions"

    def test_empty_question_skips_model(self, classifier, fake_llm):
        with pytest.raises(QueryUnresolvedError):
            classifier.classify("   ")

        assert fake_llm.calls == []

    def test_missing_query_type(self, classifier, fake_llm):
        fake_llm.reply_with({"start_date": "2024-03-01"})

        with pytest.raises(QueryUnresolvedError):
            classifier.classify("march?")

    @pytest.mark.parametrize(
        "reply",
        [
            {"query_type": "period_stats", "start_date": "2024-03-01"},
            {"query_type": "period_stats", "end_date": "2024-03-31"},
            {"query_type": "period_stats", "start_date": "", "end_date": ""},
        ],
    )
    def test_period_without_both_dates(self, classifier, fake_llm, reply):
        fake_llm.reply_with(reply)

        with pytest.raises(QueryUnresolvedError, match="period"):
            classifier.classify("stats for the period")

    def test_period_reversed(self, classifier, fake_llm):
        fake_llm.reply_with(
            {"query_type": "period_stats", "start_date": "2024-03-31", "end_date": "2024-03-01"}
        )

        with pytest.raises(QueryUnresolvedError):
            classifier.classify("stats for march backwards")

    def test_employee_without_username(self, classifier, fake_llm):
        fake_llm.reply_with({"query_type": "employee_stats", "username": ""})

        with pytest.raises(QueryUnresolvedError, match="employee"):
            classifier.classify("how much leave has he taken?")


class TestMalformed:
    def test_unknown_query_type(self, classifier, fake_llm):
        fake_llm.reply_with({"query_type": "department_stats"})

        with pytest.raises(InterpretationParseError):
            classifier.classify("stats per department")

    def test_bad_date_format(self, classifier, fake_llm):
        fake_llm.reply_with(
            {"query_type": "period_stats", "start_date": "03/01/2024", "end_date": "2024-03-31"}
        )

        with pytest.raises(InterpretationParseError):
            classifier.classify("march stats")

    def test_prose_reply(self, classifier, fake_llm):
        fake_llm.reply_with("Here are the stats you asked for")

        with pytest.raises(InterpretationParseError):
            classifier.classify("march stats")
