import pytest

from config import constants
from query_engine.errors import GenerationFailure
from query_engine.sql_synthesizer import SQLSynthesizer

from conftest import FakeLLM


def test_primary_model_answer_without_fences():
    llm = FakeLLM(lambda *a: "```sql\nSELECT symbol FROM companies WHERE sector = 'Technology';\n```")
    sql = SQLSynthesizer(llm).synthesize("technology companies")

    assert sql == "SELECT symbol FROM companies WHERE sector = 'Technology';"
    assert [c["model"] for c in llm.calls] == [constants.SQL_PRIMARY_MODEL[0]]
    assert llm.calls[0]["user"] == "technology companies"


def test_fallback_model_used_when_primary_fails():
    def respond(system, user, model):
        if model == constants.SQL_PRIMARY_MODEL[0]:
            return None
        return "SELECT * FROM companies"

    llm = FakeLLM(respond)
    assert SQLSynthesizer(llm).synthesize("all companies") == "SELECT * FROM companies"
    assert [c["model"] for c in llm.calls] == [constants.SQL_PRIMARY_MODEL[0], constants.SQL_FALLBACK_MODEL[0]]


def test_both_models_failing_raises():
    with pytest.raises(GenerationFailure):
        SQLSynthesizer(FakeLLM(lambda *a: None)).synthesize("anything")


def test_blank_reply_counts_as_failure():
    llm = FakeLLM(lambda *a: "   ")
    with pytest.raises(GenerationFailure):
        SQLSynthesizer(llm).synthesize("anything")
    assert len(llm.calls) == 2
