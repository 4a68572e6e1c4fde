"""
Test the LangChain-backed text generator and tracing helpers.
"""

import os

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from learnpath.agents.base.llm import (
    LlmTextGenerator,
    is_llm_connection_error,
    is_llm_quota_error,
)
from learnpath.core.config import Settings
from learnpath.observability.langsmith import build_trace_config, initialize_langsmith


@pytest.mark.asyncio
class TestLlmTextGenerator:

    async def test_returns_model_text(self):
        generator = LlmTextGenerator(llm=FakeListChatModel(responses=['{"tasks": []}']))

        text = await generator.generate("system", "user", user_uid="u1", purpose="learning-session")

        assert text == '{"tasks": []}'
        assert generator.provider
        assert generator.model


class TestErrorClassification:

    def test_quota_errors(self):
        assert is_llm_quota_error(Exception("Error code: 429 - rate limit reached"))
        assert not is_llm_quota_error(Exception("bad request"))

    def test_connection_errors(self):
        assert is_llm_connection_error(Exception("Connection error."))
        assert not is_llm_connection_error(Exception("Error code: 429"))


class TestTracing:

    def test_trace_config(self):
        config = build_trace_config("learning-plan:u1", tags=["learnpath"], metadata={"user_uid": "u1"})
        assert config["configurable"]["thread_id"] == "learning-plan:u1"
        assert config["run_name"] == "learning-plan"
        assert config["tags"] == ["learnpath"]
        assert config["metadata"] == {"user_uid": "u1"}

    def test_tracing_disabled_without_key(self, monkeypatch):
        monkeypatch.setenv("LANGSMITH_TRACING", "true")
        monkeypatch.setenv("LANGSMITH_API_KEY", "")
        settings = Settings(_env_file=None)

        assert initialize_langsmith(settings) is False
        assert os.environ["LANGSMITH_TRACING"] == "false"
