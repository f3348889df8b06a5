"""Tests for the chat agent prompt assembly and the Gemini call wrapper."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from houses_bc.agents.chat_agent import (
    HISTORY_WINDOW,
    ChatAgent,
    build_system_prompt,
    to_gemini_messages,
)
from houses_bc.agents.prompts.chat import NO_KNOWLEDGE_FALLBACK


def _msg(role, content):
    return SimpleNamespace(role=role, content=content)


def _model_replying(send):
    model = MagicMock()
    model.start_chat.return_value.send_message_async = send
    return model


class TestPromptAssembly:
    def test_knowledge_is_rendered(self):
        prompt = build_system_prompt([SimpleNamespace(title="PTT", content="Exempt under $500K")])
        assert "### PTT\nExempt under $500K" in prompt
        assert NO_KNOWLEDGE_FALLBACK not in prompt

    def test_fallback_without_knowledge(self):
        assert NO_KNOWLEDGE_FALLBACK in build_system_prompt([])

    def test_history_roles_and_window(self):
        history = [
            _msg("user" if i % 2 == 0 else "assistant", f"m{i}") for i in range(10)
        ]
        turns = to_gemini_messages(history, "new question")
        assert len(turns) == HISTORY_WINDOW + 1
        assert turns[0] == {"role": "user", "parts": ["m4"]}
        assert turns[1] == {"role": "model", "parts": ["m5"]}
        assert turns[-1] == {"role": "user", "parts": ["new question"]}


class TestChatAgent:
    async def test_reply_success(self):
        response = SimpleNamespace(
            text="Hello!",
            usage_metadata=SimpleNamespace(prompt_token_count=12, candidates_token_count=3),
        )
        model = _model_replying(AsyncMock(return_value=response))
        with patch("houses_bc.infra.gemini_client.get_model", return_value=model) as get_model:
            result = await ChatAgent(model_name="gemini-test").reply(
                "Hi", [_msg("user", "earlier"), _msg("assistant", "sure")], []
            )

        assert result.ok
        assert result.data == "Hello!"
        assert result.tokens_used == 15
        assert get_model.call_args.kwargs["model_name"] == "gemini-test"
        assert get_model.call_args.kwargs["max_output_tokens"] == 1000
        history = model.start_chat.call_args.kwargs["history"]
        assert [turn["role"] for turn in history] == ["user", "model"]

    async def test_timeout_is_a_failure_result(self):
        async def never(_text):
            await asyncio.sleep(10)

        model = _model_replying(never)
        agent = ChatAgent(model_name="gemini-test")
        agent.timeout_seconds = 0.01
        with patch("houses_bc.infra.gemini_client.get_model", return_value=model):
            result = await agent.reply("Hi", [], [])

        assert result.ok is False
        assert result.error

    async def test_model_error_is_a_failure_result(self):
        model = _model_replying(AsyncMock(side_effect=RuntimeError("quota exceeded")))
        with patch("houses_bc.infra.gemini_client.get_model", return_value=model):
            result = await ChatAgent().reply("Hi", [], [])
        assert result.ok is False
        assert result.error == "quota exceeded"
