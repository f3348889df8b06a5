"""Gemini-backed agent base.

Model calls never raise to the caller: every call returns an ``AgentResult``
carrying the reply or the failure, plus token usage and latency. Each call
is cut off after ``timeout_seconds``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class AgentResult:
    """Outcome of one model call. ``data`` holds the reply text when ``ok``."""

    ok: bool
    data: Any = None
    error: Optional[str] = None
    tokens_used: int = 0
    latency_ms: int = 0

    @classmethod
    def success(cls, data: Any, tokens_used: int = 0, latency_ms: int = 0) -> "AgentResult":
        return cls(ok=True, data=data, tokens_used=tokens_used, latency_ms=latency_ms)

    @classmethod
    def failure(cls, error: str, latency_ms: int = 0) -> "AgentResult":
        """Create a failure result."""
        return cls(ok=False, error=error, latency_ms=latency_ms)


def _token_usage(response) -> int:
    usage = getattr(response, "usage_metadata", None)
    if not usage:
        return 0
    prompt_tokens = getattr(usage, "prompt_token_count", 0) or 0
    completion_tokens = getattr(usage, "candidates_token_count", 0) or 0
    return prompt_tokens + completion_tokens


# ---------------------------------------------------------------------------
# Base agent
# ---------------------------------------------------------------------------

class BaseAgent:
    """Base class for Gemini-backed agents."""

    def __init__(
        self,
        agent_name: str,
        model_name: Optional[str] = None,
        temperature: float = 0.7,
        timeout_seconds: float = 30.0,
    ):
        """Initialise the agent.

        Args:
            agent_name: A short, unique name for this agent (used in logs).
            model_name: The Gemini model identifier (settings default if None).
            temperature: Generation temperature (0.0-1.0).
            timeout_seconds: Hard limit on one model call.
        """
        self.agent_name = agent_name
        self.model_name = model_name
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds

    async def chat(
        self,
        messages: list[dict],
        system_instruction: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
    ) -> AgentResult:
        """Conduct a multi-turn conversation with Gemini.

        Args:
            messages: Message dicts with ``role`` (``"user"`` or ``"model"``)
                and ``parts`` (list of strings). The **last** message is
                sent as the new user turn; the rest form the history.
            system_instruction: Optional system instruction.
            max_output_tokens: Optional cap on reply length.

        Returns:
            An ``AgentResult`` with the model's latest reply in ``data``.
        """
        if not messages:
            return AgentResult.failure("No messages provided for chat.")

        start_time = time.time()
        try:
            from houses_bc.infra.gemini_client import get_model

            model = get_model(
                model_name=self.model_name,
                temperature=self.temperature,
                max_output_tokens=max_output_tokens,
                system_instruction=system_instruction,
            )

            history = [
                {"role": msg.get("role", "user"), "parts": msg.get("parts", [])}
                for msg in messages[:-1]
            ]
            user_text = "\n".join(str(p) for p in messages[-1].get("parts", []))

            chat_session = model.start_chat(history=history)
            response = await asyncio.wait_for(
                chat_session.send_message_async(user_text),
                timeout=self.timeout_seconds,
            )
            latency_ms = int((time.time() - start_time) * 1000)
            tokens_used = _token_usage(response)

            logger.info(
                "[%s] Chat succeeded: tokens=%d, latency=%dms, turns=%d",
                self.agent_name,
                tokens_used,
                latency_ms,
                len(messages),
            )
            return AgentResult.success(
                data=response.text,
                tokens_used=tokens_used,
                latency_ms=latency_ms,
            )

        except Exception as exc:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "[%s] Chat failed after %dms: %s",
                self.agent_name,
                latency_ms,
                exc,
            )
            return AgentResult.failure(str(exc) or type(exc).__name__, latency_ms=latency_ms)
