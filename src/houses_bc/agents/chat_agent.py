"""Chat Agent - answers website visitors' home-buying questions."""

import logging
from typing import Iterable, Optional

from houses_bc.agents.base import AgentResult, BaseAgent
from houses_bc.agents.prompts.chat import (
    CHAT_SYSTEM_PROMPT,
    KNOWLEDGE_ENTRY_TEMPLATE,
    NO_KNOWLEDGE_FALLBACK,
    RESPONSE_STYLE_TONES,
)
from houses_bc.app.config import get_settings
from houses_bc.domain.enums import ChatRole

logger = logging.getLogger(__name__)

# Last 3 exchanges are sent as context
HISTORY_WINDOW = 6
MAX_OUTPUT_TOKENS = 1000


def build_system_prompt(knowledge: Iterable, style: str = "friendly") -> str:
    """Render the system prompt with knowledge base entries (title/content)."""
    entries = [
        KNOWLEDGE_ENTRY_TEMPLATE.format(title=entry.title, content=entry.content)
        for entry in knowledge
    ]
    return CHAT_SYSTEM_PROMPT.format(
        knowledge="\n".join(entries) or NO_KNOWLEDGE_FALLBACK,
        tone=RESPONSE_STYLE_TONES.get(style, RESPONSE_STYLE_TONES["friendly"]),
    )


def to_gemini_messages(history: Iterable, message: str) -> list[dict]:
    """Map stored chat messages plus the new user turn to Gemini chat turns."""
    turns = []
    for msg in list(history)[-HISTORY_WINDOW:]:
        role = "model" if msg.role == ChatRole.ASSISTANT.value else "user"
        turns.append({"role": role, "parts": [msg.content]})
    turns.append({"role": "user", "parts": [message]})
    return turns


class ChatAgent(BaseAgent):
    """Real estate assistant grounded in the admin-curated knowledge base."""

    def __init__(self, model_name: Optional[str] = None):
        settings = get_settings()
        super().__init__(
            agent_name="chat",
            model_name=model_name or settings.chat_model,
            temperature=0.7,
            timeout_seconds=settings.chat_timeout_seconds,
        )

    async def reply(
        self,
        message: str,
        history: Iterable,
        knowledge: Iterable,
        style: str = "friendly",
    ) -> AgentResult:
        """Answer ``message`` given prior ChatMessage rows and ChatKnowledge rows."""
        return await self.chat(
            to_gemini_messages(history, message),
            system_instruction=build_system_prompt(knowledge, style),
            max_output_tokens=MAX_OUTPUT_TOKENS,
        )
