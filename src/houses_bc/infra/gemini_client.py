"""Gemini model factory for Houses BC agents."""

import google.generativeai as genai

from houses_bc.app.config import get_settings


def get_model(
    model_name: str | None = None,
    temperature: float = 0.7,
    max_output_tokens: int | None = None,
    system_instruction: str | None = None,
):
    """Return a configured Gemini GenerativeModel instance.

    Args:
        model_name: Gemini model identifier. Defaults to ``settings.chat_model``.
        temperature: Generation temperature (0.0-2.0).
        max_output_tokens: Optional cap on reply length.
        system_instruction: Optional system-level instruction.

    Returns:
        A ``google.generativeai.GenerativeModel`` ready for generation.
    """
    settings = get_settings()
    genai.configure(api_key=settings.gemini_api_key)

    generation_config = {"temperature": temperature}
    if max_output_tokens:
        generation_config["max_output_tokens"] = max_output_tokens

    return genai.GenerativeModel(
        model_name=model_name or settings.chat_model,
        generation_config=generation_config,
        system_instruction=system_instruction,
    )
