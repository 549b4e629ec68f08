"""
Fallback Responder: general chat for messages outside the intake flow.

Invoked only when the requester has no active intake and the message
does not express intake intent.  Knows nothing about intake fields.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod

from bloodlink.intake.llm_utils import format_history, llm_generate

logger = logging.getLogger("intake.fallback")

FALLBACK_APOLOGY = (
    "I'm sorry, I'm having trouble processing your request right now. "
    "Please try again later."
)

SYSTEM_PROMPT = (
    "You are a helpful assistant for a blood donation app called BloodLink. "
    "You help users find blood donors, create blood requests, and provide "
    "information about blood donation. Be concise, friendly, and helpful. "
    "If users want to create a blood request, guide them to say "
    "\"create blood request\" clearly."
)


class FallbackResponder(ABC):

    @abstractmethod
    async def respond(self, text: str, history: list[dict[str, str]]) -> str:
        """Reply to ``text``.  Never raises; degrades to a canned message."""


class StaticFallbackResponder(FallbackResponder):
    """Always returns the same reply.  Used when no LLM is configured."""

    def __init__(self, reply: str = FALLBACK_APOLOGY) -> None:
        self.reply = reply

    async def respond(self, text: str, history: list[dict[str, str]]) -> str:
        return self.reply


class GeminiFallbackResponder(FallbackResponder):

    def __init__(
        self,
        llm_client=None,
        model_name: str | None = None,
        max_history: int = 20,
    ) -> None:
        self._client = llm_client
        self._model_name = model_name or os.getenv("FALLBACK_MODEL", "gemini-2.0-flash")
        self.max_history = max_history

    @property
    def client(self):
        if self._client is None:
            try:
                from google import genai
                self._client = genai.Client(api_key=os.getenv("GOOGLE_API_KEY"))
            except Exception as exc:
                logger.error("Failed to create Gemini client: %s", exc)
        return self._client

    def build_prompt(self, text: str, history: list[dict[str, str]]) -> str:
        sections = [SYSTEM_PROMPT]
        transcript = format_history(history, self.max_history)
        if transcript:
            sections.append(f"Conversation so far:\n{transcript}")
        sections.append(f"User: {text}\nAssistant:")
        return "\n\n".join(sections)

    async def respond(self, text: str, history: list[dict[str, str]]) -> str:
        client = self.client
        if client is None:
            return FALLBACK_APOLOGY

        reply = await llm_generate(client, self._model_name, self.build_prompt(text, history))
        if reply is None:
            return FALLBACK_APOLOGY
        return reply.strip()
