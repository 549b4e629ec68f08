"""
LLM utility functions: retry wrapper and history formatting.

Used by the fallback responder.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

logger = logging.getLogger("intake.llm_utils")


async def llm_generate(
    client: Any,
    model: str,
    contents: str,
    max_retries: int = 2,
    base_backoff: float = 0.5,
) -> str | None:
    """
    Call the LLM with retry and exponential backoff.

    Default: 2 retries (3 total attempts), backoff 0.5s then 1.0s.
    Empty responses count as transient failures.

    Returns the response text, or None once every attempt has failed so
    the caller can use its canned reply.
    """
    for attempt in range(max_retries + 1):
        try:
            response = await client.aio.models.generate_content(
                model=model,
                contents=contents,
            )
            text = response.text
            if isinstance(text, str) and text.strip():
                return text
            logger.warning("LLM returned empty response (attempt %d)", attempt + 1)
        except Exception as exc:
            logger.warning(
                "LLM call failed (attempt %d/%d): %s",
                attempt + 1, max_retries + 1, exc,
            )

        if attempt < max_retries:
            await asyncio.sleep(base_backoff * (2 ** attempt))

    logger.error("LLM call exhausted all %d attempts, returning None", max_retries + 1)
    return None


def format_history(history: list[dict[str, str]], limit: int) -> str:
    """
    Render the last ``limit`` chat turns as ``User:`` / ``Assistant:`` lines.

    Each entry is ``{"role": "user" | "assistant", "content": str}``;
    entries with other roles or no content are skipped.
    """
    lines = []
    for entry in history[-limit:] if limit > 0 else []:
        content = (entry.get("content") or "").strip()
        if not content:
            continue
        role = entry.get("role")
        if role == "user":
            lines.append(f"User: {content}")
        elif role == "assistant":
            lines.append(f"Assistant: {content}")
    return "\n".join(lines)
