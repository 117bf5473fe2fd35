"""OpenAI-backed fact extraction and reconciliation backend.

Both calls use JSON mode at temperature 0 so the same conversation always
produces the same request. Transport errors, empty content and malformed JSON
are all raised as :class:`BackendCallFailure`; callers decide how to fall back.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from pinecone_memory.exceptions import BackendCallFailure, ConfigurationError
from pinecone_memory.prompts import FACT_EXTRACTION_PROMPT, MEMORY_RECONCILE_PROMPT
from pinecone_memory.types import field_value

logger = logging.getLogger("pinecone_memory.llm")


# ---------------------------------------------------------------------------
# Response projection
# ---------------------------------------------------------------------------


def _first_choice(response):
    choices = field_value(response, "choices")
    if isinstance(choices, (list, tuple)) and choices:
        return choices[0]
    return None


def _chat_message_content(response) -> Any:
    return field_value(field_value(_first_choice(response), "message"), "content")


def _completion_text(response) -> Any:
    return field_value(_first_choice(response), "text")


def _output_text(response) -> Any:
    return field_value(response, "output_text")


# Tried in order; the first non-empty string wins.
RESPONSE_TEXT_STRATEGIES: List[Callable[[Any], Any]] = [
    _chat_message_content,
    _completion_text,
    _output_text,
]


def response_text(response) -> str:
    """Best-effort projection of a completion response to its text."""
    for strategy in RESPONSE_TEXT_STRATEGIES:
        value = strategy(response)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def _parse_json_object(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise BackendCallFailure(f"malformed JSON from backend: {e}") from e
    if not isinstance(data, dict):
        raise BackendCallFailure("backend returned JSON that is not an object")
    return data


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------


class OpenAIBackend:
    """Chat-completions client for ``extract_facts`` and ``reconcile``.

    Parameters
    ----------
    client:
        An ``AsyncOpenAI``-compatible client. Built from ``api_key`` if omitted.
    model:
        Chat model name.
    """

    def __init__(
        self,
        client=None,
        *,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise ConfigurationError("OPENAI_API_KEY is required for llm capture mode")
            client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings) -> "OpenAIBackend":
        return cls(
            model=settings.llm_model,
            api_key=settings.openai_api_key,
            base_url=settings.llm_base_url,
        )

    async def _complete(self, system_prompt: str, user_content: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except Exception as e:
            raise BackendCallFailure(f"completion request failed: {e}") from e
        return response_text(response)

    async def extract_facts(self, conversation_text: str) -> List[str]:
        """Return the ``facts`` array the backend extracted from the text."""
        content = await self._complete(FACT_EXTRACTION_PROMPT, conversation_text)
        if not content:
            raise BackendCallFailure("backend returned empty content for fact extraction")
        facts = _parse_json_object(content).get("facts", [])
        if not isinstance(facts, list):
            raise BackendCallFailure("backend 'facts' is not a list")
        return facts

    async def reconcile(self, prompt_block: str) -> List[Dict[str, Any]]:
        """Return raw ``memory`` decision dicts (placeholder ids, unvalidated)."""
        content = await self._complete(MEMORY_RECONCILE_PROMPT, prompt_block)
        if not content:
            logger.debug("Reconcile returned no content")
            return []
        decisions = _parse_json_object(content).get("memory", [])
        if not isinstance(decisions, list):
            raise BackendCallFailure("backend 'memory' is not a list")
        return [d for d in decisions if isinstance(d, dict)]
