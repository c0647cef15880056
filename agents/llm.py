"""
TradeDesk - LLM Gateway

Single-turn prompt completion over a LangChain chat model, guarded by a
named circuit breaker and retried with exponential backoff, plus the
decoder that turns an analyst's reply into a structured or raw result.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, FiniteFloat, ValidationError

from tradedesk import metrics
from tradedesk.config import LLMConfig, RetryConfig, get_settings
from tradedesk.exceptions import CircuitBreakerError, categorize_error
from tradedesk.logging import get_logger
from tradedesk.resilience import BREAKER_LLM, CircuitBreakerRegistry, with_retry

logger = get_logger(__name__, component="llm")

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


# =============================================================================
# Response decoding
# =============================================================================

class StructuredResponse(BaseModel):
    """A reply that decoded as the expected JSON object."""

    model_config = ConfigDict(extra="allow")

    score: FiniteFloat
    confidence: FiniteFloat
    reasoning: str = ""

    def list_field(self, key: str) -> list[str]:
        """Extra list-valued field such as ``key_factors``; empty if absent."""
        value = (self.model_extra or {}).get(key)
        if not isinstance(value, list):
            return []
        return [str(item) for item in value]


@dataclass(frozen=True)
class RawResponse:
    """A reply that could not be decoded; kept verbatim."""

    text: str


LLMResponse = StructuredResponse | RawResponse


def parse_llm_response(text: str) -> LLMResponse:
    """
    Decode an analyst reply.

    Markdown code fences around the JSON body are tolerated. Anything that
    is not a JSON object with finite numeric ``score`` and ``confidence``
    comes back as a RawResponse; missing values are never defaulted.
    """
    body = text.strip()
    fenced = _FENCE_RE.match(body)
    if fenced:
        body = fenced.group(1)

    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return RawResponse(text=text)

    if not isinstance(payload, dict):
        return RawResponse(text=text)

    try:
        return StructuredResponse.model_validate(payload)
    except ValidationError:
        return RawResponse(text=text)


def _message_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    # Multi-part content: keep the text parts in order
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


# =============================================================================
# Gateway
# =============================================================================

class ChatModelLLM:
    """
    LLMService backed by a LangChain chat model.

    Each attempt passes through the ``llm`` circuit breaker; failed attempts
    are retried with backoff unless the breaker itself rejected the call.
    """

    service_name = "llm"

    def __init__(
        self,
        chat_model: BaseChatModel | None = None,
        registry: CircuitBreakerRegistry | None = None,
        retry_config: RetryConfig | None = None,
        config: LLMConfig | None = None,
        breaker_name: str = BREAKER_LLM,
    ) -> None:
        settings = get_settings()
        self.config = config or settings.llm
        self.retry_config = retry_config or settings.retry
        self.registry = registry or CircuitBreakerRegistry(settings.breaker)
        self.breaker_name = breaker_name
        self._chat_model = chat_model

    @property
    def chat_model(self) -> BaseChatModel:
        if self._chat_model is None:
            from langchain_groq import ChatGroq

            self._chat_model = ChatGroq(
                model=self.config.model,
                temperature=self.config.temperature,
            )
        return self._chat_model

    async def invoke_with_prompt(self, system_prompt: str, user_prompt: str) -> str:
        """Complete ``user_prompt`` under ``system_prompt`` and return the text."""
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ]

        metrics.record_external_request(self.service_name, "invoke")
        timer = metrics.Timer()
        try:
            text = await with_retry(
                self._invoke_guarded,
                messages,
                config=self.retry_config,
                give_up_on=(CircuitBreakerError,),
            )
        except Exception as e:
            metrics.record_external_error(self.service_name, "invoke", categorize_error(e))
            logger.error("llm_invoke_failed", model=self.config.model, error=str(e))
            raise
        finally:
            metrics.observe_external(self.service_name, "invoke", timer.stop())

        logger.debug("llm_invoke_complete", model=self.config.model, chars=len(text))
        return text

    async def _invoke_guarded(self, messages: list[BaseMessage]) -> str:
        return await self.registry.call(self.breaker_name, self._invoke, messages)

    async def _invoke(self, messages: list[BaseMessage]) -> str:
        response = await self.chat_model.ainvoke(messages)
        return _message_text(response.content)
