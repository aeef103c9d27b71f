"""Completion API boundary.

The Planner and the StepIterator are the only callers. Both depend on
``generate_completion`` alone, so any object with that method can stand in
for ``LLMClient``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from langchain_core.messages import HumanMessage, SystemMessage

from codeloop.errors import ConfigurationError, LLMError
from codeloop.llm.openrouter import get_llm

logger = logging.getLogger(__name__)


@dataclass
class Completion:
    """One completion round trip."""

    text: str
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str = "stop"


class CompletionClient(Protocol):
    def generate_completion(
        self,
        system_prompt: str,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> Completion: ...


def _content_to_text(content: Any) -> str:
    # Some providers return a list of content blocks instead of a string
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class LLMClient:
    """Blocking completion client over a LangChain chat model."""

    def __init__(
        self,
        model: str | None = None,
        llm_factory: Callable[..., Any] = get_llm,
    ):
        self.model = model
        self._llm_factory = llm_factory

    def generate_completion(
        self,
        system_prompt: str,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> Completion:
        kwargs: dict[str, Any] = {}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            llm = self._llm_factory(model=self.model, temperature=temperature, **kwargs)
            response = llm.invoke([
                SystemMessage(content=system_prompt),
                HumanMessage(content=prompt),
            ])
        except ConfigurationError:
            raise
        except Exception as e:
            logger.warning("Completion request failed: %s", e)
            raise LLMError(f"Completion request failed: {e}") from e

        usage_metadata = getattr(response, "usage_metadata", None) or {}
        response_metadata = getattr(response, "response_metadata", None) or {}

        return Completion(
            text=_content_to_text(response.content),
            usage={
                "prompt_tokens": usage_metadata.get("input_tokens", 0),
                "completion_tokens": usage_metadata.get("output_tokens", 0),
                "total_tokens": usage_metadata.get("total_tokens", 0),
            },
            finish_reason=response_metadata.get("finish_reason") or "stop",
        )
