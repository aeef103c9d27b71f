"""OpenRouter LLM configuration."""

from langchain_openai import ChatOpenAI

from codeloop.config import settings
from codeloop.errors import ConfigurationError


def get_llm(
    model: str | None = None,
    temperature: float | None = None,
    **kwargs,
) -> ChatOpenAI:
    """Get configured ChatOpenAI instance for OpenRouter.

    Args:
        model: Model name (e.g., "anthropic/claude-sonnet-4")
        temperature: Sampling temperature
        **kwargs: Additional arguments for ChatOpenAI (e.g. max_tokens)

    Returns:
        Configured ChatOpenAI instance

    Raises:
        ConfigurationError: OPENROUTER_API_KEY가 설정되지 않은 경우
    """
    if not settings.openrouter_api_key:
        raise ConfigurationError("OPENROUTER_API_KEY is not set")

    return ChatOpenAI(
        model=model or settings.default_model,
        temperature=temperature if temperature is not None else settings.default_temperature,
        base_url=settings.openrouter_base_url,
        api_key=settings.openrouter_api_key,
        default_headers={
            "HTTP-Referer": settings.app_url,
            "X-Title": settings.app_name,
        },
        **kwargs,
    )
