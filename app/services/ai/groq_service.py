"""Groq API integration for text generation."""

import logging
from typing import Any, Dict, List, Optional

from groq import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncGroq

logger = logging.getLogger(__name__)

# Bounded preview of provider error bodies in logs
ERROR_PREVIEW_CHARS = 1000


class GroqService:
    """Service for chat-completion text generation using the Groq API.

    Every failure (missing key, timeout, HTTP error, malformed response)
    is logged and reported as an empty string; nothing is raised past
    ``generate_chat``. Calls are never retried.
    """

    # Available models
    FAST_MODEL = "llama-3.1-8b-instant"
    QUALITY_MODEL = "llama-3.3-70b-versatile"

    # Default parameters
    DEFAULT_MAX_TOKENS = 1200
    DEFAULT_TEMPERATURE = 0.8
    DEFAULT_TIMEOUT = 180  # seconds

    def __init__(
        self,
        api_key: str,
        model: str = FAST_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[Any] = None,
    ):
        """
        Initialize Groq service.

        Args:
            api_key: Groq API key; empty disables generation
            model: Default model identifier
            timeout: Request timeout in seconds
            client: Optional pre-built AsyncGroq-compatible client
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

        logger.info("GroqService initialized with configured=%s, model=%s, timeout=%s",
                    self.is_configured, model, timeout)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = AsyncGroq(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    async def generate_chat(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        model: Optional[str] = None,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str:
        """
        Generate text from role-tagged chat messages.

        Args:
            messages: List of {"role", "content"} dicts
            max_tokens: Maximum tokens in response
            model: Model to use (defaults to the configured model)
            temperature: Sampling temperature

        Returns:
            Generated text, or "" on any failure
        """
        if not self.is_configured:
            logger.warning("Groq API key not set; skipping text generation")
            return ""

        model = model or self.model

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except APIStatusError as e:
            logger.error(
                "Groq generation error: status=%s bodyPreview=%s",
                e.status_code, _preview(e.response),
            )
            return ""
        except APITimeoutError:
            logger.error("Groq generation timed out after %ss", self.timeout)
            return ""
        except APIConnectionError as e:
            logger.error("Groq connection error: %s", e)
            return ""
        except APIError as e:
            logger.error("Groq generation error: %s", e)
            return ""

        try:
            text = response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            logger.error("Malformed Groq response: %s", e)
            return ""

        usage = getattr(response, "usage", None)
        logger.info("Text generated with model=%s, tokens_used=%s",
                    model, getattr(usage, "total_tokens", None))
        return text.strip()


def _preview(response: Any) -> str:
    """Bounded, never-failing preview of an HTTP response body."""
    try:
        return response.text[:ERROR_PREVIEW_CHARS]
    except Exception:
        return "<unreadable response body>"
