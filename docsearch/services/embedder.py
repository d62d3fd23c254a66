# =============================================================================
# Embedding Adapter — Retrying, Fixed-Width Vector Generation
# =============================================================================
#
# Produces a vector of exactly `dimensions` floats for a text input:
#
#   embed(text) -> list[float]   (len == dimensions)
#   raises EmbeddingError        (model failed on every attempt)
#
# RETRY POLICY:
# Up to max_retries attempts. After failed attempt n the adapter sleeps
# retry_delay * n seconds before trying again (3s, 6s with the defaults),
# driven by tenacity. ConfigurationError is never retried and propagates as is.
# Exhausting the attempts is terminal for THIS input only; the batch runner
# moves on to the next row.
#
# DIMENSION SHIM:
# The default model (gte-small) returns 384 dimensions; the sections table
# stores 1024. fit_dimensions() truncates longer vectors and right-pads
# shorter ones with zeros. Padded dimensions carry no semantic information.
# The shim lives only here; a model whose native width equals the column
# width passes through unchanged and callers never see the difference.
#
# MODEL BACKEND:
# EmbeddingModel is a Protocol so tests (and alternative backends) can plug in
# any object with a `run(text)` method. OpenAIEmbeddingModel talks to any
# OpenAI-compatible /embeddings endpoint (OpenAI, text-embeddings-inference,
# vLLM) via the OpenAI SDK with a configurable base_url.
# =============================================================================

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Protocol

from openai import OpenAI
from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from docsearch.config import settings
from docsearch.errors import ConfigurationError, EmbeddingError

logger = logging.getLogger(__name__)


class EmbeddingModel(Protocol):
    """Anything that turns one text into one vector of its native width."""

    def run(self, text: str) -> Sequence[float]:
        ...


# ---------------------------------------------------------------------------
# Default Backend — OpenAI-Compatible API
# ---------------------------------------------------------------------------

_client: OpenAI | None = None


def _get_client() -> OpenAI:
    """Lazily initialize and cache the embedding client."""
    global _client
    if _client is None:
        if not settings.embedding_api_key and not settings.embedding_base_url:
            raise ConfigurationError(
                "No embedding endpoint configured. "
                "Set EMBEDDING_API_KEY or EMBEDDING_BASE_URL in .env"
            )

        client_kwargs: dict = {
            # Self-hosted OpenAI-compatible servers usually ignore the key,
            # but the SDK refuses to start without one.
            "api_key": settings.embedding_api_key or "unused",
        }
        if settings.embedding_base_url:
            client_kwargs["base_url"] = settings.embedding_base_url

        _client = OpenAI(**client_kwargs)

        logger.info(
            "Initialized embedding client (model=%s, base_url=%s)",
            settings.embedding_model,
            settings.embedding_base_url or "https://api.openai.com/v1",
        )
    return _client


class OpenAIEmbeddingModel:
    """Embedding model served behind an OpenAI-compatible /embeddings API."""

    def __init__(self, model: str | None = None, client: OpenAI | None = None):
        self.model = model or settings.embedding_model
        self._client = client

    def run(self, text: str) -> list[float]:
        client = self._client or _get_client()
        response = client.embeddings.create(model=self.model, input=text)
        return list(response.data[0].embedding)


# ---------------------------------------------------------------------------
# Dimension Shim
# ---------------------------------------------------------------------------


def fit_dimensions(vector: Sequence[float], width: int) -> list[float]:
    """
    Truncate or zero-pad `vector` to exactly `width` values.

    Lossy: truncation drops trailing dimensions; padding adds zeros that mean
    nothing to similarity search beyond not contributing to it.
    """
    values = [float(v) for v in vector]
    native = len(values)
    if native > width:
        logger.debug("Embedding truncated from %d to %d dimensions", native, width)
        return values[:width]
    if native < width:
        logger.debug("Embedding padded from %d to %d dimensions", native, width)
        return values + [0.0] * (width - native)
    return values


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class EmbeddingAdapter:
    """
    Wraps an EmbeddingModel with bounded retries and the dimension shim.

    Args:
        model: Backend to call. Defaults to OpenAIEmbeddingModel().
        dimensions: Output width. Defaults to settings.embedding_dimensions.
        max_retries: Total attempts per input, at least 1.
        retry_delay: Base backoff in seconds, multiplied by the attempt number.
        sleep: Injected for tests; defaults to time.sleep.
    """

    def __init__(
        self,
        model: EmbeddingModel | None = None,
        dimensions: int | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.model = model if model is not None else OpenAIEmbeddingModel()
        self.dimensions = (
            settings.embedding_dimensions if dimensions is None else dimensions
        )
        self.max_retries = (
            settings.embedding_max_retries if max_retries is None else max_retries
        )
        self.retry_delay = (
            settings.embedding_retry_delay if retry_delay is None else retry_delay
        )
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        self._sleep = sleep

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_incrementing(start=self.retry_delay, increment=self.retry_delay),
            # A missing endpoint or key will not fix itself between attempts.
            retry=retry_if_not_exception_type(ConfigurationError),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=False,
        )

    def _run_once(self, text: str) -> Sequence[float]:
        output = self.model.run(text)
        if output is None or len(output) == 0:
            raise ValueError("model returned an empty embedding")
        return output

    def embed(self, text: str) -> list[float]:
        """
        Embed one text, retrying transient model failures.

        Returns:
            A list of exactly self.dimensions floats.

        Raises:
            EmbeddingError: every attempt failed. Chained to the last error.
            ConfigurationError: the backend is not configured. Never retried.
        """
        try:
            output = self._retrying()(self._run_once, text)
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            attempts = exc.last_attempt.attempt_number
            raise EmbeddingError(
                f"Embedding failed after {attempts} attempts: {last_error}",
                attempts=attempts,
            ) from last_error

        return fit_dimensions(output, self.dimensions)


_adapter: EmbeddingAdapter | None = None


def get_embedding_adapter() -> EmbeddingAdapter:
    """Process-wide adapter with the default backend. Also a FastAPI dependency."""
    global _adapter
    if _adapter is None:
        _adapter = EmbeddingAdapter()
    return _adapter
