# =============================================================================
# Unit Tests — Embedding Adapter
# =============================================================================
#
# Uses scripted fake models and a recording sleep; no embedding server needed.
# =============================================================================

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from docsearch.errors import ConfigurationError, EmbeddingError
from docsearch.services.embedder import (
    EmbeddingAdapter,
    OpenAIEmbeddingModel,
    fit_dimensions,
)


class ScriptedModel:
    """Fails `failures` times, then returns `vector` on every call."""

    def __init__(self, vector: list[float], failures: int = 0):
        self.vector = vector
        self.failures = failures
        self.calls: list[str] = []

    def run(self, text: str) -> list[float]:
        self.calls.append(text)
        if len(self.calls) <= self.failures:
            raise RuntimeError(f"worker crashed (call {len(self.calls)})")
        return self.vector


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _adapter(model, dimensions=1024, sleep=None) -> EmbeddingAdapter:
    return EmbeddingAdapter(
        model=model,
        dimensions=dimensions,
        max_retries=3,
        retry_delay=3.0,
        sleep=sleep or RecordingSleep(),
    )


# ---------------------------------------------------------------------------
# fit_dimensions()
# ---------------------------------------------------------------------------


class TestFitDimensions:

    def test_short_vector_is_right_padded_with_zeros(self):
        native = [0.1 * (i % 7) for i in range(384)]
        fitted = fit_dimensions(native, 1024)
        assert len(fitted) == 1024
        assert fitted[:384] == native
        assert fitted[384:] == [0.0] * 640

    def test_long_vector_is_truncated(self):
        fitted = fit_dimensions(list(range(1536)), 1024)
        assert fitted == [float(i) for i in range(1024)]

    def test_matching_width_passes_through(self):
        native = [0.5, -0.5, 0.25]
        assert fit_dimensions(native, 3) == native

    @pytest.mark.parametrize("native_width", [1, 383, 384, 1023, 1024, 1025, 4096])
    def test_output_width_is_always_target(self, native_width):
        assert len(fit_dimensions([1.0] * native_width, 1024)) == 1024


# ---------------------------------------------------------------------------
# EmbeddingAdapter.embed()
# ---------------------------------------------------------------------------


class TestEmbeddingAdapter:

    def test_success_first_try_does_not_sleep(self):
        sleep = RecordingSleep()
        model = ScriptedModel([1.0] * 384)
        vector = _adapter(model, sleep=sleep).embed("hello world text")
        assert len(vector) == 1024
        assert model.calls == ["hello world text"]
        assert sleep.delays == []

    def test_384_model_output_padded_to_1024(self):
        native = [float(i) / 384 for i in range(384)]
        vector = _adapter(ScriptedModel(native)).embed("some section text")
        assert vector[:384] == native
        assert vector[384:] == [0.0] * 640

    def test_two_failures_then_success(self):
        sleep = RecordingSleep()
        model = ScriptedModel([0.5] * 1024, failures=2)
        vector = _adapter(model, sleep=sleep).embed("retry me please")
        assert vector == [0.5] * 1024
        assert len(model.calls) == 3
        # Backoff grows with the attempt number: 3s, then 6s
        assert sleep.delays == [3.0, 6.0]

    def test_three_failures_raise_embedding_error(self):
        sleep = RecordingSleep()
        model = ScriptedModel([0.5] * 1024, failures=3)
        with pytest.raises(EmbeddingError) as excinfo:
            _adapter(model, sleep=sleep).embed("never works")
        assert excinfo.value.attempts == 3
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert len(model.calls) == 3
        # No sleep after the final attempt
        assert sleep.delays == [3.0, 6.0]

    def test_empty_model_output_counts_as_failure(self):
        model = MagicMock()
        model.run.side_effect = [[], [0.25] * 8]
        vector = _adapter(model, dimensions=8).embed("text text text")
        assert vector == [0.25] * 8
        assert model.run.call_count == 2

    def test_deterministic_model_gives_identical_vectors(self):
        adapter = _adapter(ScriptedModel([0.1, 0.2, 0.3]))
        assert adapter.embed("same input text") == adapter.embed("same input text")

    def test_configuration_error_is_not_retried(self):
        sleep = RecordingSleep()
        model = MagicMock()
        model.run.side_effect = ConfigurationError("No embedding endpoint configured.")
        with pytest.raises(ConfigurationError):
            _adapter(model, sleep=sleep).embed("some section text")
        assert model.run.call_count == 1
        assert sleep.delays == []

    def test_explicit_zero_is_not_replaced_by_settings(self):
        adapter = EmbeddingAdapter(
            model=ScriptedModel([1.0]), dimensions=0, max_retries=1, retry_delay=0.0,
        )
        assert adapter.dimensions == 0
        assert adapter.retry_delay == 0.0

    def test_max_retries_below_one_is_rejected(self):
        with pytest.raises(ValueError, match="max_retries"):
            EmbeddingAdapter(model=ScriptedModel([1.0]), dimensions=4, max_retries=0)


# ---------------------------------------------------------------------------
# OpenAIEmbeddingModel
# ---------------------------------------------------------------------------


class TestOpenAIEmbeddingModel:

    def test_calls_embeddings_endpoint_and_returns_vector(self):
        client = MagicMock()
        client.embeddings.create.return_value = SimpleNamespace(
            data=[SimpleNamespace(index=0, embedding=[0.1, 0.2])],
        )
        model = OpenAIEmbeddingModel(model="gte-small", client=client)

        assert model.run("query text") == [0.1, 0.2]
        client.embeddings.create.assert_called_once_with(
            model="gte-small", input="query text",
        )
