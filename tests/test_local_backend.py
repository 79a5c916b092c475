from __future__ import annotations

import asyncio

import pytest

from analyzer.errors import InferenceError
from analyzer.local_backend import LocalBackend, LocalModelConfig
from analyzer.sentiment_types import RawSentiment


class _StubPipeline:
    def __init__(self, label: str = "POSITIVE", score: float = 0.98):
        self.label = label
        self.score = score
        self.inputs: list[str] = []

    def __call__(self, text: str):
        self.inputs.append(text)
        return [{"label": self.label, "score": self.score}]


class _CountingFactory:
    def __init__(self, pipeline=None, failures: int = 0):
        self.pipeline = pipeline or _StubPipeline()
        self.failures = failures
        self.calls: list[tuple] = []

    def __call__(self, task, **kwargs):
        self.calls.append((task, kwargs))
        if self.failures:
            self.failures -= 1
            raise OSError("model files missing")
        return self.pipeline


def _backend(factory, max_chars: int = 512) -> LocalBackend:
    cfg = LocalModelConfig(model_id="stub/model", max_chars=max_chars, device="cpu")
    return LocalBackend(cfg, pipeline_factory=factory)


def test_classify_before_init_raises_inference_error():
    backend = _backend(_CountingFactory())
    with pytest.raises(InferenceError):
        asyncio.run(backend.classify("hello"))


def test_init_builds_sentiment_pipeline_once():
    factory = _CountingFactory()
    backend = _backend(factory)

    async def _exercise():
        await asyncio.gather(backend.init(), backend.init(), backend.init())
        await backend.init()

    asyncio.run(_exercise())

    assert backend.is_ready
    assert len(factory.calls) == 1
    task, kwargs = factory.calls[0]
    assert task == "sentiment-analysis"
    assert kwargs["model"] == "stub/model"


def test_classify_returns_raw_sentiment_and_truncates_input():
    pipeline = _StubPipeline(label="negative", score=0.91)
    backend = _backend(_CountingFactory(pipeline), max_chars=5)

    async def _exercise():
        await backend.init()
        return await backend.classify("Awful, broke instantly.")

    raw = asyncio.run(_exercise())

    assert raw == RawSentiment(label="NEGATIVE", score=0.91)
    assert pipeline.inputs == ["Awful"]


def test_failed_init_can_be_retried():
    factory = _CountingFactory(failures=1)
    backend = _backend(factory)

    with pytest.raises(OSError):
        asyncio.run(backend.init())
    assert not backend.is_ready

    asyncio.run(backend.init())
    assert backend.is_ready
    assert len(factory.calls) == 2
