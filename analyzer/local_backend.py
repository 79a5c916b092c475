from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import torch

from analyzer.errors import InferenceError
from analyzer.sentiment_types import RawSentiment

logger = logging.getLogger(__name__)

PipelineFactory = Callable[..., Any]


@dataclass(frozen=True)
class LocalModelConfig:
    model_id: str
    max_chars: int
    device: str  # "auto" | "cpu" | "cuda"


def _select_device(device: str) -> torch.device:
    if device == "cpu":
        return torch.device("cpu")
    if device == "cuda":
        return torch.device("cuda")
    # auto
    return torch.device("cuda" if torch.cuda.is_available() else "cpu")


def _default_pipeline_factory(*args: Any, **kwargs: Any) -> Any:
    from transformers import pipeline

    return pipeline(*args, **kwargs)


class LocalBackend:
    """
    In-process sentiment pipeline, constructed on first use.

    - init() is memoized: concurrent callers await the same load task
    - a failed load is forgotten so the next init() tries again
    - model load and inference run in worker threads so the event loop stays free

    The first load downloads the model (can take tens of seconds); later loads
    hit the Hugging Face cache.
    """

    def __init__(self, cfg: LocalModelConfig, pipeline_factory: Optional[PipelineFactory] = None):
        self._cfg = cfg
        self._pipeline_factory = pipeline_factory or _default_pipeline_factory
        self._classifier: Any = None
        self._init_task: Optional[asyncio.Task] = None

    @property
    def is_ready(self) -> bool:
        return self._classifier is not None

    @property
    def is_initializing(self) -> bool:
        return self._init_task is not None and not self._init_task.done()

    async def init(self) -> None:
        """
        Load the pipeline once.

        Raises:
            Exception: whatever the model load raised (OSError for missing files, etc.)
        """
        if self._classifier is not None:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._load())
        task = self._init_task
        try:
            await asyncio.shield(task)
        except BaseException:
            if self._init_task is task and task.done():
                self._init_task = None
            raise

    async def _load(self) -> None:
        device = _select_device(self._cfg.device)
        logger.info("Loading local sentiment model: model=%s device=%s", self._cfg.model_id, device.type)
        classifier = await asyncio.to_thread(
            self._pipeline_factory,
            "sentiment-analysis",
            model=self._cfg.model_id,
            tokenizer=self._cfg.model_id,
            device=device,
        )
        self._classifier = classifier
        logger.info("Local sentiment model ready: model=%s", self._cfg.model_id)

    async def classify(self, item: str) -> RawSentiment:
        """
        Classify one text.

        Raises:
            InferenceError: if called before init() completed
        """
        if self._classifier is None:
            raise InferenceError("Local model used before initialization completed.")

        output = await asyncio.to_thread(self._classifier, item[: self._cfg.max_chars])
        first = output[0]
        return RawSentiment(label=str(first["label"]).upper(), score=float(first["score"]))
