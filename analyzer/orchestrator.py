from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from analyzer import display
from analyzer.errors import AnalyzerError, BusyError, MissingCredentialError, NotReadyError
from analyzer.local_backend import LocalBackend
from analyzer.normalizer import normalize
from analyzer.preferences import CREDENTIAL_KEY, PreferenceStore
from analyzer.remote_backend import RemoteBackend
from analyzer.sentiment_types import BackendMode, ClassificationResult
from analyzer.telemetry import TelemetryEvent, TelemetrySink, base_meta

logger = logging.getLogger(__name__)

ANALYSIS_EVENT = "sentiment_analysis"
REVIEW_META_CHARS = 100


class OrchestratorState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    BUSY = "busy"
    FAILED = "failed"


@dataclass(frozen=True)
class AnalysisOutcome:
    """
    What the UI shows after one analyze() call.

    result is None when the attempt failed; error then holds the reason.
    """

    item: Optional[str]
    result: Optional[ClassificationResult]
    status: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class ModeOrchestrator:
    """
    Owns the active backend mode and routes classification to it.

    Rules:
    - exactly one mode is active; set_mode() switches immediately and is never
      blocked by an in-flight classification
    - entering local mode starts the (memoized) local model load in the background
    - at most one classify() in flight; a second call fails fast with BusyError
    - results are tagged with the mode active when the call was issued
    """

    def __init__(
            self,
            local: LocalBackend,
            remote: RemoteBackend,
            store: PreferenceStore,
            telemetry: TelemetrySink,
            reviews: Sequence[str] = (),
            mode: BackendMode = BackendMode.LOCAL,
            user_agent: str = "",
            rng: Optional[random.Random] = None,
    ):
        self._local = local
        self._remote = remote
        self._store = store
        self._telemetry = telemetry
        self._reviews = list(reviews)
        self._mode = BackendMode(mode)
        self._user_agent = user_agent
        self._rng = rng or random.Random()

        self._local_state = OrchestratorState.READY if local.is_ready else OrchestratorState.IDLE
        self._init_task: Optional[asyncio.Task] = None
        self._in_flight = False

        self.status = ""
        self.last_error: Optional[str] = None
        self.last_result: Optional[ClassificationResult] = None

    @property
    def mode(self) -> BackendMode:
        return self._mode

    @property
    def state(self) -> OrchestratorState:
        if self._in_flight:
            return OrchestratorState.BUSY
        return self._local_state

    @property
    def review_count(self) -> int:
        return len(self._reviews)

    async def start(self) -> str:
        """
        Bring the starting mode up. In local mode this waits for the model load;
        a failed load leaves the session usable in remote mode.
        """
        if self._mode is BackendMode.LOCAL:
            self._begin_local_init()
            await self.wait_until_ready()
        else:
            self.status = display.ready_status(self.review_count, self._mode)
        return self.status

    def set_mode(self, target: BackendMode | str) -> None:
        """
        Switch the active backend.

        Re-selecting the current mode only updates the status text, except in
        local mode when the model never loaded or failed to load: then the load
        is attempted again. Starting a load needs a running event loop; without
        one the mode is left unchanged and the status says why.
        """
        target = BackendMode(target)
        if target is self._mode and not self._local_needs_init(target):
            self.status = f"Already in {target.value} mode."
            return

        if target is BackendMode.LOCAL and not self._local.is_ready:
            if not self._begin_local_init():
                return

        previous = self._mode
        self._mode = target
        logger.info("Mode switched: %s -> %s", previous.value, target.value)

        if target is BackendMode.REMOTE:
            self.status = display.ready_status(self.review_count, target)
            return

        if self._local.is_ready:
            self._local_state = OrchestratorState.READY
            self.status = display.ready_status(self.review_count, target)

    async def wait_until_ready(self) -> bool:
        """Initialization-complete signal. True if the local model is loaded."""
        if self._local.is_ready:
            return True
        if self._init_task is None:
            return False
        return await asyncio.shield(self._init_task)

    async def classify(self, item: str) -> ClassificationResult:
        """
        Classify one item on the backend active right now.

        Raises:
            ValueError: blank item
            BusyError: another classification is in flight
            NotReadyError: local mode, model not loaded yet (or its load failed)
            MissingCredentialError: remote mode, no API key stored
            HttpError: remote call failed
            InferenceError: local backend used out of order
        """
        if not item or not item.strip():
            raise ValueError("Item must be non-empty.")
        if self._in_flight:
            raise BusyError()

        mode = self._mode
        credential: Optional[str] = None
        if mode is BackendMode.LOCAL:
            if self._local_state is OrchestratorState.FAILED:
                raise NotReadyError(display.LOCAL_FAILED_HINT)
            if not self._local.is_ready:
                raise NotReadyError()
        else:
            credential = self._store.get(CREDENTIAL_KEY)
            if not credential:
                raise MissingCredentialError()

        self._in_flight = True
        try:
            if mode is BackendMode.LOCAL:
                raw = await self._local.classify(item)
            else:
                raw = await self._remote.classify(item, credential)
        finally:
            self._in_flight = False

        result = normalize(raw, mode, item)
        logger.info(
            "Classified: mode=%s bucket=%s confidence=%.3f",
            result.mode.value, result.bucket.value, result.confidence
        )
        return result

    async def analyze(self, item: Optional[str] = None) -> AnalysisOutcome:
        """
        Classify item (or a random review), update UI-facing state, log the event.

        Never raises: every failure becomes status text.
        """
        self.last_error = None
        if item is None:
            if not self._reviews:
                return self._failed(None, "Reviews not loaded yet.")
            item = self._rng.choice(self._reviews)

        try:
            result = await self.classify(item)
        except (AnalyzerError, ValueError) as e:
            logger.warning("Analysis failed: mode=%s err=%s", self._mode.value, e)
            return self._failed(item, f"Analysis failed: {e}")
        except Exception as e:
            logger.exception("Analysis failed unexpectedly: mode=%s", self._mode.value)
            return self._failed(item, f"Analysis failed: {e}")

        self.last_result = result
        self._telemetry.emit(
            TelemetryEvent(
                event=ANALYSIS_EVENT,
                variant=result.bucket.value,
                meta={
                    **base_meta(self._user_agent),
                    "mode": result.mode.value,
                    "score": result.confidence,
                    "review": item[:REVIEW_META_CHARS],
                },
            )
        )
        return AnalysisOutcome(item=item, result=result, status=display.render_result(result))

    def _failed(self, item: Optional[str], message: str) -> AnalysisOutcome:
        self.last_error = message
        return AnalysisOutcome(item=item, result=None, status=message, error=message)

    def _local_needs_init(self, target: BackendMode) -> bool:
        return target is BackendMode.LOCAL and self._local_state in (
            OrchestratorState.IDLE,
            OrchestratorState.FAILED,
        )

    def _begin_local_init(self) -> bool:
        """Start (or join) the local model load. False if no event loop is running."""
        if self._init_task is not None and not self._init_task.done():
            self.status = display.LOADING_MODEL
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Local model load needs a running event loop; mode unchanged")
            self.status = display.NO_EVENT_LOOP
            return False
        self._local_state = OrchestratorState.INITIALIZING
        self.status = display.LOADING_MODEL
        self._init_task = loop.create_task(self._run_local_init())
        return True

    async def _run_local_init(self) -> bool:
        try:
            await self._local.init()
        except Exception as e:
            logger.error("Local model load failed: err=%s", e)
            self._local_state = OrchestratorState.FAILED
            self.last_error = f"Failed to load local model: {e}"
            if self.review_count:
                self.status = display.local_failed_status(self.review_count)
            else:
                self.status = display.MODEL_LOAD_FAILED
            return False

        self._local_state = OrchestratorState.READY
        if self._mode is BackendMode.LOCAL:
            self.status = display.ready_status(self.review_count, self._mode)
        return True
