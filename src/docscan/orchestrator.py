"""Staged, cancellable recognition runs around a recognition engine.

A run walks a fixed state machine::

    Initializing ─▶ Preprocessing ─▶ Recognizing ─▶ Completed
         │               │                │
         └───────────────┴────────────────┴──────▶ Failed | Cancelled

and reports a :class:`~docscan.models.RecognitionProgress` snapshot to the
caller's ``on_progress`` callback at every step.  Percentages never go
down within a run, except for the 0 carried by a ``Failed`` or
``Cancelled`` snapshot.  Every run ends in exactly one terminal outcome,
returned as :data:`~docscan.models.RecognitionOutcome`.

Progress bands
--------------
============== =========
Initializing    0 → 20
Preprocessing  25 → 40
Recognizing    45 → 95, then 100 ("Finalizing results...")
============== =========

Cancellation is cooperative.  The :class:`CancellationToken` is checked on
entry to every stage and inside every progress callback the engine makes,
so a request is honoured at the next of those points.  The engine is
always told to ``cancel()`` and release its resources before ``Cancelled``
is reported.

The orchestrator exclusively owns its engine.  Runs are serialised on an
internal lock, and :meth:`RecognitionOrchestrator.submit` executes them on
a dedicated single-thread worker, apart from any live-preview analysis.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from loguru import logger
from PIL import Image

from docscan.config import RecognitionConfig
from docscan.engines.base import RecognitionEngine
from docscan.errors import EngineError, RecognitionCancelled
from docscan.models import (
    Cancelled,
    Completed,
    Failed,
    ProcessingStage,
    RecognitionOutcome,
    RecognitionProgress,
    RecognitionResult,
)
from docscan.postprocessing import clean_text
from docscan.preprocessing import PreprocessingPipeline

ProgressListener = Callable[[RecognitionProgress], None]

RECOGNITION_START = 45
RECOGNITION_CAP = 95


class CancellationToken:
    """Thread-safe, one-way cancellation flag shared with a running recognition."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RecognitionCancelled("Recognition cancelled")


def _wrap(exc: Exception) -> EngineError:
    error = EngineError(str(exc) or type(exc).__name__)
    error.__cause__ = exc
    return error


class _ProgressReporter:
    """Stamps snapshots with elapsed time and keeps percentages non-decreasing."""

    def __init__(self, listener: Optional[ProgressListener]) -> None:
        self._listener = listener
        self._start = time.monotonic()
        self.percent = 0

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._start) * 1000)

    def _deliver(self, snapshot: RecognitionProgress) -> None:
        if self._listener is not None:
            self._listener(snapshot)

    def emit(self, percent: int, stage: ProcessingStage) -> None:
        self.percent = max(self.percent, percent)
        elapsed = self.elapsed_ms()
        remaining = None
        if self.percent > 50:
            remaining = elapsed * 100 // self.percent - elapsed
        self._deliver(RecognitionProgress(self.percent, stage, elapsed, remaining))

    def terminal(self, snapshot: RecognitionProgress) -> None:
        self._deliver(snapshot)


class RecognitionOrchestrator:
    def __init__(
        self,
        engine: RecognitionEngine,
        pipeline: Optional[PreprocessingPipeline] = None,
    ) -> None:
        self._engine = engine
        self._pipeline = pipeline or PreprocessingPipeline()
        self._engine_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="recognition")

    @property
    def engine_name(self) -> str:
        return self._engine.name

    def is_language_available(self, code: str) -> bool:
        with self._engine_lock:
            return self._engine.is_language_available(code)

    def available_languages(self) -> list[str]:
        with self._engine_lock:
            return self._engine.available_languages()

    # ── Running ────────────────────────────────────────────────────────────

    def submit(
        self,
        image: Image.Image,
        config: Optional[RecognitionConfig] = None,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressListener] = None,
    ) -> "Future[RecognitionOutcome]":
        """Schedule :meth:`run` on the orchestrator's dedicated worker thread."""
        return self._executor.submit(self.run, image, config, token, on_progress)

    def run(
        self,
        image: Image.Image,
        config: Optional[RecognitionConfig] = None,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressListener] = None,
    ) -> RecognitionOutcome:
        """Run one recognition to its terminal outcome. Never raises."""
        config = config or RecognitionConfig()
        token = token or CancellationToken()
        with self._engine_lock:
            reporter = _ProgressReporter(on_progress)
            try:
                result = self._run_stages(image, config, token, reporter)
            except RecognitionCancelled:
                self._release_engine()
                elapsed = reporter.elapsed_ms()
                logger.info(f"Recognition cancelled after {elapsed}ms")
                reporter.terminal(RecognitionProgress.cancelled(elapsed))
                return Cancelled(elapsed_ms=elapsed)
            except Exception as e:
                error = e if isinstance(e, EngineError) else _wrap(e)
                self._release_engine()
                elapsed = reporter.elapsed_ms()
                logger.error(f"Recognition failed after {elapsed}ms: {error}")
                reporter.terminal(RecognitionProgress.failed(elapsed))
                return Failed(message=str(error), elapsed_ms=elapsed, error=error)

        logger.info(
            f"Recognition completed in {result.processing_time_ms}ms "
            f"with confidence: {result.confidence_percentage}"
        )
        reporter.terminal(RecognitionProgress.completed(result.processing_time_ms))
        return Completed(result=result, elapsed_ms=result.processing_time_ms)

    def _run_stages(
        self,
        image: Image.Image,
        config: RecognitionConfig,
        token: CancellationToken,
        reporter: _ProgressReporter,
    ) -> RecognitionResult:
        # Initializing
        token.raise_if_cancelled()
        reporter.emit(0, ProcessingStage.INITIALIZING)
        self._engine.initialize(config.language, config.page_segmentation_mode)
        reporter.emit(20, ProcessingStage.INITIALIZING)

        # Preprocessing
        token.raise_if_cancelled()
        reporter.emit(25, ProcessingStage.PREPROCESSING)
        if config.preprocess:
            image = self._pipeline.run(image, config.max_dimension)
        else:
            logger.debug("Preprocessing disabled, passing image through")
        reporter.emit(40, ProcessingStage.PREPROCESSING)

        # Recognizing
        token.raise_if_cancelled()
        reporter.emit(RECOGNITION_START, ProcessingStage.RECOGNIZING)

        def on_engine_progress(fraction: Optional[float]) -> None:
            token.raise_if_cancelled()
            if fraction is None:
                percent = reporter.percent + 1
            else:
                span = RECOGNITION_CAP - RECOGNITION_START
                percent = RECOGNITION_START + int(max(0.0, min(1.0, fraction)) * span)
            reporter.emit(min(percent, RECOGNITION_CAP), ProcessingStage.RECOGNIZING)

        output = self._engine.recognize(image, on_engine_progress)
        token.raise_if_cancelled()

        reporter.emit(100, ProcessingStage.RECOGNIZING)
        return RecognitionResult(
            text=clean_text(output.text),
            confidence=max(0.0, min(1.0, output.confidence)),
            processing_time_ms=reporter.elapsed_ms(),
            language=config.language,
        )

    def _release_engine(self) -> None:
        try:
            self._engine.cancel()
        except Exception as e:
            logger.warning(f"Engine cleanup failed: {e}")

    def shutdown(self) -> None:
        """Stop the worker thread and release the engine."""
        self._executor.shutdown(wait=True)
        with self._engine_lock:
            self._engine.close()
