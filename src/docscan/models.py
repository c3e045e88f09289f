"""Value types produced by a recognition run."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class RecognitionResult:
    """Recognised text plus the metadata of the run that produced it.

    ``word_count`` and ``character_count`` are derived from ``text`` on every
    access, so they can never drift out of sync with it.
    """

    text: str
    confidence: float
    processing_time_ms: int
    language: str

    @property
    def word_count(self) -> int:
        stripped = self.text.strip()
        return len(_WHITESPACE.split(stripped)) if stripped else 0

    @property
    def character_count(self) -> int:
        return len(self.text)

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())

    def has_acceptable_confidence(self, threshold: float = 0.5) -> bool:
        return self.confidence >= threshold

    @property
    def confidence_percentage(self) -> str:
        return f"{int(self.confidence * 100)}%"

    @property
    def processing_time_seconds(self) -> float:
        return self.processing_time_ms / 1000.0

    @classmethod
    def empty(cls, language: str = "eng") -> "RecognitionResult":
        return cls(text="", confidence=0.0, processing_time_ms=0, language=language)


class ProcessingStage(str, Enum):
    INITIALIZING = "initializing"
    PREPROCESSING = "preprocessing"
    RECOGNIZING = "recognizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStage.COMPLETED, ProcessingStage.FAILED, ProcessingStage.CANCELLED)


@dataclass(frozen=True)
class RecognitionProgress:
    """One progress snapshot of a recognition run."""

    percent: int
    stage: ProcessingStage
    elapsed_ms: int = 0
    estimated_remaining_ms: Optional[int] = None

    @property
    def fraction(self) -> float:
        return self.percent / 100.0

    @property
    def is_complete(self) -> bool:
        return self.percent >= 100

    @property
    def status_message(self) -> str:
        if self.stage is ProcessingStage.INITIALIZING:
            return "Initializing recognition engine..."
        if self.stage is ProcessingStage.PREPROCESSING:
            return "Preprocessing image..."
        if self.stage is ProcessingStage.RECOGNIZING:
            if self.percent < 100:
                return f"Recognizing text... {self.percent}%"
            return "Finalizing results..."
        if self.stage is ProcessingStage.COMPLETED:
            return "Processing complete"
        if self.stage is ProcessingStage.FAILED:
            return "Processing failed"
        return "Processing cancelled"

    @property
    def estimated_time_text(self) -> Optional[str]:
        if self.estimated_remaining_ms is None:
            return None
        seconds = self.estimated_remaining_ms // 1000
        if seconds < 1:
            return "Less than 1 second"
        if seconds < 60:
            return f"{seconds} seconds"
        return f"{seconds // 60}m {seconds % 60}s"

    @classmethod
    def initial(cls) -> "RecognitionProgress":
        return cls(percent=0, stage=ProcessingStage.INITIALIZING)

    @classmethod
    def completed(cls, elapsed_ms: int) -> "RecognitionProgress":
        return cls(100, ProcessingStage.COMPLETED, elapsed_ms, estimated_remaining_ms=0)

    @classmethod
    def failed(cls, elapsed_ms: int) -> "RecognitionProgress":
        return cls(0, ProcessingStage.FAILED, elapsed_ms)

    @classmethod
    def cancelled(cls, elapsed_ms: int) -> "RecognitionProgress":
        return cls(0, ProcessingStage.CANCELLED, elapsed_ms)


# ── Terminal outcomes ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Completed:
    result: RecognitionResult
    elapsed_ms: int


@dataclass(frozen=True)
class Failed:
    message: str
    elapsed_ms: int
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class Cancelled:
    elapsed_ms: int


RecognitionOutcome = Union[Completed, Failed, Cancelled]
