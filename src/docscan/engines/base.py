"""Abstract base for text recognition engines."""

import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from PIL import Image

from docscan.config import PageSegMode
from docscan.languages import LANGUAGES

# Called by an engine while it works.  The argument is the completed
# fraction in [0, 1] when the engine can tell, otherwise ``None``.  The
# callback may raise to abort the engine call.
ProgressCallback = Callable[[Optional[float]], None]


@dataclass(frozen=True)
class EngineOutput:
    text: str
    confidence: float


class RecognitionEngine(ABC):
    """A black-box recogniser.

    An engine instance is not reentrant: at most one ``recognize`` call may be
    in flight at a time.  Failures are raised as ``EngineError``.
    """

    name = "engine"

    @abstractmethod
    def initialize(self, language: str, page_segmentation_mode: PageSegMode = PageSegMode.AUTO) -> None:
        """Load and validate the language data for *language*."""
        ...

    @abstractmethod
    def recognize(self, image: Image.Image, progress: Optional[ProgressCallback] = None) -> EngineOutput:
        """Recognise the text in *image*, calling *progress* whenever the engine can."""
        ...

    @abstractmethod
    def is_language_available(self, code: str) -> bool:
        ...

    def available_languages(self) -> list[str]:
        return [code for code in LANGUAGES if self.is_language_available(code)]

    def cancel(self) -> None:
        """Stop any in-flight recognition and release what it holds."""

    def close(self) -> None:
        """Release everything the engine holds."""
        self.cancel()


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()
