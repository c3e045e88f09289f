"""Anthropic Claude vision engine."""

import base64
import threading
from typing import Any, Optional

import anthropic
from loguru import logger
from PIL import Image

from docscan import languages
from docscan.config import PageSegMode
from docscan.engines.base import EngineOutput, ProgressCallback, RecognitionEngine, encode_png
from docscan.errors import EngineError
from docscan.prompt import DOCUMENT_TRANSCRIPTION_PROMPT, transcription_request

SYSTEM_PROMPT = DOCUMENT_TRANSCRIPTION_PROMPT


class AnthropicEngine(RecognitionEngine):
    """Streams the transcription; every received chunk is a progress point."""

    name = "anthropic"

    def __init__(self, api_key: str, model: str, max_tokens: int = 8192) -> None:
        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens
        self._language: Optional[str] = None
        self._stream: Any = None
        self._stream_lock = threading.Lock()

    def initialize(self, language: str, page_segmentation_mode: PageSegMode = PageSegMode.AUTO) -> None:
        if not self.is_language_available(language):
            raise EngineError(f"Unsupported language: {language}")
        self._language = language
        logger.info(f"Anthropic engine ready ({self.model}, {language})")

    def is_language_available(self, code: str) -> bool:
        return languages.is_known(code)

    def recognize(self, image: Image.Image, progress: Optional[ProgressCallback] = None) -> EngineOutput:
        if self._language is None:
            raise EngineError("Anthropic engine used before initialize()")

        b64 = base64.standard_b64encode(encode_png(image)).decode("utf-8")
        content: list[Any] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": "image/png",
                    "data": b64,
                },
            },
            {"type": "text", "text": transcription_request(self._language)},
        ]

        parts: list[str] = []
        try:
            with self.client.messages.stream(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": content}],
            ) as stream:
                with self._stream_lock:
                    self._stream = stream
                for chunk in stream.text_stream:
                    parts.append(chunk)
                    if progress is not None:
                        progress(None)
        except anthropic.APIError as e:
            raise EngineError(f"Anthropic request failed: {e}") from e
        finally:
            with self._stream_lock:
                self._stream = None

        text = "".join(parts)
        return EngineOutput(text=text, confidence=1.0 if text.strip() else 0.0)

    def cancel(self) -> None:
        with self._stream_lock:
            stream, self._stream = self._stream, None
        if stream is not None:
            stream.close()
