"""OpenAI GPT-4o vision engine."""

import base64
import threading
from typing import Any, Optional

from loguru import logger
from openai import OpenAI, OpenAIError
from PIL import Image

from docscan import languages
from docscan.config import PageSegMode
from docscan.engines.base import EngineOutput, ProgressCallback, RecognitionEngine, encode_png
from docscan.errors import EngineError
from docscan.prompt import DOCUMENT_TRANSCRIPTION_PROMPT, transcription_request

SYSTEM_PROMPT = DOCUMENT_TRANSCRIPTION_PROMPT


class OpenAIEngine(RecognitionEngine):
    name = "openai"

    def __init__(self, api_key: str, model: str, max_tokens: int = 4096) -> None:
        self.client = OpenAI(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens
        self._language: Optional[str] = None
        self._stream: Any = None
        self._stream_lock = threading.Lock()

    def initialize(self, language: str, page_segmentation_mode: PageSegMode = PageSegMode.AUTO) -> None:
        if not self.is_language_available(language):
            raise EngineError(f"Unsupported language: {language}")
        self._language = language
        logger.info(f"OpenAI engine ready ({self.model}, {language})")

    def is_language_available(self, code: str) -> bool:
        return languages.is_known(code)

    def recognize(self, image: Image.Image, progress: Optional[ProgressCallback] = None) -> EngineOutput:
        if self._language is None:
            raise EngineError("OpenAI engine used before initialize()")

        b64 = base64.standard_b64encode(encode_png(image)).decode("utf-8")
        content: list[Any] = [
            {
                "type": "image_url",
                "image_url": {
                    "url": f"data:image/png;base64,{b64}",
                    "detail": "high",
                },
            },
            {"type": "text", "text": transcription_request(self._language)},
        ]

        parts: list[str] = []
        try:
            stream = self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                stream=True,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": content},
                ],
            )
            with self._stream_lock:
                self._stream = stream
            for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    parts.append(chunk.choices[0].delta.content)
                if progress is not None:
                    progress(None)
        except OpenAIError as e:
            raise EngineError(f"OpenAI request failed: {e}") from e
        finally:
            self.cancel()

        text = "".join(parts)
        return EngineOutput(text=text, confidence=1.0 if text.strip() else 0.0)

    def cancel(self) -> None:
        with self._stream_lock:
            stream, self._stream = self._stream, None
        if stream is not None:
            stream.close()
