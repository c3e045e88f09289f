"""Configuration loading from environment variables and CLI flags."""

import os
from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import Optional


class Engine(str, Enum):
    TESSERACT = "tesseract"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


DEFAULT_MODELS = {
    Engine.ANTHROPIC: "claude-sonnet-4-6",
    Engine.OPENAI: "gpt-4o",
}

ENV_KEYS = {
    Engine.ANTHROPIC: "ANTHROPIC_API_KEY",
    Engine.OPENAI: "OPENAI_API_KEY",
}

TESSDATA_ENV = "TESSDATA_PREFIX"


class PageSegMode(IntEnum):
    """Tesseract page segmentation modes (``--psm``)."""

    OSD_ONLY = 0
    AUTO_OSD = 1
    AUTO_ONLY = 2
    AUTO = 3
    SINGLE_COLUMN = 4
    SINGLE_BLOCK_VERT = 5
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7
    SINGLE_WORD = 8
    CIRCLE_WORD = 9
    SINGLE_CHAR = 10
    SPARSE_TEXT = 11
    SPARSE_TEXT_OSD = 12
    RAW_LINE = 13


@dataclass
class Config:
    """Which engine to build, and the credentials or data it needs."""

    engine: Engine
    model: Optional[str] = None
    api_key: Optional[str] = None
    tessdata_dir: Optional[Path] = None

    @classmethod
    def from_env(
        cls,
        engine: Engine,
        model_override: Optional[str] = None,
        api_key_override: Optional[str] = None,
        tessdata_override: Optional[Path] = None,
    ) -> "Config":
        if engine == Engine.TESSERACT:
            tessdata = tessdata_override or os.environ.get(TESSDATA_ENV) or None
            return cls(engine=engine, tessdata_dir=Path(tessdata) if tessdata else None)

        model = model_override or DEFAULT_MODELS[engine]
        api_key = api_key_override or os.environ.get(ENV_KEYS[engine], "")
        if not api_key:
            raise RuntimeError(
                f"No API key for {engine.value}. "
                f"Set {ENV_KEYS[engine]} in your environment or .env file."
            )
        return cls(engine=engine, model=model, api_key=api_key)


@dataclass(frozen=True)
class RecognitionConfig:
    """Per-run recognition settings."""

    language: str = "eng"
    page_segmentation_mode: PageSegMode = PageSegMode.AUTO
    preprocess: bool = True
    max_dimension: int = 2000

    def __post_init__(self) -> None:
        if not self.language:
            raise ValueError("language must not be empty")
        if self.max_dimension <= 0:
            raise ValueError(f"max_dimension must be positive, got {self.max_dimension}")

    @property
    def tessdata_file_name(self) -> str:
        return f"{self.language}.traineddata"
