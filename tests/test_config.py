"""Tests for docscan.config — Config.from_env(), Engine and RecognitionConfig."""

from pathlib import Path

import pytest

from docscan.config import (
    DEFAULT_MODELS,
    ENV_KEYS,
    Config,
    Engine,
    PageSegMode,
    RecognitionConfig,
)


class TestEngineEnum:
    def test_values(self):
        assert [e.value for e in Engine] == ["tesseract", "anthropic", "openai"]

    def test_string_equality(self):
        # Engine(str, Enum) means Engine.TESSERACT == "tesseract"
        assert Engine.TESSERACT == "tesseract"

    def test_construction_from_string(self):
        assert Engine("openai") is Engine.OPENAI


class TestPageSegMode:
    def test_range(self):
        assert [int(m) for m in PageSegMode] == list(range(14))

    def test_default_is_fully_automatic(self):
        assert PageSegMode.AUTO == 3


class TestConfigFromEnv:
    # ── Tesseract ────────────────────────────────────────────────────────

    def test_tesseract_needs_no_key(self, monkeypatch):
        monkeypatch.delenv("TESSDATA_PREFIX", raising=False)
        config = Config.from_env(Engine.TESSERACT)
        assert config.engine is Engine.TESSERACT
        assert config.api_key is None
        assert config.tessdata_dir is None

    def test_tessdata_read_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TESSDATA_PREFIX", str(tmp_path))
        assert Config.from_env(Engine.TESSERACT).tessdata_dir == tmp_path

    def test_tessdata_override_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TESSDATA_PREFIX", "/somewhere/else")
        config = Config.from_env(Engine.TESSERACT, tessdata_override=tmp_path)
        assert config.tessdata_dir == tmp_path

    def test_empty_tessdata_env_is_ignored(self, monkeypatch):
        monkeypatch.setenv("TESSDATA_PREFIX", "")
        assert Config.from_env(Engine.TESSERACT).tessdata_dir is None

    # ── Default model resolution ─────────────────────────────────────────

    def test_uses_default_model_for_anthropic(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert Config.from_env(Engine.ANTHROPIC).model == DEFAULT_MODELS[Engine.ANTHROPIC]

    def test_uses_default_model_for_openai(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-oai-test")
        assert Config.from_env(Engine.OPENAI).model == DEFAULT_MODELS[Engine.OPENAI]

    def test_model_override_takes_precedence(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        config = Config.from_env(Engine.ANTHROPIC, model_override="claude-custom-v1")
        assert config.model == "claude-custom-v1"

    # ── API key resolution ───────────────────────────────────────────────

    def test_api_key_read_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-oai-from-env")
        assert Config.from_env(Engine.OPENAI).api_key == "sk-oai-from-env"

    def test_api_key_override_beats_env(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-env")
        config = Config.from_env(Engine.ANTHROPIC, api_key_override="sk-ant-flag")
        assert config.api_key == "sk-ant-flag"

    @pytest.mark.parametrize("engine", [Engine.ANTHROPIC, Engine.OPENAI])
    def test_missing_key_raises(self, monkeypatch, engine):
        monkeypatch.delenv(ENV_KEYS[engine], raising=False)
        with pytest.raises(RuntimeError, match=ENV_KEYS[engine]):
            Config.from_env(engine)


class TestRecognitionConfig:
    def test_defaults(self):
        config = RecognitionConfig()
        assert config.language == "eng"
        assert config.page_segmentation_mode is PageSegMode.AUTO
        assert config.preprocess is True
        assert config.max_dimension == 2000

    def test_tessdata_file_name(self):
        assert RecognitionConfig(language="deu").tessdata_file_name == "deu.traineddata"

    def test_empty_language_rejected(self):
        with pytest.raises(ValueError):
            RecognitionConfig(language="")

    def test_non_positive_dimension_rejected(self):
        with pytest.raises(ValueError):
            RecognitionConfig(max_dimension=0)

    def test_tessdata_dir_is_path(self, monkeypatch):
        monkeypatch.setenv("TESSDATA_PREFIX", "/usr/share/tessdata")
        assert isinstance(Config.from_env(Engine.TESSERACT).tessdata_dir, Path)
