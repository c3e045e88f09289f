"""Tests for docscan.prompt — the shared transcription prompt."""

from docscan.prompt import DOCUMENT_TRANSCRIPTION_PROMPT, transcription_request


class TestPromptContent:
    def test_asks_for_plain_text(self):
        assert "plain text" in DOCUMENT_TRANSCRIPTION_PROMPT.lower()

    def test_forbids_code_fences(self):
        assert "code fences" in DOCUMENT_TRANSCRIPTION_PROMPT.lower()

    def test_describes_reading_order(self):
        assert "reading order" in DOCUMENT_TRANSCRIPTION_PROMPT.lower()

    def test_forbids_invented_text(self):
        assert "never invent" in DOCUMENT_TRANSCRIPTION_PROMPT.lower()

    def test_handles_images_without_text(self):
        assert "no text" in DOCUMENT_TRANSCRIPTION_PROMPT.lower()


class TestTranscriptionRequest:
    def test_names_the_language(self):
        assert "German" in transcription_request("deu")

    def test_names_every_combined_language(self):
        request = transcription_request("eng+jpn")
        assert "English" in request
        assert "Japanese" in request
