"""Shared transcription prompt used by the vision-LLM engines."""

from docscan.languages import display_name

DOCUMENT_TRANSCRIPTION_PROMPT = """\
You are an OCR engine for photographed documents: receipts, letters, \
forms, book pages, signs and printed notes captured with a phone camera.

Transcribe the text visible in the provided image exactly as written.

## Rules
- Output plain text only: no markdown, no code fences, no commentary.
- Keep the reading order of the document: top to bottom, and left to right \
within a line (right to left for right-to-left scripts).
- Keep one output line per printed line. Separate paragraphs and visually \
distinct blocks with a single blank line.
- Preserve numbers, currency symbols, punctuation and capitalisation as \
printed. Do not correct spelling or grammar.
- Ignore the background, the table surface and anything outside the page.
- If a word is illegible, write your best reading; never invent text that \
is not visible.
- If the image contains no text at all, output nothing.
"""


def transcription_request(language: str) -> str:
    """User-turn instruction naming the expected document language."""
    return (
        f"Transcribe all text in the image above. "
        f"The document is expected to be in {display_name(language)}."
    )
