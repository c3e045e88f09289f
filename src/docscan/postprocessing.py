"""Clean-up of raw engine output before it becomes a ``RecognitionResult``.

Steps
-----
1. ``\\r\\n`` / ``\\r`` → ``\\n``.
2. A Markdown code fence wrapped around the whole output (vision LLMs add
   one now and then despite being told not to) is removed.
3. Trailing whitespace is stripped from every line.
4. Runs of two or more blank lines collapse to a single blank line;
   Tesseract pads block boundaries with several.
5. The text as a whole is trimmed.
"""

import re

_FENCED = re.compile(r"\A```[\w-]*\n(.*?)\n?```\Z", re.DOTALL)
_BLANK_RUN = re.compile(r"\n{3,}")


def _strip_code_fence(text: str) -> str:
    m = _FENCED.match(text.strip())
    return m.group(1) if m else text


def clean_text(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _strip_code_fence(text)
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    text = _BLANK_RUN.sub("\n\n", text)
    return text.strip()
