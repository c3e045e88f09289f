"""Tesseract engine, driving the ``tesseract`` command-line binary.

The image is piped in as PNG on stdin and recognised text comes back as
TSV on stdout.  Tesseract has no progress reporting of its own, so while
the process runs the engine wakes up every ``poll_interval`` seconds and
calls the progress callback with ``None``; a callback that raises aborts
the run and the process is killed before the exception propagates.
"""

import csv
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Optional

from loguru import logger
from PIL import Image

from docscan.config import PageSegMode
from docscan.engines.base import EngineOutput, ProgressCallback, RecognitionEngine, encode_png
from docscan.errors import EngineError
from docscan.languages import split_codes

TRAINEDDATA_SUFFIX = ".traineddata"


def _int(row: dict, key: str) -> int:
    try:
        return int(row.get(key) or 0)
    except ValueError:
        return 0


def parse_tsv(tsv: str) -> EngineOutput:
    """Rebuild text and mean word confidence from Tesseract TSV output.

    Words are joined per line; a blank line separates paragraphs.  Words with
    a negative confidence (Tesseract's "no estimate") are left out of the mean.
    """
    lines: dict[tuple[int, int, int, int], list[str]] = {}
    confidences: list[float] = []

    reader = csv.DictReader(tsv.splitlines(), delimiter="\t", quoting=csv.QUOTE_NONE)
    for row in reader:
        # 1=page 2=block 3=paragraph 4=line 5=word
        if _int(row, "level") != 5:
            continue
        word = (row.get("text") or "").strip()
        if not word:
            continue
        key = (
            _int(row, "page_num"),
            _int(row, "block_num"),
            _int(row, "par_num"),
            _int(row, "line_num"),
        )
        lines.setdefault(key, []).append(word)
        try:
            conf = float(row.get("conf") or -1)
        except ValueError:
            conf = -1.0
        if conf >= 0:
            confidences.append(conf)

    out: list[str] = []
    previous = None
    for key, words in lines.items():
        if previous is not None and key[:3] != previous[:3]:
            out.append("")
        out.append(" ".join(words))
        previous = key

    confidence = sum(confidences) / len(confidences) / 100.0 if confidences else 0.0
    return EngineOutput(text="\n".join(out), confidence=max(0.0, min(1.0, confidence)))


class TesseractEngine(RecognitionEngine):
    name = "tesseract"

    def __init__(
        self,
        tessdata_dir: Optional[Path] = None,
        binary: str = "tesseract",
        poll_interval: float = 0.1,
    ) -> None:
        self.tessdata_dir = Path(tessdata_dir) if tessdata_dir else None
        self.binary = binary
        self.poll_interval = poll_interval
        self._language: Optional[str] = None
        self._psm = PageSegMode.AUTO
        self._proc: Optional[subprocess.Popen] = None
        self._proc_lock = threading.Lock()

    def _base_command(self) -> list[str]:
        cmd = [self.binary]
        if self.tessdata_dir is not None:
            cmd.extend(["--tessdata-dir", str(self.tessdata_dir)])
        return cmd

    # ── Languages ──────────────────────────────────────────────────────────

    def available_languages(self) -> list[str]:
        if self.tessdata_dir is not None:
            return sorted(
                p.name[: -len(TRAINEDDATA_SUFFIX)]
                for p in self.tessdata_dir.glob(f"*{TRAINEDDATA_SUFFIX}")
            )
        try:
            proc = subprocess.run(
                self._base_command() + ["--list-langs"],
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise EngineError(f"{self.binary} binary not found on PATH") from e
        if proc.returncode != 0:
            raise EngineError(f"Could not list Tesseract languages: {proc.stderr.strip()}")
        # First line is the "List of available languages ..." header.
        return [line.strip() for line in proc.stdout.splitlines()[1:] if line.strip()]

    def is_language_available(self, code: str) -> bool:
        parts = split_codes(code)
        if not parts:
            return False
        try:
            available = set(self.available_languages())
        except EngineError as e:
            logger.warning(f"Language check failed: {e}")
            return False
        return all(part in available for part in parts)

    # ── Recognition ────────────────────────────────────────────────────────

    def initialize(self, language: str, page_segmentation_mode: PageSegMode = PageSegMode.AUTO) -> None:
        if shutil.which(self.binary) is None:
            raise EngineError(f"{self.binary} binary not found on PATH")
        if not self.is_language_available(language):
            raise EngineError(
                f"Language data '{language}{TRAINEDDATA_SUFFIX}' not found. "
                f"Install it into the tessdata directory first."
            )
        self._language = language
        self._psm = page_segmentation_mode
        logger.info(f"Tesseract initialized for language: {language}")

    def recognize(self, image: Image.Image, progress: Optional[ProgressCallback] = None) -> EngineOutput:
        if self._language is None:
            raise EngineError("Tesseract engine used before initialize()")

        cmd = self._base_command() + [
            "stdin", "stdout",
            "-l", self._language,
            "--psm", str(int(self._psm)),
            "tsv",
        ]
        payload = encode_png(image)

        try:
            proc = subprocess.Popen(
                cmd, stdin=subprocess.PIPE, stdout=subprocess.PIPE, stderr=subprocess.PIPE
            )
        except FileNotFoundError as e:
            raise EngineError(f"{self.binary} binary not found on PATH") from e

        with self._proc_lock:
            self._proc = proc
        try:
            stdout, stderr = self._communicate(proc, payload, progress)
        finally:
            self.cancel()

        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()[-2000:]
            raise EngineError(f"Tesseract exited with code {proc.returncode}: {detail}")
        return parse_tsv(stdout.decode("utf-8", errors="replace"))

    def _communicate(
        self, proc: subprocess.Popen, payload: bytes, progress: Optional[ProgressCallback]
    ) -> tuple[bytes, bytes]:
        pending: Optional[bytes] = payload
        while True:
            try:
                return proc.communicate(input=pending, timeout=self.poll_interval)
            except subprocess.TimeoutExpired:
                # communicate() keeps the queued input; retries pass None.
                pending = None
                if progress is not None:
                    progress(None)

    def cancel(self) -> None:
        with self._proc_lock:
            proc, self._proc = self._proc, None
        if proc is not None and proc.poll() is None:
            logger.debug("Killing running tesseract process")
            proc.kill()
            proc.communicate()
