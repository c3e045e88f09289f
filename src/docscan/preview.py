"""Live-preview frame analysis with drop-on-busy backpressure.

While one frame is being analysed every new frame is dropped, not
queued, so memory and latency stay bounded however fast the camera
delivers.  The busy flag is taken before dispatch and released in a
``finally`` block, so a frame that fails can never wedge the analyser.

Analysis runs on its own single worker thread.  It never touches the
recognition engine; hosts get results only through the callbacks.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from docscan.edges import DocumentCorners, detect_document
from docscan.quality import LightingCondition, detect_lighting
from docscan.sampling import PlanarLuminanceView


@dataclass(frozen=True)
class FrameAnalysis:
    lighting: Optional[LightingCondition]
    corners: Optional[DocumentCorners]


class FrameAnalyzer:
    def __init__(
        self,
        on_lighting: Optional[Callable[[LightingCondition], None]] = None,
        on_corners: Optional[Callable[[Optional[DocumentCorners]], None]] = None,
    ) -> None:
        self.on_lighting = on_lighting
        self.on_corners = on_corners
        self.dropped_frames = 0
        self._busy = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="preview")

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def submit(self, frame: PlanarLuminanceView) -> "Optional[Future[FrameAnalysis]]":
        """Dispatch *frame* for analysis, or drop it if a frame is in flight.

        Returns the pending analysis, or ``None`` when the frame was dropped.
        """
        if not self._busy.acquire(blocking=False):
            self.dropped_frames += 1
            return None
        try:
            return self._executor.submit(self._run, frame)
        except BaseException:
            self._busy.release()
            raise

    def _run(self, frame: PlanarLuminanceView) -> FrameAnalysis:
        try:
            return self.analyze(frame)
        finally:
            self._busy.release()

    def analyze(self, frame: PlanarLuminanceView) -> FrameAnalysis:
        """Analyse one frame on the calling thread and fire the callbacks."""
        lighting = corners = None
        try:
            if self.on_lighting is not None:
                lighting = detect_lighting(frame)
                self.on_lighting(lighting)
            if self.on_corners is not None:
                corners = detect_document(frame)
                self.on_corners(corners)
        except Exception as e:
            logger.warning(f"Preview frame analysis failed: {e}")
        return FrameAnalysis(lighting=lighting, corners=corners)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
