"""
Threaded kiosk camera capture.

A background thread keeps only the newest frame, tagged with a monotonically
increasing frame id, so the async pipeline can poll without blocking and
skip frames it has already processed.
"""

import time
import threading
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

_BACKENDS = {
    "v4l2": cv2.CAP_V4L2,
    "dshow": cv2.CAP_DSHOW,
    "auto": cv2.CAP_ANY,
}


@dataclass
class CameraConfig:
    device_id: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30
    backend: str = "auto"
    flip_horizontal: bool = True
    warmup_frames: int = 10

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        return cls(
            device_id=config.get("device_id", 0),
            width=config.get("width", 640),
            height=config.get("height", 480),
            fps=config.get("fps", 30),
            backend=config.get("backend", "auto"),
            flip_horizontal=config.get("flip_horizontal", True),
            warmup_frames=config.get("warmup_frames", 10),
        )


class CameraManager:
    """Latest-frame camera reader."""

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()
        self._cap = None
        self._frame = None
        self._frame_id = 0
        self._frame_time = 0.0
        self._lock = threading.Lock()
        self._running = False
        self._thread = None

    def open(self) -> bool:
        """Open the device and let auto-exposure settle."""
        backend = _BACKENDS.get(self.config.backend, cv2.CAP_ANY)
        self._cap = cv2.VideoCapture(self.config.device_id, backend)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d (%s)", self.config.device_id,
                         self.config.backend)
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self._cap.set(cv2.CAP_PROP_FPS, self.config.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        logger.info(
            "Camera %d opened at %dx%d",
            self.config.device_id,
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        for _ in range(self.config.warmup_frames):
            self._cap.read()
        return True

    def start(self):
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()
        logger.debug("Capture thread started")

    def _capture_loop(self):
        while self._running:
            ret, frame = self._cap.read()
            if not ret or frame is None:
                time.sleep(0.005)
                continue
            if self.config.flip_horizontal:
                frame = cv2.flip(frame, 1)
            with self._lock:
                self._frame = frame
                self._frame_id += 1
                self._frame_time = time.monotonic()

    def read(self) -> Tuple[Optional[int], Optional[np.ndarray]]:
        """Newest frame without blocking.

        Returns:
            (frame_id, frame copy), or (None, None) before the first frame
        """
        with self._lock:
            if self._frame is None:
                return None, None
            return self._frame_id, self._frame.copy()

    @property
    def frame_age_s(self) -> float:
        """Seconds since the newest frame arrived."""
        with self._lock:
            if self._frame is None:
                return float("inf")
            return time.monotonic() - self._frame_time

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def stop(self):
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        if self._cap:
            self._cap.release()
            self._cap = None
        logger.info("Camera stopped")

    def __enter__(self):
        self.open()
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()
