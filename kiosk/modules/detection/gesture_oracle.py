"""
Hand gesture oracle backed by the MediaPipe Tasks GestureRecognizer.

Runs in VIDEO mode, so timestamps must increase strictly from frame to
frame. Returns the top static gesture and the 21 normalized landmarks of the
first hand, or None when no hand is visible.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np
import mediapipe as mp
from mediapipe.tasks import python as mp_tasks
from mediapipe.tasks.python import vision

from kiosk.core.errors import ModelUnavailable
from kiosk.core.types import HandObservation, StaticGesture

logger = logging.getLogger(__name__)


@dataclass
class GestureOracleConfig:
    model_path: str = "models/gesture_recognizer.task"
    num_hands: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    @classmethod
    def from_dict(cls, config: dict) -> "GestureOracleConfig":
        return cls(
            model_path=config.get("gesture_model_path", "models/gesture_recognizer.task"),
            num_hands=config.get("num_hands", 1),
            min_detection_confidence=config.get("min_detection_confidence", 0.5),
            min_tracking_confidence=config.get("min_tracking_confidence", 0.5),
        )


class MediaPipeGestureOracle:
    """GestureOracle implementation."""

    def __init__(self, config: Optional[GestureOracleConfig] = None):
        self.config = config or GestureOracleConfig()
        self._recognizer = None
        self._last_timestamp_ms = -1

    def load(self):
        """Create the recognizer.

        Raises:
            ModelUnavailable: if the model file is missing or fails to load
        """
        if not os.path.exists(self.config.model_path):
            raise ModelUnavailable("gesture recognizer",
                                   f"model file not found: {self.config.model_path}")

        options = vision.GestureRecognizerOptions(
            base_options=mp_tasks.BaseOptions(model_asset_path=self.config.model_path),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=self.config.num_hands,
            min_hand_detection_confidence=self.config.min_detection_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
        )
        try:
            self._recognizer = vision.GestureRecognizer.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise ModelUnavailable("gesture recognizer", str(e)) from e
        logger.info("Gesture recognizer loaded (%s)", self.config.model_path)

    def _recognize(self, frame: np.ndarray, timestamp_ms: int) -> Optional[HandObservation]:
        # VIDEO mode rejects non-increasing timestamps
        if timestamp_ms <= self._last_timestamp_ms:
            timestamp_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = timestamp_ms

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self._recognizer.recognize_for_video(image, timestamp_ms)

        if not result.hand_landmarks:
            return None

        landmarks = np.array([[lm.x, lm.y, lm.z] for lm in result.hand_landmarks[0]],
                             dtype=np.float32)
        static = None
        if result.gestures and result.gestures[0]:
            top = result.gestures[0][0]
            static = StaticGesture(label=top.category_name, confidence=float(top.score))
        return HandObservation(static_gesture=static, landmarks=landmarks)

    async def analyze_frame(self, frame: np.ndarray,
                            timestamp_ms: int) -> Optional[HandObservation]:
        if self._recognizer is None:
            raise ModelUnavailable("gesture recognizer", "load() was not called")
        return await asyncio.to_thread(self._recognize, frame, timestamp_ms)

    def close(self):
        if self._recognizer is not None:
            self._recognizer.close()
            self._recognizer = None
