"""
Face attribute oracle backed by an OpenCV Haar cascade and DeepFace.

The cascade is cheap enough to run every proximity tick and only reports
the widest face. DeepFace runs once per session on the settled frame and
estimates age, gender and expression for every face it finds. Both run in
a worker thread so the event loop keeps ticking.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

import cv2
import numpy as np
from deepface import DeepFace

from kiosk.core.errors import ModelUnavailable
from kiosk.core.types import FaceBox, RawFace

logger = logging.getLogger(__name__)

GENDER_LABELS = {"man": "male", "woman": "female"}


@dataclass
class FaceOracleConfig:
    cascade_file: str = "haarcascade_frontalface_default.xml"
    scale_factor: float = 1.1
    min_neighbors: int = 5
    min_face_px: int = 60
    detector_backend: str = "opencv"
    min_face_confidence: float = 0.5

    @classmethod
    def from_dict(cls, config: dict) -> "FaceOracleConfig":
        return cls(
            cascade_file=config.get("cascade_file", "haarcascade_frontalface_default.xml"),
            scale_factor=config.get("scale_factor", 1.1),
            min_neighbors=config.get("min_neighbors", 5),
            min_face_px=config.get("min_face_px", 60),
            detector_backend=config.get("detector_backend", "opencv"),
            min_face_confidence=config.get("min_face_confidence", 0.5),
        )


def parse_deepface_result(result: dict) -> RawFace:
    """Convert one DeepFace.analyze() entry (percent scores) into a RawFace."""
    dominant = str(result.get("dominant_gender", ""))
    gender_scores = result.get("gender", {}) or {}
    return RawFace(
        age=float(result.get("age", 0)),
        gender_label=GENDER_LABELS.get(dominant.lower(), dominant.lower() or "unknown"),
        gender_confidence=float(gender_scores.get(dominant, 0.0)) / 100.0,
        expression_scores={k: float(v) / 100.0
                           for k, v in (result.get("emotion", {}) or {}).items()},
    )


class HaarDeepFaceOracle:
    """AttributeOracle implementation for a USB camera kiosk."""

    def __init__(self, config: Optional[FaceOracleConfig] = None):
        self.config = config or FaceOracleConfig()
        self._cascade = None

    def load(self):
        """Load the Haar cascade shipped with OpenCV.

        Raises:
            ModelUnavailable: if the cascade file is missing or empty
        """
        path = cv2.data.haarcascades + self.config.cascade_file
        cascade = cv2.CascadeClassifier(path)
        if cascade.empty():
            raise ModelUnavailable("face detector", f"could not load {path}")
        self._cascade = cascade
        logger.info("Face detector loaded (%s)", self.config.cascade_file)

    # -- proximity ---------------------------------------------------------

    def _largest_face(self, frame: np.ndarray) -> Optional[FaceBox]:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        faces = self._cascade.detectMultiScale(
            gray,
            scaleFactor=self.config.scale_factor,
            minNeighbors=self.config.min_neighbors,
            minSize=(self.config.min_face_px, self.config.min_face_px),
        )
        if len(faces) == 0:
            return None
        widest = max(int(w) for (_, _, w, _) in faces)
        return FaceBox(width_px=float(widest))

    async def analyze_single(self, frame: np.ndarray) -> Optional[FaceBox]:
        if self._cascade is None:
            raise ModelUnavailable("face detector", "load() was not called")
        return await asyncio.to_thread(self._largest_face, frame)

    # -- attributes --------------------------------------------------------

    def _analyze(self, frame: np.ndarray) -> List[RawFace]:
        results = DeepFace.analyze(
            img_path=frame,
            actions=["age", "gender", "emotion"],
            detector_backend=self.config.detector_backend,
            enforce_detection=False,
            silent=True,
        )
        if isinstance(results, dict):
            results = [results]

        faces = []
        for result in results:
            # With enforce_detection off, a frame without faces comes back as
            # one whole-image entry with zero confidence.
            if float(result.get("face_confidence", 1.0)) < self.config.min_face_confidence:
                continue
            faces.append(parse_deepface_result(result))
        logger.debug("DeepFace returned %d entries, kept %d", len(results), len(faces))
        return faces

    async def analyze_batch(self, frame: np.ndarray) -> List[RawFace]:
        return await asyncio.to_thread(self._analyze, frame)
