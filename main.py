#!/usr/bin/env python3
"""
Touchless Menu Kiosk
Application entry point.

Wires configuration, logging, camera, vision models, weather and the menu
catalog into a KioskPipeline, then runs an OpenCV operator window on the
same asyncio loop.

Usage:
    python main.py                    # Default config/config.yaml
    python main.py --camera 1         # Override camera device
    python main.py --headless         # No operator window

Operator keys:
    r       reset the visitor session
    p       print the current recommendations
    q/ESC   quit
"""

import os
import sys
import signal
import asyncio
import argparse
import logging
import random

import cv2

from kiosk.core.events import EventBus, Events
from kiosk.core.pipeline import KioskPipeline
from kiosk.core.session import RecognitionSession
from kiosk.modules.capture.camera_manager import CameraConfig, CameraManager
from kiosk.modules.control.gesture_lock import GestureLock, GestureLockConfig
from kiosk.modules.detection.face_oracle import FaceOracleConfig, HaarDeepFaceOracle
from kiosk.modules.detection.gesture_oracle import GestureOracleConfig, MediaPipeGestureOracle
from kiosk.modules.detection.proximity_trigger import ProximityConfig, ProximityTrigger
from kiosk.modules.integrations.weather import OpenMeteoWeatherService, WeatherConfig
from kiosk.modules.recognition.gesture_classifier import GestureClassifier, GestureClassifierConfig
from kiosk.modules.recommendation.catalog import load_catalog, models_to_preload
from kiosk.modules.recommendation.engine import RecommendationConfig, RecommendationEngine
from kiosk.modules.utils.config import Config
from kiosk.modules.utils.logger import KioskEventLogger, setup_logging

logger = logging.getLogger(__name__)

ESC_KEY = 27


class KioskApplication:
    """Builds the pipeline from config and runs the operator loop."""

    def __init__(self, config: Config, headless: bool = False, seed=None):
        self._config = config
        self._headless = headless
        self._running = False

        self._bus = EventBus()
        self._event_log = KioskEventLogger()

        # Catalog
        catalog_path = config.resolve_path(config.get("recommendation.catalog", "config/menu.yaml"))
        self._catalog = load_catalog(catalog_path)
        preload = models_to_preload(self._catalog)
        logger.info("%d 3D models to preload", len(preload))

        # Capture
        self._camera = CameraManager(CameraConfig.from_dict(config.camera))

        # Models
        models = config.models
        gesture_cfg = GestureOracleConfig.from_dict(models)
        gesture_cfg.model_path = config.resolve_path(gesture_cfg.model_path)
        self._face = HaarDeepFaceOracle(FaceOracleConfig.from_dict(models.get("face_detector", {})))
        self._gesture = MediaPipeGestureOracle(gesture_cfg)

        # Weather
        weather_cfg = WeatherConfig.from_dict(config.weather)
        self._weather = OpenMeteoWeatherService(weather_cfg)

        proximity_cfg = ProximityConfig.from_dict(config.proximity)
        self._pipeline = KioskPipeline(
            camera=self._camera,
            face_oracle=self._face,
            gesture_oracle=self._gesture,
            weather_service=self._weather,
            engine=RecommendationEngine(
                self._catalog,
                RecommendationConfig.from_dict(config.recommendation),
                rng=random.Random(seed),
            ),
            session=RecognitionSession(ProximityTrigger(proximity_cfg)),
            classifier=GestureClassifier(GestureClassifierConfig.from_dict(config.gestures)),
            gesture_lock=GestureLock(GestureLockConfig.from_dict(config.control)),
            proximity_config=proximity_cfg,
            weather_config=weather_cfg,
            event_bus=self._bus,
            event_log=self._event_log,
        )

        self._bus.subscribe(Events.NAVIGATION_REQUESTED, self._on_navigation)
        self._bus.subscribe(Events.RECOMMENDATION_READY, self._on_recommendation)

        logger.info("KioskApplication initialized (%d catalog items)", len(self._catalog))

    def _on_navigation(self, **kwargs):
        target = kwargs.get("target")
        if target is not None:
            logger.info("Navigating to %s", target.value)

    def _on_recommendation(self, **kwargs):
        featured = kwargs.get("featured")
        if featured is not None:
            logger.info("Featured: %s (%s) - %s", featured.item.name,
                        featured.serving_type.value if featured.serving_type else "-",
                        featured.headline)

    async def run(self):
        if not self._camera.open():
            logger.error("Camera unavailable, exiting")
            return 1
        self._camera.start()
        self._running = True

        await self._pipeline.start()
        try:
            await self._operator_loop()
        finally:
            await self._shutdown()
        return 0

    async def _operator_loop(self):
        window_name = self._config.get("display.window_name", "Touchless Menu Kiosk")
        while self._running:
            if not self._headless:
                _, frame = self._camera.read()
                if frame is not None:
                    cv2.imshow(window_name, self._render(frame))
                key = cv2.waitKey(1) & 0xFF
                if key in (ord("q"), ESC_KEY):
                    self._running = False
                elif key == ord("r"):
                    self._pipeline.reset()
                elif key == ord("p"):
                    self.print_recommendations()
            await asyncio.sleep(0.03)

    def _render(self, frame):
        pipeline = self._pipeline
        lines = [
            f"screen: {pipeline.screen}",
            f"status: {pipeline.status_message()}",
            f"weather: {pipeline.weather_icon or '-'}",
        ]
        last = pipeline.session.last_detected
        if last:
            lines.append(f"visitor: {last.get('age')} / {last.get('gender')} / {last.get('expression')}")
        held = pipeline.gesture_lock.last_event
        if held is not None:
            lines.append(f"gesture: {held.display_name}")

        for i, text in enumerate(lines):
            cv2.putText(frame, text, (10, 25 + 22 * i), cv2.FONT_HERSHEY_SIMPLEX,
                        0.55, (255, 255, 255), 1, cv2.LINE_AA)
        return frame

    def print_recommendations(self):
        results = self._pipeline.recommendations
        if not results:
            print(f"No recommendations: {self._pipeline.status_message()}")
            return
        print("\n=== Recommendations ===")
        for r in results:
            marker = "*" if self._pipeline.featured is r else " "
            print(f" {marker} {r.item.name:<36} {r.serving_type.value:<5} "
                  f"score={r.score:>5.0f}  {' / '.join(r.reasons) or '-'}")

    async def _shutdown(self):
        logger.info("Shutting down...")
        self._running = False
        await self._pipeline.stop()
        self._gesture.close()
        self._camera.stop()
        if not self._headless:
            cv2.destroyAllWindows()
        logger.info("Shutdown complete.")

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args():
    parser = argparse.ArgumentParser(description="Touchless Menu Kiosk")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--camera", type=int, default=None, help="Camera device ID")
    parser.add_argument("--headless", action="store_true", help="Run without the operator window")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the recommendation random source")
    return parser.parse_args()


def main():
    args = parse_args()

    config = Config()
    config.load(config_path=args.config)
    if args.camera is not None:
        config.set("camera.device_id", args.camera)

    log_cfg = config.logging
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  TOUCHLESS MENU KIOSK")
    logger.info("  Config: %s", args.config or os.path.join(config.base_dir, "config", "config.yaml"))
    logger.info("=" * 60)

    app = KioskApplication(config, headless=args.headless, seed=args.seed)
    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    sys.exit(asyncio.run(app.run()))


if __name__ == "__main__":
    main()
