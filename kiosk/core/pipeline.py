"""
Kiosk pipeline orchestrator.

Runs the decision pipeline on a single asyncio event loop:

    Camera -> AttributeOracle.analyze_single -> ProximityTrigger
           -> (settle delay) -> weather refresh -> VisitorProfiler
           -> RecognitionSession
           -> RecommendationEngine (needs weather)

    Camera -> GestureOracle -> GestureClassifier -> GestureLock -> screen

Three tasks interleave: the proximity ticker (stopped the moment the trigger
locks, restarted by reset), the one-shot profiling task, and the gesture
frame loop. Weather is fetched at startup and again for every session, so
a failed lookup clears on the next visitor. Blocking model work happens
inside the oracles in worker threads. All session mutation happens on the loop.
"""

import asyncio
import time
import logging
from datetime import datetime
from typing import Callable, List, Optional

from kiosk.core.errors import ModelUnavailable, WeatherUnavailable
from kiosk.core.events import EventBus, Events
from kiosk.core.oracles import AttributeOracle, GestureOracle, WeatherService
from kiosk.core.session import RecognitionSession
from kiosk.core.types import (
    GestureEvent, NavigationTarget, RecognitionContext, ScoredItem, WeatherReport,
)
from kiosk.modules.control.gesture_lock import GestureLock
from kiosk.modules.detection.proximity_trigger import ProximityConfig, estimate_distance
from kiosk.modules.integrations.weather import WeatherConfig, weather_icon
from kiosk.modules.intelligence.visitor_profiler import VisitorProfiler
from kiosk.modules.recognition.gesture_classifier import GestureClassifier
from kiosk.modules.recommendation.engine import RecommendationEngine
from kiosk.modules.utils.logger import KioskEventLogger

logger = logging.getLogger(__name__)


def _log_task_failure(task: asyncio.Task):
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Background task %s failed", task.get_name(), exc_info=error)


class Screen:
    """Screens the kiosk can show."""
    WELCOME = "welcome"
    RECOMMENDATION = "recommendation"
    MENU = NavigationTarget.MENU.value
    PAYMENT = NavigationTarget.PAYMENT.value


class KioskPipeline:
    """Owns the session and drives every recognition component.

    Args:
        camera: Frame source with ``read() -> (frame_id, frame)``
        face_oracle: AttributeOracle
        gesture_oracle: GestureOracle
        weather_service: WeatherService
        engine: RecommendationEngine bound to the catalog
        clock: Wall clock used for visitor timestamps and time-of-day scoring
        monotonic: Seconds counter used for gesture timestamps and lockout
    """

    FRAME_POLL_S = 0.01

    def __init__(
        self,
        camera,
        face_oracle: AttributeOracle,
        gesture_oracle: GestureOracle,
        weather_service: WeatherService,
        engine: RecommendationEngine,
        session: Optional[RecognitionSession] = None,
        classifier: Optional[GestureClassifier] = None,
        gesture_lock: Optional[GestureLock] = None,
        proximity_config: Optional[ProximityConfig] = None,
        weather_config: Optional[WeatherConfig] = None,
        event_bus: Optional[EventBus] = None,
        event_log: Optional[KioskEventLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        monotonic: Optional[Callable[[], float]] = None,
    ):
        self._camera = camera
        self._face = face_oracle
        self._gesture = gesture_oracle
        self._weather_service = weather_service
        self._engine = engine

        self._clock = clock or datetime.now
        self._monotonic = monotonic or time.monotonic
        self._session = session or RecognitionSession()
        self._classifier = classifier or GestureClassifier()
        self._lock = gesture_lock or GestureLock()
        self._profiler = VisitorProfiler(face_oracle, clock=self._clock)
        self._proximity_config = proximity_config or self._session.trigger.config
        self._weather_config = weather_config or WeatherConfig()
        self._bus = event_bus or EventBus()
        self._events = event_log or KioskEventLogger()

        self._face_ready = False
        self._gesture_ready = False
        self._model_errors: List[str] = []

        self._proximity_task: Optional[asyncio.Task] = None
        self._profile_task: Optional[asyncio.Task] = None
        self._gesture_task: Optional[asyncio.Task] = None
        self._last_frame_id = None

        self.weather: Optional[WeatherReport] = None
        self.weather_error: Optional[str] = None
        self.recommendations: List[ScoredItem] = []
        self.featured: Optional[ScoredItem] = None
        self.screen = Screen.WELCOME

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self):
        """Load models, start the loops and fetch the weather."""
        self._face_ready = self._load_model(self._face)
        self._gesture_ready = self._load_model(self._gesture)

        if self._face_ready:
            self.arm()
        else:
            logger.error("Face model unavailable, kiosk stays on the welcome screen")

        if self._gesture_ready:
            self._gesture_task = self._spawn(self._gesture_loop(), "kiosk-gestures")

        await self.refresh_weather()
        self._bus.emit(Events.SYSTEM_STARTED, face=self._face_ready, gesture=self._gesture_ready)

    def _load_model(self, oracle) -> bool:
        try:
            oracle.load()
        except ModelUnavailable as e:
            logger.error("%s", e)
            self._model_errors.append(str(e))
            self._bus.emit(Events.MODEL_UNAVAILABLE, model=e.model, reason=e.reason)
            return False
        return True

    def arm(self):
        """Start the proximity ticker if the trigger is searching and none runs."""
        if not self._face_ready or not self._session.trigger.is_searching:
            return
        if self._proximity_task is not None and not self._proximity_task.done():
            return
        self._proximity_task = self._spawn(self._proximity_loop(), "kiosk-proximity")

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        task.add_done_callback(_log_task_failure)
        return task

    def reset(self):
        """Start over: cancel pending work, clear the session and re-arm.

        Idempotent and safe to call at any time from the event loop.
        """
        for task in (self._proximity_task, self._profile_task):
            if task is not None and not task.done():
                task.cancel()
        self._proximity_task = None
        self._profile_task = None

        self._session.reset()
        self._classifier.reset()
        self._lock.reset()
        self.recommendations = []
        self.featured = None
        self.screen = Screen.WELCOME

        self._events.log_reset(self._session.generation)
        self._bus.emit(Events.SESSION_RESET, generation=self._session.generation)
        self.arm()

    async def stop(self):
        tasks = [t for t in (self._proximity_task, self._profile_task, self._gesture_task)
                 if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._proximity_task = self._profile_task = self._gesture_task = None

        close = getattr(self._weather_service, "close", None)
        if close is not None:
            await close()
        self._bus.emit(Events.SYSTEM_SHUTDOWN)
        logger.info("Kiosk pipeline stopped")

    # =========================================================================
    # Proximity + profiling
    # =========================================================================

    async def _proximity_loop(self):
        interval = self._proximity_config.tick_interval_ms / 1000.0
        while self._session.trigger.is_searching:
            if await self.proximity_tick():
                break
            await asyncio.sleep(interval)
        logger.debug("Proximity ticker stopped")

    async def proximity_tick(self) -> bool:
        """Sample the current frame once. Returns True if the trigger fired."""
        _, frame = self._camera.read()
        if frame is None:
            return False

        try:
            box = await self._face.analyze_single(frame)
        except Exception as e:
            logger.warning("Face detection failed: %s", e)
            return False

        distance = None
        if box is not None:
            distance = estimate_distance(box.width_px, self._proximity_config.reference_width_px)

        if not self._session.trigger.update(distance):
            return False

        self._events.log_trigger(distance)
        self._bus.emit(Events.PROXIMITY_TRIGGERED, distance=distance,
                       anchor=self._session.trigger.anchor)
        self._profile_task = self._spawn(
            self._profile_after_settle(self._session.generation), "kiosk-profile")
        return True

    async def _profile_after_settle(self, generation: int):
        await asyncio.sleep(self._proximity_config.settle_delay_ms / 1000.0)
        if not self._session.is_current(generation):
            return
        _, frame = self._camera.read()
        await self.refresh_weather()
        if not self._session.is_current(generation):
            return
        roster = await self._profiler.run(frame, self._session)
        if roster is None:
            return

        display = self._session.last_detected or {}
        self._events.log_profile(len(roster), display)
        self._bus.emit(Events.VISITORS_PROFILED, roster=roster, display=display)
        self.screen = Screen.RECOMMENDATION
        self.recommend()

    # =========================================================================
    # Gestures
    # =========================================================================

    async def _gesture_loop(self):
        while True:
            frame_id, frame = self._camera.read()
            if frame is None or frame_id == self._last_frame_id:
                await asyncio.sleep(self.FRAME_POLL_S)
                continue
            self._last_frame_id = frame_id
            await self.gesture_tick(frame)
            await asyncio.sleep(0)

    async def gesture_tick(self, frame) -> Optional[GestureEvent]:
        """Run one frame through the gesture path. Returns the debounced event, if any."""
        now_ms = int(self._monotonic() * 1000)
        try:
            observation = await self._gesture.analyze_frame(frame, now_ms)
        except Exception as e:
            logger.warning("Gesture analysis failed: %s", e)
            return None

        event = self._classifier.update(observation)
        if event is None:
            return None

        self._bus.emit(Events.GESTURE_DETECTED, event=event)
        target = self._lock.accept(event, now_ms)
        self._events.log_gesture(event.display_name,
                                 target.value if target else None,
                                 accepted=target is not None)
        if target is not None:
            self.screen = target.value
            self._bus.emit(Events.NAVIGATION_REQUESTED, target=target, event=event)
        return event

    # =========================================================================
    # Weather + recommendations
    # =========================================================================

    async def refresh_weather(self) -> Optional[WeatherReport]:
        try:
            report = await self._weather_service.lookup(self._weather_config.latitude,
                                                        self._weather_config.longitude)
        except WeatherUnavailable as e:
            return self._weather_failed(str(e))
        except Exception as e:
            logger.exception("Weather service error")
            return self._weather_failed(f"Could not load the weather: {e!r}")

        self.weather = report
        self.weather_error = None
        self._bus.emit(Events.WEATHER_UPDATED, report=report)
        if self._session.profiling_complete and not self.recommendations:
            self.recommend()
        return report

    def _weather_failed(self, message: str) -> None:
        self.weather = None
        self.weather_error = message
        logger.error("Weather unavailable: %s", message)
        self._bus.emit(Events.WEATHER_FAILED, message=message)
        return None

    def recommend(self) -> List[ScoredItem]:
        """Recommendations for the current roster.

        Withheld (empty) while the weather is unresolved or before profiling
        has produced at least one visitor.
        """
        if self.weather is None:
            logger.debug("Recommendation withheld: weather unresolved")
            return []
        if not self._session.profiling_complete or not self._session.has_visitors:
            return []

        context = RecognitionContext.build(
            self._session.roster, self.weather.condition,
            self.weather.temperature_c, self._clock(),
        )
        self.recommendations = self._engine.recommend(context)
        self.featured = self._engine.choose_featured(self.recommendations)

        self._events.log_recommendation([r.id for r in self.recommendations],
                                        self.featured.id if self.featured else None)
        self._bus.emit(Events.RECOMMENDATION_READY, results=self.recommendations,
                       featured=self.featured)
        return self.recommendations

    # =========================================================================
    # Status
    # =========================================================================

    def status_message(self) -> str:
        """One line for the kiosk screen, blocking messages first."""
        if self.weather_error:
            return self.weather_error
        if not self._face_ready:
            return "Face recognition is unavailable. Please order from the menu."
        if self._session.trigger.is_searching:
            return "Please step closer to the kiosk"
        if not self._session.profiling_complete:
            return "Analyzing..."
        if not self._session.has_visitors:
            return "We couldn't see you clearly. Press reset to try again."
        if self.featured is not None:
            return f"{self.featured.item.name}: {self.featured.headline}"
        return "Preparing your recommendations..."

    @property
    def weather_icon(self) -> Optional[str]:
        if self.weather is None:
            return None
        return weather_icon(self.weather.condition_code)

    @property
    def session(self) -> RecognitionSession:
        return self._session

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def event_log(self) -> KioskEventLogger:
        return self._events

    @property
    def face_ready(self) -> bool:
        return self._face_ready

    @property
    def gesture_ready(self) -> bool:
        return self._gesture_ready

    @property
    def model_errors(self) -> List[str]:
        return list(self._model_errors)

    @property
    def gesture_lock(self) -> GestureLock:
        return self._lock
