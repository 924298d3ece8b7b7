"""
Tests for the Debounced Gesture Classifier
===========================================
"""

import pytest

from kiosk.core.types import Direction, GestureKind, HandObservation, StaticGesture
from kiosk.modules.recognition.gesture_classifier import (
    DebounceState, GestureClassifier, GestureClassifierConfig, classify_direction, classify_frame,
)

from conftest import fist, hand_at, moving_hand, palm


def run(classifier, observations):
    return [classifier.update(o) for o in observations]


def events(results):
    return [e for e in results if e is not None]


class TestClassifyDirection:

    @pytest.mark.parametrize("dx, dy, expected", [
        (0.1, 0.0, Direction.RIGHT),
        (-0.1, 0.02, Direction.LEFT),
        (0.01, 0.09, Direction.DOWN),
        (0.0, -0.2, Direction.UP),
        (0.08, 0.0, None),
        (0.05, 0.05, None),
    ])
    def test_dominant_axis(self, dx, dy, expected):
        assert classify_direction(dx, dy, 0.08) is expected


class TestStaticPath:

    @pytest.fixture
    def classifier(self):
        return GestureClassifier()

    def test_five_fists_emit_exactly_once(self, classifier):
        results = run(classifier, [fist() for _ in range(5)])
        assert results[:4] == [None] * 4
        assert results[4].kind is GestureKind.STATIC
        assert results[4].label == "Closed_Fist"
        assert results[4].confidence == pytest.approx(0.9)

    def test_sixth_frame_does_not_refire(self, classifier):
        results = run(classifier, [fist() for _ in range(6)])
        assert len(events(results)) == 1
        assert results[5] is None

    def test_ten_frames_fire_twice(self, classifier):
        assert len(events(run(classifier, [fist() for _ in range(10)]))) == 2

    def test_low_confidence_resets_run(self, classifier):
        frames = [fist()] * 4 + [fist(confidence=0.8)] + [fist()] * 4
        assert events(run(classifier, frames)) == []

    def test_label_change_restarts_count(self, classifier):
        frames = [fist()] * 3 + [palm()] * 5
        results = run(classifier, frames)
        assert [e.label for e in events(results)] == ["Open_Palm"]
        assert results[-1] is not None

    def test_non_navigation_label_resets(self, classifier):
        thumbs = HandObservation(StaticGesture("Thumb_Up", 0.95), hand_at(0.5, 0.5))
        frames = [fist()] * 4 + [thumbs] + [fist()] * 4
        assert events(run(classifier, frames)) == []

    def test_no_hand_resets(self, classifier):
        frames = [fist()] * 4 + [None] + [fist()] * 4
        assert events(run(classifier, frames)) == []


class TestDirectionalPath:

    @pytest.fixture
    def classifier(self):
        return GestureClassifier()

    def test_three_moves_right_emit_once(self, classifier):
        frames = [moving_hand(0.1 + 0.1 * i, 0.5) for i in range(4)]
        results = run(classifier, frames)
        assert results[:3] == [None] * 3
        assert results[3].kind is GestureKind.DIRECTIONAL
        assert results[3].label == "right"

    def test_no_hand_breaks_run(self, classifier):
        frames = [moving_hand(0.1, 0.5), moving_hand(0.2, 0.5), moving_hand(0.3, 0.5), None,
                  moving_hand(0.4, 0.5), moving_hand(0.5, 0.5), moving_hand(0.6, 0.5)]
        assert events(run(classifier, frames)) == []

    def test_small_moves_do_not_count(self, classifier):
        frames = [moving_hand(0.1 + 0.05 * i, 0.5) for i in range(8)]
        assert events(run(classifier, frames)) == []

    def test_direction_change_restarts_count(self, classifier):
        xs = [0.5, 0.6, 0.7, 0.6, 0.5, 0.4]
        results = run(classifier, [moving_hand(x, 0.5) for x in xs])
        assert [e.label for e in events(results)] == ["left"]

    def test_vertical_swipe(self, classifier):
        frames = [moving_hand(0.5, 0.8 - 0.1 * i) for i in range(4)]
        assert [e.label for e in events(run(classifier, frames))] == ["up"]

    def test_landmarks_required(self, classifier):
        frames = [HandObservation(StaticGesture("None", 0.2), None) for _ in range(5)]
        assert events(run(classifier, frames)) == []
        assert classifier.state.directional.last_position is None

    def test_continued_swipe_refires_after_window(self, classifier):
        frames = [moving_hand(0.1 * i, 0.5) for i in range(7)]
        assert [e.label for e in events(run(classifier, frames))] == ["right", "right"]

    def test_static_fire_skips_directional(self):
        classifier = GestureClassifier(GestureClassifierConfig(directional_frames=10))
        frames = [fist(wrist=(0.1 * i, 0.5)) for i in range(5)]
        results = run(classifier, frames)

        assert [e.label for e in events(results)] == ["Closed_Fist"]
        # The firing frame does not advance the wrist tracker
        assert classifier.state.directional.last_position == pytest.approx((0.3, 0.5))


class TestClassifyFrame:

    def test_missing_observation_clears_state(self):
        state = DebounceState()
        config = GestureClassifierConfig()
        classify_frame(fist(), state, config)
        classify_frame(moving_hand(0.4, 0.5), state, config)
        assert state.directional.last_position is not None

        assert classify_frame(None, state, config) is None
        assert state.static.count == 0
        assert state.static.label is None
        assert state.directional.last_position is None
        assert state.directional.count == 0

    def test_custom_window_sizes(self):
        config = GestureClassifierConfig.from_dict({"static_frames": 2, "directional_frames": 1})
        classifier = GestureClassifier(config)
        assert events(run(classifier, [fist(), fist()]))[0].label == "Closed_Fist"
        classifier.reset()
        assert events(run(classifier, [moving_hand(0.1, 0.5), moving_hand(0.3, 0.5)]))[0].label == "right"

    def test_events_emitted_counter(self):
        classifier = GestureClassifier()
        run(classifier, [fist() for _ in range(5)])
        assert classifier.events_emitted == 1
