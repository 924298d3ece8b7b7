"""
Tests for Session State and Visitor Profiling
==============================================
"""

import asyncio
from datetime import datetime

import pytest

from kiosk.core.session import RecognitionSession
from kiosk.core.types import DETECTION_FAILED_DISPLAY, RawFace, RecognitionAggregates
from kiosk.modules.intelligence.visitor_profiler import (
    VisitorProfiler, build_roster, dominant_expression,
)

from conftest import FakeFaceOracle, make_visitor

CAPTURED = datetime(2024, 5, 1, 15, 0)


class TestAggregates:

    def test_empty_roster(self):
        agg = RecognitionAggregates.from_roster([])
        assert agg.group_size == 0
        assert agg.dominant_gender == "mixed"
        assert not agg.has_minor

    def test_elderly_majority_is_half_or_more(self):
        agg = RecognitionAggregates.from_roster([make_visitor(45), make_visitor(30)])
        assert agg.has_elderly_majority
        assert agg.has_elderly
        assert agg.average_age == pytest.approx(37.5)

    def test_minor(self):
        agg = RecognitionAggregates.from_roster([make_visitor(14), make_visitor(40)])
        assert agg.has_minor
        assert not agg.has_elderly_majority

    def test_dominant_gender_threshold(self):
        three_of_four = [make_visitor(30, "female")] * 3 + [make_visitor(30, "male")]
        two_of_three = [make_visitor(30, "female")] * 2 + [make_visitor(30, "male")]
        assert RecognitionAggregates.from_roster(three_of_four).dominant_gender == "female"
        assert RecognitionAggregates.from_roster(two_of_three).dominant_gender == "mixed"


class TestRoster:

    def test_dominant_expression(self):
        assert dominant_expression({"happy": 0.2, "sad": 0.7, "angry": 0.1}) == "sad"

    def test_dominant_expression_tie_keeps_first(self):
        assert dominant_expression({"happy": 0.5, "neutral": 0.5}) == "happy"

    def test_dominant_expression_empty(self):
        assert dominant_expression({}) == "neutral"

    def test_build_roster_normalizes(self, adult_face):
        record = build_roster([adult_face], CAPTURED)[0]
        assert record.age == 34
        assert record.gender_label == "female"
        assert record.dominant_expression == "happy"
        assert record.gender_display == "female (93.0%)"
        assert record.captured_at == CAPTURED


class TestRecognitionSession:

    def test_initial_state(self):
        session = RecognitionSession()
        assert session.roster == ()
        assert not session.has_visitors
        assert not session.profiling_complete
        assert session.trigger.is_searching

    def test_begin_profiling_claims_once(self):
        session = RecognitionSession()
        assert session.begin_profiling() == 0
        assert session.begin_profiling() is None

    def test_apply_profile_derives_aggregates(self):
        session = RecognitionSession()
        generation = session.begin_profiling()
        assert session.apply_profile(generation, [make_visitor(70)], {"age": 70})
        assert session.profiling_complete
        assert session.aggregates.has_elderly_majority
        assert session.begin_profiling() is None

    def test_stale_profile_is_rejected(self):
        session = RecognitionSession()
        generation = session.begin_profiling()
        session.reset()
        assert not session.apply_profile(generation, [make_visitor(30)], {})
        assert session.roster == ()
        assert not session.profiling_complete

    def test_reset_clears_everything(self):
        session = RecognitionSession()
        session.trigger.update(0.5)
        session.apply_profile(session.begin_profiling(), [make_visitor(30)], {"age": 30})

        session.reset()

        assert session.roster == ()
        assert session.last_detected is None
        assert session.aggregates.group_size == 0
        assert session.trigger.is_searching
        assert session.generation == 1
        assert session.begin_profiling() == 1


class TestVisitorProfiler:

    @pytest.mark.asyncio
    async def test_profiles_once_per_session(self, adult_face):
        oracle = FakeFaceOracle(faces=[adult_face])
        profiler = VisitorProfiler(oracle, clock=lambda: CAPTURED)
        session = RecognitionSession()

        roster = await profiler.run("frame", session)
        again = await profiler.run("frame", session)

        assert len(roster) == 1
        assert again is None
        assert oracle.batch_calls == 1
        assert session.last_detected["gender"] == "female (93.0%)"

    @pytest.mark.asyncio
    async def test_no_faces_records_sentinel(self):
        session = RecognitionSession()
        roster = await VisitorProfiler(FakeFaceOracle()).run("frame", session)

        assert roster == []
        assert session.profiling_complete
        assert session.last_detected == DETECTION_FAILED_DISPLAY

    @pytest.mark.asyncio
    async def test_oracle_error_is_treated_as_empty(self):
        oracle = FakeFaceOracle()
        oracle.batch_error = RuntimeError("model crashed")
        session = RecognitionSession()

        roster = await VisitorProfiler(oracle).run("frame", session)

        assert roster == []
        assert session.last_detected == DETECTION_FAILED_DISPLAY

    @pytest.mark.asyncio
    async def test_missing_frame_skips_oracle(self):
        oracle = FakeFaceOracle(faces=[RawFace(30, "Male", 0.8)])
        profiler = VisitorProfiler(oracle)
        await profiler.run(None, RecognitionSession())
        assert oracle.batch_calls == 0
        assert profiler.runs == 0

    @pytest.mark.asyncio
    async def test_reset_during_analysis_drops_result(self, adult_face):
        gate = asyncio.Event()

        class SlowOracle(FakeFaceOracle):
            async def analyze_batch(self, frame):
                await gate.wait()
                return [adult_face]

        session = RecognitionSession()
        task = asyncio.create_task(VisitorProfiler(SlowOracle()).run("frame", session))
        await asyncio.sleep(0)
        session.reset()
        gate.set()

        assert await task is None
        assert session.roster == ()
        assert not session.profiling_complete
