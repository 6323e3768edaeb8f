"""
Unit tests for PatternLearningService.

The pure mining stage is tested with in-memory entries. The full run is
tested against the database, covering persistence, run bookkeeping and
failure handling.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from flaretrack.models import Correlation, PatternRun
from flaretrack.services.entry_store import EntrySourceUnavailableError, EntryStore
from flaretrack.services.pattern_learning_service import (
    LearningSummary,
    PatternLearningService,
    format_pattern,
)
from flaretrack.services.pattern_store import PatternWriteError, SqlPatternStore
from flaretrack.services.pattern_types import PatternKey, PatternRecord
from tests.factories import (
    BASE_TIME,
    create_correlation,
    create_entry,
    create_filler_entries,
    create_test_scenario_chocolate,
    create_user,
    make_entry,
    make_flare,
    sleep_data,
    weather_data,
)


def _by_label(patterns):
    return {key.label: record for key, record in patterns}


class TestFormatPattern:
    """Tests for the summary line of a pattern."""

    def test_delay_in_hours(self):
        record = PatternRecord(occurrence_count=6, avg_delay_minutes=180.0, last_occurred=None, confidence=0.95)

        line = format_pattern(PatternKey("food", "chocolate", "flare", "moderate"), record)

        assert line == {
            "pattern": "chocolate → moderate",
            "confidence": "95%",
            "occurrences": 6,
            "avgDelay": "3h",
        }

    def test_immediate(self):
        record = PatternRecord(occurrence_count=2, avg_delay_minutes=0.0, last_occurred=None, confidence=0.4)

        line = format_pattern(PatternKey("weather", "rain", "flare", "any"), record)

        assert line["avgDelay"] == "immediate"
        assert line["confidence"] == "40%"

    def test_rounds_half_up(self):
        record = PatternRecord(occurrence_count=2, avg_delay_minutes=150.0, last_occurred=None, confidence=0.625)

        line = format_pattern(PatternKey("trigger", "dust", "flare", "mild"), record)

        assert line["avgDelay"] == "3h"
        assert line["confidence"] == "63%"


class TestLearningSummary:
    def test_completed_reports_ok(self):
        assert LearningSummary(status="completed").to_dict()["status"] == "ok"

    def test_insufficient_data_message(self):
        result = LearningSummary(status="insufficient_data").to_dict()

        assert result["status"] == "insufficient_data"
        assert result["message"] == "Need more data to learn patterns"
        assert result["correlationsFound"] == 0
        assert result["topPatterns"] == []


class TestMine:
    """Tests for the pure mining stage."""

    @pytest.fixture
    def service(self):
        return PatternLearningService(MagicMock())

    def test_trigger_pattern(self, service):
        """Test a trigger logged 3 hours before each of three flares."""
        entries = []
        for day in range(3):
            flare_time = BASE_TIME + timedelta(days=day * 5)
            entries.append(make_entry(flare_time - timedelta(hours=3), note="ate chocolate"))
            entries.append(make_flare(flare_time))

        result = service.mine(entries)

        assert result.total_outcomes == 3
        patterns = _by_label(result.significant)
        chocolate = patterns["chocolate → moderate"]
        assert chocolate.occurrence_count == 6
        assert chocolate.confidence == pytest.approx(0.95)
        assert chocolate.avg_delay_minutes == pytest.approx(180)
        assert chocolate.last_occurred == BASE_TIME + timedelta(days=10)

    def test_symptom_pairs_symmetric(self, service):
        """Test that co-occurring symptoms are scored the same both ways."""
        entries = [
            make_flare(BASE_TIME, symptoms=["headache", "nausea"]),
            make_flare(BASE_TIME + timedelta(days=3), symptoms=["Nausea", "Headache"]),
        ]

        patterns = _by_label(service.mine(entries).significant)

        forward = patterns["headache → nausea"]
        backward = patterns["nausea → headache"]
        assert forward.occurrence_count == backward.occurrence_count == 2
        assert forward.confidence == backward.confidence == pytest.approx(0.95)
        assert forward.avg_delay_minutes == 0

    def test_sleep_confidence_not_rescored(self, service):
        """Test that the sleep ratio survives even with flares lacking sleep data."""
        entries = [
            make_flare(BASE_TIME + timedelta(days=i), physiological_data=sleep_data(hours))
            for i, hours in enumerate([8, 8, 8, 5, 5])
        ]
        entries += [make_flare(BASE_TIME + timedelta(days=10 + i)) for i in range(5)]

        patterns = _by_label(service.mine(entries).significant)

        sleep = patterns["poor sleep (<5.8h) → any"]
        assert sleep.occurrence_count == 2
        assert sleep.confidence == pytest.approx(0.4)

    def test_weather_below_minimum_dropped(self, service):
        conditions = ["rain", "rain", "sunny", "cloudy"]
        entries = [
            make_flare(BASE_TIME + timedelta(days=i), environmental_data=weather_data(c))
            for i, c in enumerate(conditions)
        ]

        result = service.mine(entries)

        assert result.significant == []

    def test_no_flares(self, service):
        entries = [make_entry(BASE_TIME + timedelta(hours=i), triggers=["stress"]) for i in range(12)]

        result = service.mine(entries)

        assert result.total_outcomes == 0
        assert result.significant == []

    def test_single_occurrence_filtered(self, service):
        entries = [
            make_entry(BASE_TIME - timedelta(hours=30), triggers=["pollen"]),
            make_flare(BASE_TIME),
        ]

        assert service.mine(entries).significant == []

    def test_confidence_bounds(self, service):
        """Test that every surviving confidence lies in (0, 0.95]."""
        entries = []
        for day in range(4):
            flare_time = BASE_TIME + timedelta(days=day * 4)
            entries.append(make_entry(flare_time - timedelta(hours=1), triggers=["stress", "pollen"]))
            entries.append(make_entry(flare_time - timedelta(hours=20), note="drank wine"))
            entries.append(
                make_flare(
                    flare_time,
                    severity=["mild", "severe"][day % 2],
                    symptoms=["pain", "fatigue"],
                    environmental_data=weather_data("rain"),
                )
            )

        significant = service.mine(entries).significant

        assert significant
        assert all(0 < record.confidence <= 0.95 for _, record in significant)

    def test_shared_weather_condition_capped(self, service):
        """Test that weather shared by every flare stays within the cap."""
        entries = [
            make_flare(BASE_TIME + timedelta(days=i), environmental_data=weather_data("rain"))
            for i in range(3)
        ]

        patterns = _by_label(service.mine(entries).significant)

        assert patterns["rain → any"].confidence == pytest.approx(0.95)
        assert patterns["rain → any"].confidence <= 0.95

    def test_deterministic(self, service):
        """Test that mining the same history twice gives the same ranking."""
        entries = []
        for day in range(3):
            flare_time = BASE_TIME + timedelta(days=day * 3)
            entries.append(make_entry(flare_time - timedelta(hours=2), triggers=["a1", "b1", "c1"]))
            entries.append(make_flare(flare_time, symptoms=["x1", "y1"]))

        first = service.mine(entries).significant
        second = service.mine(list(reversed(entries))).significant

        assert [(k, r.confidence, r.occurrence_count) for k, r in first] == [
            (k, r.confidence, r.occurrence_count) for k, r in second
        ]

    def test_capped_at_fifty(self, service):
        """Test that at most 50 patterns survive, ties resolved by key."""
        triggers = [f"t{i:02d}" for i in range(60)]
        entries = []
        for day in range(2):
            flare_time = BASE_TIME + timedelta(days=day * 5)
            entries.append(make_entry(flare_time - timedelta(hours=1), triggers=triggers))
            entries.append(make_flare(flare_time))

        significant = service.mine(entries).significant

        assert len(significant) == 50
        assert significant[0][0].antecedent_value == "t00"
        assert significant[-1][0].antecedent_value == "t49"


class TestLearnPatterns:
    """Tests for the full run against the database."""

    def test_insufficient_data(self, db):
        user = create_user(db)
        create_filler_entries(db, user, 9)
        db.commit()

        summary = PatternLearningService(db).learn_patterns(user.id)

        assert summary.status == "insufficient_data"
        assert summary.correlations_found == 0
        assert db.query(Correlation).count() == 0
        run = db.query(PatternRun).one()
        assert run.status == "insufficient_data"
        assert run.entries_analyzed == 9
        assert run.completed_at is not None

    def test_chocolate_scenario(self, db):
        user = create_user(db)
        create_test_scenario_chocolate(db, user)
        db.commit()

        summary = PatternLearningService(db).learn_patterns(user.id)

        assert summary.status == "completed"
        assert summary.correlations_found == 1
        assert summary.persisted_count == 1
        assert summary.failed_count == 0
        assert summary.top_patterns == [
            {"pattern": "chocolate → moderate", "confidence": "95%", "occurrences": 6, "avgDelay": "3h"}
        ]

        row = db.query(Correlation).one()
        assert (row.trigger_type, row.trigger_value, row.outcome_type, row.outcome_value) == (
            "food",
            "chocolate",
            "flare",
            "moderate",
        )
        assert row.occurrence_count == 6
        assert row.last_run_id == summary.run_id

        run = db.get(PatternRun, summary.run_id)
        assert run.status == "completed"
        assert run.entries_analyzed == 12
        assert run.outcomes_analyzed == 3
        assert run.correlations_found == 1
        assert run.persisted_count == 1

    def test_overwrites_and_leaves_stale_rows(self, db):
        """Test that reconfirmed rows are overwritten and others left alone."""
        user = create_user(db)
        create_correlation(
            db, user, trigger_type="food", trigger_value="chocolate", outcome_value="moderate", occurrence_count=99
        )
        create_correlation(db, user, trigger_value="pollen", occurrence_count=3)
        create_test_scenario_chocolate(db, user)
        db.commit()

        summary = PatternLearningService(db).learn_patterns(user.id)

        rows = {row.trigger_value: row for row in db.query(Correlation).all()}
        assert rows["chocolate"].occurrence_count == 6
        assert rows["chocolate"].last_run_id == summary.run_id
        assert rows["pollen"].occurrence_count == 3
        assert rows["pollen"].last_run_id is None

        current = SqlPatternStore(db).list_patterns(user.id, current_only=True)
        assert [row.trigger_value for row in current] == ["chocolate"]

    def test_rerun_is_idempotent(self, db):
        user = create_user(db)
        create_test_scenario_chocolate(db, user)
        db.commit()
        service = PatternLearningService(db)

        first = service.learn_patterns(user.id)
        second = service.learn_patterns(user.id)

        assert first.top_patterns == second.top_patterns
        assert second.run_id != first.run_id
        assert db.query(Correlation).count() == 1
        assert db.query(PatternRun).count() == 2

    def test_entry_source_unavailable(self, db):
        """Test that a failed fetch marks the run failed and persists nothing."""
        user = create_user(db)
        db.commit()
        entry_store = MagicMock(spec=EntryStore)
        entry_store.fetch_entries.side_effect = EntrySourceUnavailableError("database unreachable")

        with pytest.raises(EntrySourceUnavailableError):
            PatternLearningService(db, entry_store=entry_store).learn_patterns(user.id)

        run = db.query(PatternRun).one()
        assert run.status == "failed"
        assert run.error_message == "database unreachable"
        assert db.query(Correlation).count() == 0

    def test_failed_write_counted_and_run_continues(self, db):
        """Test that one rejected pattern does not abort the run."""
        user = create_user(db)
        for day in range(3):
            flare_time = BASE_TIME + timedelta(days=day * 5)
            create_entry(db, user, timestamp=flare_time - timedelta(hours=1), triggers=["pollen", "stress"])
            create_entry(db, user, timestamp=flare_time, entry_type="flare", severity="mild")
        create_filler_entries(db, user, 4)
        db.commit()

        real_store = SqlPatternStore(db)
        sink = MagicMock(wraps=real_store)

        def upsert(user_id, key, record, run_id=None):
            if key.antecedent_value == "stress":
                raise PatternWriteError("rejected")
            real_store.upsert(user_id, key, record, run_id=run_id)

        sink.upsert.side_effect = upsert

        summary = PatternLearningService(db, pattern_sink=sink).learn_patterns(user.id)

        assert summary.status == "completed"
        assert summary.correlations_found == 2
        assert summary.persisted_count == 1
        assert summary.failed_count == 1
        assert [row.trigger_value for row in db.query(Correlation).all()] == ["pollen"]
        assert db.get(PatternRun, summary.run_id).failed_count == 1

    def test_unexpected_error_marks_run_failed(self, db):
        user = create_user(db)
        create_test_scenario_chocolate(db, user)
        db.commit()
        service = PatternLearningService(db)
        service.scorer = MagicMock()
        service.scorer.score_all.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            service.learn_patterns(user.id)

        run = db.query(PatternRun).one()
        assert run.status == "failed"
        assert run.error_message == "boom"

    def test_weather_pattern_persisted_at_cap(self, db):
        """Test that a macro pattern is stored at 0.95 when every flare shares the condition."""
        user = create_user(db)
        for day in range(4):
            create_entry(
                db,
                user,
                timestamp=BASE_TIME + timedelta(days=day),
                entry_type="flare",
                severity="mild",
                environmental_data=weather_data("Rain"),
            )
        create_filler_entries(db, user, 6)
        db.commit()

        PatternLearningService(db).learn_patterns(user.id)

        row = db.query(Correlation).filter(Correlation.trigger_type == "weather").one()
        assert row.trigger_value == "rain"
        assert row.outcome_value == "any"
        assert row.occurrence_count == 4
        assert row.confidence == pytest.approx(0.95)
        assert all(0 <= c.confidence <= 0.95 for c in db.query(Correlation).all())

    def test_status_transitions_committed(self, db):
        """Test that each stage is committed before its work starts."""
        user = create_user(db)
        create_test_scenario_chocolate(db, user)
        db.commit()
        service = PatternLearningService(db)
        seen = []
        original_set_status = service._set_status

        def record_status(run, status):
            original_set_status(run, status)
            seen.append(db.query(PatternRun.status).filter(PatternRun.id == run.id).scalar())

        service._set_status = record_status

        summary = service.learn_patterns(user.id)

        assert seen == ["mining", "scoring", "persisting"]
        assert db.get(PatternRun, summary.run_id).status == "completed"

    def test_min_entries_and_summary_size_configurable(self, db):
        """Test that the entry minimum and summary length can be passed in."""
        user = create_user(db)
        for day in range(2):
            create_entry(
                db,
                user,
                timestamp=BASE_TIME + timedelta(days=day),
                entry_type="flare",
                severity="mild",
                symptoms=["headache", "nausea"],
            )
        db.commit()

        summary = PatternLearningService(db, min_entries=2, summary_size=1).learn_patterns(user.id)

        assert summary.status == "completed"
        assert summary.correlations_found == 2
        assert len(summary.top_patterns) == 1

    def test_min_entries_threshold_is_inclusive(self, db):
        user = create_user(db)
        create_filler_entries(db, user, 3)
        db.commit()

        assert PatternLearningService(db, min_entries=4).learn_patterns(user.id).status == "insufficient_data"
        assert PatternLearningService(db, min_entries=3).learn_patterns(user.id).status == "completed"
