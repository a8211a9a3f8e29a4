"""
Tests for the scraper settings singleton and the cycle gate.
"""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from src.dtos.scraper_settings_dto import ScraperSettingsUpdate
from src.entities.scraper_settings import ScraperSettings
from src.services.scraper_settings_service import ScraperSettingsService, SettingsSnapshot

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _snapshot(**overrides):
    values = dict(
        enabled=True,
        frequency_minutes=5,
        batch_size=5,
        delay_seconds=2.0,
        max_concurrent_jobs=3,
        last_run=None,
    )
    values.update(overrides)
    return SettingsSnapshot(**values)


class TestSkipReason:
    def test_never_run_is_due(self):
        assert _snapshot().skip_reason(NOW) is None

    def test_disabled(self):
        assert _snapshot(enabled=False).skip_reason(NOW) == "disabled"

    def test_within_frequency(self):
        snap = _snapshot(last_run=NOW - timedelta(minutes=4, seconds=59))
        assert snap.skip_reason(NOW) == "not due"

    def test_exactly_at_frequency(self):
        assert _snapshot(last_run=NOW - timedelta(minutes=5)).skip_reason(NOW) is None


class TestScraperSettingsService:
    def test_row_seeded_once(self, db_session):
        svc = ScraperSettingsService(db_session)

        first = svc.get()
        second = svc.get()

        assert first is second
        assert db_session.query(ScraperSettings).count() == 1
        assert first.batch_size == 5
        assert first.total_processed == 0

    def test_snapshot_copies_values(self, db_session):
        svc = ScraperSettingsService(db_session)

        snap = svc.snapshot()
        svc.update(ScraperSettingsUpdate(batch_size=9))

        assert snap.batch_size == 5
        assert snap.delay_seconds == 2.0
        assert svc.snapshot().batch_size == 9

    def test_update_ignores_omitted_fields(self, db_session):
        svc = ScraperSettingsService(db_session)

        row = svc.update(ScraperSettingsUpdate.model_validate({"enabled": False}))

        assert row.enabled is False
        assert row.frequency_minutes == 5
        assert row.max_concurrent_jobs == 3

    def test_empty_update_is_noop(self, db_session):
        svc = ScraperSettingsService(db_session)
        assert svc.update(ScraperSettingsUpdate()).batch_size == 5

    @pytest.mark.parametrize(
        "payload",
        [{"frequencyMinutes": 3}, {"batchSize": 0}, {"delayBetweenRequestsSeconds": -1}],
    )
    def test_update_validation(self, payload):
        with pytest.raises(ValidationError):
            ScraperSettingsUpdate.model_validate(payload)

    def test_record_cycle_accumulates(self, db_session):
        svc = ScraperSettingsService(db_session)

        svc.record_cycle(at=NOW, processed=3, successful=2, failed=1)
        row = svc.record_cycle(at=NOW + timedelta(minutes=5), processed=1, successful=1, failed=0)

        assert row.last_run == NOW + timedelta(minutes=5)
        assert (row.total_processed, row.total_successful, row.total_failed) == (4, 3, 1)

    def test_record_empty_cycle_stamps_last_run(self, db_session):
        svc = ScraperSettingsService(db_session)

        row = svc.record_cycle(at=NOW, processed=0, successful=0, failed=0)

        assert row.last_run == NOW
        assert row.total_processed == 0
