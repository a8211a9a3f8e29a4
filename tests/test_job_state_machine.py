"""
Tests for job / URL entry status transitions.
"""

import pytest

from src.entities.scrape_job import (
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PROCESSING,
    JOB_QUEUED,
    URL_FAILED,
    URL_PROCESSING,
    URL_SUCCESS,
)
from src.repositories.scrape_job_repo import ScrapeJobRepository
from src.services.job_state_machine import JobStateMachine

URLS = ["https://a.org", "https://b.org", "https://c.org"]


@pytest.fixture
def machine(db_session):
    return JobStateMachine(db_session)


@pytest.fixture
def job(db_session):
    return ScrapeJobRepository(db_session).create_job(urls=URLS)


class TestJobTransitions:
    def test_start_only_from_queued(self, machine, job):
        assert machine.start(job) is True
        assert job.status == JOB_PROCESSING
        assert machine.start(job) is False

    def test_not_completed_while_entries_open(self, machine, job):
        machine.start(job)
        machine.record_success(job.urls[0], program_id=None)

        assert machine.complete_if_done(job) is False
        assert job.status == JOB_PROCESSING

    def test_completed_when_all_terminal(self, machine, job):
        machine.start(job)
        for entry in job.urls:
            machine.claim(entry)
            machine.record_failure(entry, "nope")

        assert machine.complete_if_done(job) is True
        assert job.status == JOB_COMPLETED
        assert job.processed_urls == job.total_urls == 3

    def test_downward_total_revision_still_completes(self, machine, job, db_session):
        machine.start(job)
        machine.record_success(job.urls[0], program_id=None)
        machine.record_success(job.urls[1], program_id=None)

        # Third URL dropped and total revised below the processed count.
        db_session.delete(job.urls[2])
        job.total_urls = 1
        db_session.commit()

        assert machine.complete_if_done(job) is True
        assert job.status == JOB_COMPLETED
        assert job.processed_urls == 2

    def test_fail_records_error_log(self, machine, job):
        assert machine.fail(job, "Crawl discovery failed: 500") is True
        assert job.status == JOB_FAILED
        assert job.error_log == "Crawl discovery failed: 500"

    def test_terminal_job_never_reopened(self, machine, job):
        machine.fail(job, "boom")

        assert machine.start(job) is False
        assert machine.complete(job) is False
        assert machine.fail(job, "again") is False
        assert job.status == JOB_FAILED
        assert job.error_log == "boom"


class TestEntryTransitions:
    def test_claim_marks_processing(self, machine, job):
        entry = job.urls[0]
        assert machine.claim(entry) is True
        assert entry.status == URL_PROCESSING
        # Reclaiming an interrupted entry is allowed.
        assert machine.claim(entry) is True

    def test_success_records_program_and_counters(self, machine, job, db_session):
        from src.entities.program import Program

        program = Program(
            name="P", religious_affiliation="catholic", address="1 St", city="Boston",
            state="MA", zip_code="02108", meeting_format="online",
            meeting_frequency="weekly", meeting_type="forum",
        )
        db_session.add(program)
        db_session.commit()

        entry = job.urls[0]
        machine.claim(entry)
        assert machine.record_success(entry, program.id) is True

        assert entry.status == URL_SUCCESS
        assert entry.program_id == program.id
        assert entry.error is None
        assert job.processed_urls == 1
        assert job.successful_urls == 1

    def test_terminal_entry_not_recounted(self, machine, job):
        entry = job.urls[0]
        machine.record_failure(entry, "first")

        assert machine.claim(entry) is False
        assert machine.record_success(entry, program_id=1) is False
        assert machine.record_failure(entry, "second") is False

        assert entry.status == URL_FAILED
        assert entry.error == "first"
        assert job.processed_urls == 1
        assert job.failed_urls == 1
        assert job.successful_urls == 0


class TestDiscoveredUrls:
    def test_replaces_list_before_any_outcome(self, machine, db_session):
        job = ScrapeJobRepository(db_session).create_job(crawl_url="https://dir.org")

        assert machine.set_discovered_urls(job, ["https://x.org", "https://y.org"]) is True
        assert job.total_urls == 2
        assert [e.url for e in job.urls] == ["https://x.org", "https://y.org"]
        assert job.status == JOB_QUEUED

    def test_refused_after_terminal_entry(self, machine, job):
        machine.record_success(job.urls[0], program_id=None)

        assert machine.set_discovered_urls(job, ["https://x.org"]) is False
        assert job.total_urls == 3
