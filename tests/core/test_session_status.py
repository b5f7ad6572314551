"""
Tests for session status derivation.

System role: Verification of the single status derivation rule set
"""

import pytest

from extractflow.boundary.db.models import JobStatus, SessionStatus
from extractflow.core.status import STICKY_SESSION_STATUSES, derive_session_status


class TestDeriveSessionStatus:
    """Test suite for derive_session_status()."""

    @pytest.mark.parametrize("stored", sorted(STICKY_SESSION_STATUSES, key=lambda s: s.value))
    def test_sticky_status_wins_over_jobs(self, stored: SessionStatus) -> None:
        result = derive_session_status(stored, [JobStatus.QUEUED, JobStatus.POLLING])
        assert result == stored

    def test_no_jobs_keeps_stored_status(self) -> None:
        assert derive_session_status(SessionStatus.UPLOADING, []) == SessionStatus.UPLOADING

    def test_all_queued_is_uploading(self) -> None:
        result = derive_session_status(SessionStatus.UPLOADING, [JobStatus.QUEUED] * 3)
        assert result == SessionStatus.UPLOADING

    def test_any_job_in_flight_is_processing(self) -> None:
        result = derive_session_status(
            SessionStatus.UPLOADING,
            [JobStatus.QUEUED, JobStatus.POLLING, JobStatus.COMPLETED],
        )
        assert result == SessionStatus.PROCESSING

    def test_unfinished_job_blocks_failure(self) -> None:
        result = derive_session_status(
            SessionStatus.PROCESSING,
            [JobStatus.FAILED, JobStatus.POLLING],
        )
        assert result == SessionStatus.PROCESSING

    def test_all_completed_is_post_processing(self) -> None:
        result = derive_session_status(SessionStatus.PROCESSING, [JobStatus.COMPLETED] * 2)
        assert result == SessionStatus.POST_PROCESSING

    @pytest.mark.parametrize("other", [JobStatus.FAILED, JobStatus.CANCELLED, JobStatus.EXPIRED])
    def test_mixed_final_outcomes_are_failed(self, other: JobStatus) -> None:
        result = derive_session_status(
            SessionStatus.PROCESSING,
            [JobStatus.COMPLETED, JobStatus.COMPLETED, other],
        )
        assert result == SessionStatus.FAILED
