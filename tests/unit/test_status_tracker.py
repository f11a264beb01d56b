"""
Unit tests for StatusTracker and ReceiverStatus

Tests state transitions, atomic outcome updates and the stop override.
"""

import pytest

from mailcode.core.status_tracker import StatusTracker
from mailcode.models.receiver_status import ReceiverState, ReceiverStatus


@pytest.fixture
def tracker():
    """Create a fresh StatusTracker"""
    return StatusTracker()


class TestReceiverStatus:
    """Test ReceiverStatus model"""

    def test_defaults(self):
        """New status is idle with nothing checked"""
        status = ReceiverStatus()

        assert status.state == ReceiverState.IDLE
        assert status.error_message is None
        assert status.last_check_time is None
        assert status.codes_count == 0

    def test_to_dict_omits_unset_fields(self):
        """Optional fields are left out of the wire format"""
        assert ReceiverStatus().to_dict() == {"status": "idle", "codesCount": 0}

    def test_to_dict_full(self):
        """All fields use camelCase keys"""
        status = ReceiverStatus(
            state=ReceiverState.RECEIVING,
            error_message="boom",
            last_check_time=123,
            codes_count=2,
        )

        assert status.to_dict() == {
            "status": "receiving",
            "errorMessage": "boom",
            "lastCheckTime": 123,
            "codesCount": 2,
        }

    def test_state_values(self):
        """State values are lowercase strings"""
        assert [s.value for s in ReceiverState] == [
            "idle",
            "connecting",
            "connected",
            "receiving",
            "error",
            "stopped",
        ]


class TestTransitions:
    """Test lifecycle transitions"""

    def test_happy_path(self, tracker):
        """idle -> connecting -> connected -> receiving"""
        assert tracker.state == ReceiverState.IDLE
        tracker.mark_connecting()
        assert tracker.state == ReceiverState.CONNECTING
        tracker.mark_connected()
        assert tracker.state == ReceiverState.CONNECTED
        tracker.mark_receiving()
        assert tracker.state == ReceiverState.RECEIVING

    def test_success_clears_error_and_updates_fields(self, tracker):
        """A successful iteration clears the error and refreshes counters"""
        tracker.mark_receiving()
        tracker.record_failure("Connection refused")
        tracker.record_success(codes_count=3, checked_at=42)

        status = tracker.snapshot()
        assert status.state == ReceiverState.RECEIVING
        assert status.error_message is None
        assert status.last_check_time == 42
        assert status.codes_count == 3

    def test_success_defaults_check_time_to_now(self, tracker):
        """Check time is filled in when not given"""
        tracker.record_success(codes_count=0)
        assert tracker.snapshot().last_check_time > 0

    def test_non_terminal_failure_keeps_state(self, tracker):
        """A single failure records the error but keeps receiving"""
        tracker.mark_receiving()
        tracker.record_failure("timeout")

        status = tracker.snapshot()
        assert status.state == ReceiverState.RECEIVING
        assert status.error_message == "timeout"

    def test_terminal_failure_sets_error(self, tracker):
        """Threshold failure moves to ERROR"""
        tracker.mark_receiving()
        tracker.record_failure("Too many consecutive errors: timeout", terminal=True)

        assert tracker.state == ReceiverState.ERROR


class TestStop:
    """Test mark_stopped"""

    @pytest.mark.parametrize(
        "prepare",
        [
            lambda t: None,
            lambda t: t.mark_connecting(),
            lambda t: (t.mark_receiving(), t.record_failure("boom")),
            lambda t: t.record_failure("boom", terminal=True),
        ],
    )
    def test_stop_from_any_state(self, tracker, prepare):
        """After stop the state is STOPPED with no error"""
        prepare(tracker)
        tracker.mark_stopped()

        status = tracker.snapshot()
        assert status.state == ReceiverState.STOPPED
        assert status.error_message is None

    def test_loop_writes_after_stop_are_ignored(self, tracker):
        """A finishing iteration cannot revive a stopped receiver"""
        tracker.mark_stopped()
        tracker.mark_receiving()
        tracker.record_failure("late failure", terminal=True)
        tracker.record_success(codes_count=5)

        status = tracker.snapshot()
        assert status.state == ReceiverState.STOPPED
        assert status.error_message is None
        assert status.codes_count == 0


class TestSnapshot:
    """Test snapshot isolation"""

    def test_snapshot_is_a_copy(self, tracker):
        """Changing a snapshot does not change the tracker"""
        snapshot = tracker.snapshot()
        snapshot.codes_count = 99

        assert tracker.snapshot().codes_count == 0
