"""Tests for the scheduler status machine."""

import pytest

from aenea.scheduler.state import (
    TRANSITION_HISTORY_LIMIT,
    VALID_TRANSITIONS,
    SchedulerStateMachine,
    SchedulerStatus,
)


class TestSchedulerStateMachine:
    """Tests for SchedulerStateMachine."""

    def test_starts_stopped(self):
        assert SchedulerStateMachine().status == SchedulerStatus.STOPPED

    def test_every_status_has_transitions(self):
        assert set(VALID_TRANSITIONS) == set(SchedulerStatus)

    def test_valid_path(self):
        machine = SchedulerStateMachine()
        machine.transition_to(SchedulerStatus.ACTIVE, "start", 80.0)
        machine.transition_to(SchedulerStatus.DORMANT, "energy below floor", 5.0)
        machine.transition_to(SchedulerStatus.SLEEPING, "manual")
        machine.transition_to(SchedulerStatus.ACTIVE, "sleep ended", 100.0)

        assert machine.status == SchedulerStatus.ACTIVE
        assert [t.to_status for t in machine.history] == [
            SchedulerStatus.ACTIVE,
            SchedulerStatus.DORMANT,
            SchedulerStatus.SLEEPING,
            SchedulerStatus.ACTIVE,
        ]
        assert machine.history[1].energy == 5.0

    @pytest.mark.parametrize(
        "start,target",
        [
            (SchedulerStatus.STOPPED, SchedulerStatus.SLEEPING),
            (SchedulerStatus.STOPPED, SchedulerStatus.DORMANT),
            (SchedulerStatus.SLEEPING, SchedulerStatus.DORMANT),
            (SchedulerStatus.ACTIVE, SchedulerStatus.ACTIVE),
        ],
    )
    def test_invalid_transitions_raise(self, start, target):
        machine = SchedulerStateMachine(initial=start)
        with pytest.raises(ValueError, match="Invalid transition"):
            machine.transition_to(target, "test")
        assert machine.status == start

    def test_history_is_bounded(self):
        machine = SchedulerStateMachine()
        for _ in range(TRANSITION_HISTORY_LIMIT):
            machine.transition_to(SchedulerStatus.ACTIVE, "start")
            machine.transition_to(SchedulerStatus.STOPPED, "stop")
        assert len(machine.history) == TRANSITION_HISTORY_LIMIT

    def test_history_is_a_copy(self):
        machine = SchedulerStateMachine()
        machine.transition_to(SchedulerStatus.ACTIVE, "start")
        machine.history.clear()
        assert len(machine.history) == 1

    def test_transition_to_dict(self):
        machine = SchedulerStateMachine()
        payload = machine.transition_to(SchedulerStatus.ACTIVE, "start").to_dict()
        assert payload["from_status"] == "stopped"
        assert payload["to_status"] == "active"
