"""Session controller and mode selector tests on a simulated clock."""

import pytest

from models.exceptions import InvalidPlanError, PlanLockedError
from models.schemas import BreathingPattern, Phase, Program, RunState, WorkoutMode
from models.workout_session import ManualMode, TimedMode, WorkoutSession
from conftest import PATTERN, make_exercise


class Callbacks:
    def __init__(self):
        self.next = 0
        self.prev = 0
        self.finish = 0


@pytest.fixture
def calls():
    return Callbacks()


@pytest.fixture
def session(scheduler, calls, recorder):
    def on_next():
        calls.next += 1

    def on_prev():
        calls.prev += 1

    def on_finish():
        calls.finish += 1

    return WorkoutSession(
        scheduler=scheduler,
        breathing_pattern=PATTERN,
        on_next=on_next,
        on_prev=on_prev,
        on_finish=on_finish,
        on_change=recorder,
        countdown_seconds=5,
    )


def plan(*specs):
    return [make_exercise(f"ex{i}", sets=s, reps=r, rest=rest) for i, (s, r, rest) in enumerate(specs)]


# ---- start ----

class TestStart:
    def test_empty_plan_is_rejected(self, session):
        with pytest.raises(InvalidPlanError):
            session.start([])
        assert session.engine is None
        assert not session.has_session

    def test_empty_program_is_rejected(self, session):
        with pytest.raises(InvalidPlanError):
            session.start(Program(id="empty", exercises=[]))

    def test_start_lands_on_first_exercise_idle(self, session):
        state = session.start(plan((2, 2, 10), (1, 1, 0)))
        assert session.index == 0
        assert session.is_first
        assert not session.is_last
        assert state == RunState()
        assert isinstance(session.mode, TimedMode)

    def test_start_accepts_program(self, session):
        program = Program(id="push", name="Push", exercises=plan((1, 1, 0)))
        session.start(program, WorkoutMode.manual)
        assert session.program == program
        assert isinstance(session.mode, ManualMode)

    def test_restart_discards_running_engine(self, session, scheduler):
        session.start(plan((2, 2, 10)))
        session.toggle()
        old = session.engine
        session.start(plan((1, 1, 0)))
        assert old.disposed
        assert scheduler.pending == 0


# ---- timed navigation ----

class TestTimedNavigation:
    def test_rest_expiry_advances_exactly_once_and_keeps_running(self, session, scheduler, calls):
        session.start(plan((1, 1, 4), (1, 1, 0)))
        session.toggle()
        scheduler.advance(5 + 5)
        assert session.state.phase == Phase.rest
        assert session.index == 0

        scheduler.advance(4)
        assert calls.next == 1
        assert session.index == 1
        assert session.state.isActive
        assert session.state.phase == Phase.inhale
        assert session.state.currentSet == 0
        assert session.state.reps == 0

        # One rep on the last exercise, no rest, then done
        scheduler.advance(5)
        assert calls.finish == 1
        assert calls.next == 1
        assert session.finished

    def test_next_preserves_active_flag(self, session, scheduler, calls):
        session.start(plan((2, 2, 10), (2, 2, 10)))
        session.toggle()
        scheduler.advance(5)
        session.next()
        assert calls.next == 1
        assert session.state.isActive
        assert session.engine.has_pending

    def test_next_while_idle_stays_idle(self, session):
        session.start(plan((2, 2, 10), (2, 2, 10)))
        session.next()
        assert not session.state.isActive

    def test_next_on_last_is_noop(self, session, calls):
        session.start(plan((2, 2, 10)))
        engine = session.engine
        session.next()
        assert session.index == 0
        assert session.engine is engine
        assert calls.next == 0

    def test_prev_always_lands_idle(self, session, scheduler, calls):
        session.start(plan((2, 2, 10), (2, 2, 10)))
        session.next()
        session.toggle()
        scheduler.advance(5)
        assert session.state.isActive

        session.prev()
        assert session.index == 0
        assert calls.prev == 1
        assert session.state == RunState()
        assert scheduler.pending == 0

    def test_prev_on_first_is_noop(self, session, calls):
        session.start(plan((2, 2, 10), (2, 2, 10)))
        session.prev()
        assert session.index == 0
        assert calls.prev == 0

    def test_stale_engine_never_fires_into_new_exercise(self, session, scheduler):
        session.start(plan((2, 2, 10), (2, 2, 10)))
        session.toggle()
        scheduler.advance(5 + 1)
        old = session.engine
        old_state = old.state
        session.prev()  # no-op at index 0
        session.next()
        scheduler.advance(0.5)
        assert old.state == old_state
        # New exercise starts a fresh inhale, armed for the full duration
        assert session.state.phase == Phase.inhale
        scheduler.advance(1.5)
        assert session.state.phase == Phase.holdIn

    def test_breathing_edit_reaches_running_engine(self, session, scheduler):
        session.start(plan((1, 5, 0)))
        session.toggle()
        scheduler.advance(5)
        session.set_breathing_pattern(BreathingPattern(inhale=2, holdIn=6, exhale=2, holdOut=2))
        scheduler.advance(2 + 5)
        assert session.state.phase == Phase.holdIn
        scheduler.advance(1)
        assert session.state.phase == Phase.exhale

    def test_complete_set_ignored_in_timed_mode(self, session):
        session.start(plan((2, 2, 10)))
        session.complete_set()
        assert session.state.currentSet == 0


# ---- finish ----

class TestFinish:
    def test_finish_fires_once_and_locks_navigation(self, session, calls):
        session.start(plan((1, 1, 0), (1, 1, 0)))
        session.finish()
        session.finish()
        assert calls.finish == 1

        assert session.next() is None
        assert session.prev() is None
        assert session.toggle() is None
        assert session.index == 0

    def test_reset_after_finish_plays_again(self, session, scheduler, calls):
        session.start(plan((1, 1, 0)))
        session.toggle()
        scheduler.advance(5 + 5)
        assert calls.finish == 1
        assert session.finished

        state = session.reset()
        assert state == RunState()
        assert not session.finished

        assert session.toggle().countdown == 5
        scheduler.advance(5)
        assert session.state.isActive
        scheduler.advance(2)
        assert session.state.phase == Phase.holdIn
        scheduler.advance(3)
        assert calls.finish == 2

    def test_new_session_after_finish(self, session, calls):
        session.start(plan((1, 1, 0)), WorkoutMode.manual)
        session.complete_set()
        session.complete_set()
        assert calls.finish == 1

        session.start(plan((1, 1, 0)), WorkoutMode.manual)
        assert not session.finished
        session.complete_set()
        session.complete_set()
        assert calls.finish == 2


# ---- manual mode ----

class TestManualMode:
    def test_taps_drive_sets_and_exercises(self, session, scheduler, calls, recorder):
        session.start(plan((2, 3, 30), (1, 3, 30)), WorkoutMode.manual)

        session.complete_set()
        session.complete_set()
        assert session.state.currentSet == 2
        assert session.index == 0

        session.complete_set()
        assert session.index == 1
        assert calls.next == 1
        assert not session.state.isActive

        session.complete_set()
        assert calls.finish == 0
        session.complete_set()
        assert calls.finish == 1

        assert {state.phase for _, state in recorder.states} == {Phase.inhale}

    def test_time_never_advances_sets(self, session, scheduler):
        session.start(plan((3, 3, 30)), WorkoutMode.manual)
        session.toggle()
        session.resume()
        scheduler.advance(600)
        assert session.state == RunState()
        assert scheduler.pending == 0


# ---- views and persistence ----

class TestStatusAndSnapshot:
    def test_status_view(self, session, scheduler):
        session.start(plan((2, 2, 10), (1, 1, 0)))
        status = session.status()
        assert status.instruction == "Ready?"
        assert status.caption == "0/2 reps"
        assert status.totalExercises == 2
        assert status.isFirst and not status.isLast
        assert status.exerciseProgress == 0.0

        session.toggle()
        assert session.status().instruction == "Get ready... 5"
        scheduler.advance(5)
        assert session.status().instruction == "Breathe in"

    def test_snapshot_and_restore(self, session, scheduler):
        session.start(plan((2, 2, 10), (1, 1, 0), (3, 1, 5)), WorkoutMode.manual)
        session.next()
        snapshot = session.snapshot(location="gym")
        assert snapshot.currentExerciseIndex == 1
        assert snapshot.activeMode == WorkoutMode.manual
        assert snapshot.location == "gym"

        restored = WorkoutSession(scheduler=scheduler)
        state = restored.restore(snapshot)
        assert restored.index == 1
        assert isinstance(restored.mode, ManualMode)
        assert restored.current_exercise.id == "ex1"
        assert restored.breathing_pattern == PATTERN
        assert state == RunState()

    def test_restore_clamps_index(self, session, scheduler):
        session.start(plan((1, 1, 0), (1, 1, 0)))
        snapshot = session.snapshot().model_copy(update={"currentExerciseIndex": 9})
        restored = WorkoutSession(scheduler=scheduler)
        restored.restore(snapshot)
        assert restored.index == 1
        assert restored.is_last

    def test_restore_without_program_leaves_no_session(self, scheduler):
        from models.schemas import StateSnapshot

        restored = WorkoutSession(scheduler=scheduler)
        assert restored.restore(StateSnapshot()) is None
        assert not restored.has_session


# ---- settings surface ----

class TestAdjustments:
    def test_targets_locked_during_session(self, session):
        exercises = plan((2, 2, 10), (1, 1, 0))
        draft = make_exercise("extra", sets=1)
        assert session.adjust_target(exercises[0], "defaultSets", 1).defaultSets == 3

        session.start(exercises)
        with pytest.raises(PlanLockedError):
            session.adjust_target(exercises[0], "defaultSets", 1)
        assert session.adjust_target(draft, "defaultSets", 1).defaultSets == 2
        assert session.current_exercise.defaultSets == 2

        session.finish()
        assert session.adjust_target(exercises[0], "defaultRest", -5).defaultRest == 5

    def test_adjust_breathing_replaces_pattern(self, session):
        pattern = session.adjust_breathing(Phase.exhale, -0.5)
        assert pattern.exhale == 1.5
        assert session.breathing_pattern is pattern
        assert session.adjust_breathing(Phase.holdIn, -3).holdIn == 0
