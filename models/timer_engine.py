# timer_engine.py
"""
Breathing/rest state machine that paces one exercise.
Each phase arms exactly one delayed action on the scheduler; when it fires the engine
moves to the next phase and arms the following one.
"""

from enum import Enum
from typing import Callable, Optional

from config import config
from utils.logging_utils import logger
from models.schemas import BreathingPattern, Exercise, Phase, RunState
from services.scheduler import ScheduledAction, Scheduler


class AdvanceEvent(str, Enum):
    """What triggered a completion check"""
    set_complete = "set_complete"   # Timed: exhale of the last rep in a set finished
    rest_expired = "rest_expired"   # Timed: rest countdown reached zero
    set_tapped = "set_tapped"       # Manual: user pressed "complete set"


class Outcome(str, Enum):
    rest = "rest"
    next_set = "next_set"
    next_exercise = "next_exercise"
    finish = "finish"


def completion_policy(state: RunState, exercise: Exercise, is_last: bool, event: AdvanceEvent) -> Outcome:
    """
    Shared set/exercise completion rules for both workout modes.

    Timed mode counts the set in progress (currentSet is 0-based and only moves after rest),
    so more sets remain while currentSet < defaultSets - 1. Manual mode counts finished sets,
    so more remain while currentSet < defaultSets.
    """
    if event == AdvanceEvent.set_tapped:
        sets_remaining = state.currentSet < exercise.defaultSets
    else:
        sets_remaining = state.currentSet < exercise.defaultSets - 1

    if event == AdvanceEvent.set_complete:
        # Rest after every set except the very last one of the workout
        return Outcome.rest if sets_remaining or not is_last else Outcome.finish

    if sets_remaining:
        return Outcome.next_set
    if not is_last:
        return Outcome.next_exercise
    return Outcome.finish


class TimerEngine:
    """
    Per-exercise phase machine: countdown -> inhale -> holdIn -> exhale -> holdOut -> ... -> rest.
    Holds at most one pending scheduled action; any state replacement that changes what
    should happen next cancels it first.
    """

    NEXT_BREATH = {
        Phase.inhale: Phase.holdIn,
        Phase.holdIn: Phase.exhale,
        Phase.holdOut: Phase.inhale,
    }

    def __init__(
        self,
        exercise: Exercise,
        scheduler: Scheduler,
        pattern_provider: Callable[[], BreathingPattern],
        is_last: bool = True,
        on_next: Optional[Callable[[], None]] = None,
        on_finish: Optional[Callable[[], None]] = None,
        on_change: Optional[Callable[[RunState], None]] = None,
        active: bool = False,
        countdown_seconds: Optional[int] = None,
    ):
        self.exercise = exercise
        self.scheduler = scheduler
        self.pattern_provider = pattern_provider
        self.is_last = is_last
        self.on_next = on_next
        self.on_finish = on_finish
        self.on_change = on_change
        self.countdown_seconds = config.countdown_seconds if countdown_seconds is None else countdown_seconds

        self.state = RunState(isActive=active)
        self.finished = False
        self.disposed = False
        self._pending: Optional[ScheduledAction] = None
        self._generation = 0

        if active:
            # Carried over from the previous exercise: keep breathing without a countdown
            self._arm()

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def start(self) -> RunState:
        """
        Play button. Idle -> get-ready countdown; pressing it again during the
        countdown or while running pauses.
        """
        if self.finished:
            logger.info(f"Workout already finished on {self.exercise.id}; reset to play again")
            return self.state
        if self.state.countdown is not None or self.state.isActive:
            return self.pause()

        if self.countdown_seconds <= 0:
            self._activate()
        else:
            self._set_state(countdown=self.countdown_seconds)
            logger.info(f"Get ready: {self.countdown_seconds}s countdown for {self.exercise.id}")
            self._arm()
        return self.state

    def pause(self) -> RunState:
        """Halt pending timers; phase, reps and set are kept"""
        self._cancel()
        if self.state.isActive or self.state.countdown is not None:
            self._set_state(isActive=False, countdown=None)
            logger.info(f"Paused in {self.state.phase.value} (set {self.state.currentSet}, reps {self.state.reps})")
        return self.state

    def resume(self) -> RunState:
        """Continue the current phase, re-armed for its full duration"""
        if self.finished or self.state.isActive:
            return self.state
        self._set_state(isActive=True, countdown=None)
        logger.info(f"Resumed in {self.state.phase.value}")
        self._arm()
        return self.state

    def reset(self) -> RunState:
        """Back to the first set, idle, with nothing scheduled"""
        self._cancel()
        self.finished = False
        self.state = RunState()
        self._notify()
        logger.info(f"Reset {self.exercise.id}")
        return self.state

    def skip_rest(self) -> RunState:
        """End the rest now; the expiry policy runs on the next scheduler tick"""
        if self.finished or self.state.phase != Phase.rest:
            return self.state
        self._set_state(restTimeLeft=0)
        logger.info("Rest skipped")
        self._arm()
        return self.state

    def record_set(self) -> RunState:
        """User-driven set completion (manual mode); never touches the phase timers"""
        if self.finished:
            logger.info(f"Workout already finished on {self.exercise.id}; ignoring set")
            return self.state
        outcome = completion_policy(self.state, self.exercise, self.is_last, AdvanceEvent.set_tapped)
        self._apply(outcome)
        return self.state

    def dispose(self):
        """Cancel everything; used when the session moves to another exercise or ends"""
        self._cancel()
        self.disposed = True

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _set_state(self, **changes):
        self.state = self.state.model_copy(update=changes)
        self._notify()

    def _notify(self):
        if self.on_change:
            self.on_change(self.state)

    def _cancel(self):
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _schedule(self, delay: float, action: Callable[[], None]):
        self._cancel()
        generation = self._generation

        def fire():
            # A replaced or cancelled action must never touch the state
            if generation != self._generation or self.disposed:
                return
            self._pending = None
            action()

        self._pending = self.scheduler.call_later(delay, fire)

    def _arm(self):
        """Arm the single action that the current state calls for"""
        if self.disposed or self.finished:
            return
        state = self.state
        step = config.rest_tick_seconds

        if state.countdown is not None:
            self._schedule(step, self._countdown_tick)
        elif not state.isActive:
            self._cancel()
        elif state.phase == Phase.rest:
            if state.restTimeLeft > 0:
                self._schedule(step, self._rest_tick)
            else:
                self._schedule(0.0, self._rest_expired)
        else:
            self._schedule(self._phase_delay(state.phase), self._phase_complete)

    def _phase_delay(self, phase: Phase) -> float:
        seconds = self.pattern_provider().duration_of(phase)
        if seconds < 0:
            logger.warning(f"Negative {phase.value} duration ({seconds}s); treating as 0")
            return 0.0
        return seconds

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _activate(self):
        # A rep interrupted before the countdown restarts from inhale; rest keeps counting
        phase = Phase.rest if self.state.phase == Phase.rest else Phase.inhale
        self._set_state(countdown=None, isActive=True, phase=phase)
        logger.info(f"Started {self.exercise.id} in {phase.value}")
        self._arm()

    def _countdown_tick(self):
        remaining = self.state.countdown - 1
        if remaining > 0:
            self._set_state(countdown=remaining)
            self._arm()
        else:
            self._activate()

    def _phase_complete(self):
        phase = self.state.phase
        if phase in self.NEXT_BREATH:
            self._set_state(phase=self.NEXT_BREATH[phase])
            self._arm()
            return

        # Exhale finished: one more rep done
        reps = self.state.reps + 1
        if reps < self.exercise.defaultReps:
            self._set_state(reps=reps, phase=Phase.holdOut)
            logger.info(f"REP #{reps} of set {self.state.currentSet + 1} on {self.exercise.id}")
            self._arm()
            return

        self._set_state(reps=reps)
        logger.info(f"SET {self.state.currentSet + 1}/{self.exercise.defaultSets} completed on {self.exercise.id}")
        self._apply(completion_policy(self.state, self.exercise, self.is_last, AdvanceEvent.set_complete))

    def _rest_tick(self):
        self._set_state(restTimeLeft=max(0, self.state.restTimeLeft - 1))
        self._arm()

    def _rest_expired(self):
        self._apply(completion_policy(self.state, self.exercise, self.is_last, AdvanceEvent.rest_expired))

    def _apply(self, outcome: Outcome):
        if outcome == Outcome.rest:
            self._set_state(phase=Phase.rest, restTimeLeft=self.exercise.defaultRest)
            logger.info(f"Resting {self.exercise.defaultRest}s")
            self._arm()
        elif outcome == Outcome.next_set:
            self._set_state(currentSet=self.state.currentSet + 1, reps=0, phase=Phase.inhale)
            logger.info(f"Starting set {self.state.currentSet + 1}/{self.exercise.defaultSets} on {self.exercise.id}")
            self._arm()
        elif outcome == Outcome.next_exercise:
            self._cancel()
            logger.info(f"Exercise {self.exercise.id} done, moving on")
            if self.on_next:
                self.on_next()
        else:
            self._finish()

    def _finish(self):
        self._cancel()
        self.finished = True
        self._set_state(isActive=False, countdown=None)
        logger.info(f"Workout finished on {self.exercise.id}")
        if self.on_finish:
            self.on_finish()
