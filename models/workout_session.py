# workout_session.py
"""
Session controller that walks a workout plan exercise by exercise.
Uses composition to delegate advancement to a mode-specific strategy and pacing to a TimerEngine.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, Type, Union

from config import config
from utils.logging_utils import logger
from utils.instructions import get_caption, get_instruction
from models.exceptions import InvalidPlanError, PlanLockedError
from models.schemas import (
    BreathingPattern,
    Exercise,
    Phase,
    Program,
    RunState,
    StateSnapshot,
    WorkoutMode,
    WorkoutState,
)
from models.timer_engine import TimerEngine
from services.scheduler import Scheduler


class AdvancementMode(ABC):
    """
    Abstract base class for the two ways a set can be completed.
    Both share the engine's completion policy; they differ in what triggers it.
    """

    mode: WorkoutMode

    @abstractmethod
    def toggle(self, engine: TimerEngine) -> RunState:
        """Handle the play/pause control"""
        pass

    @abstractmethod
    def complete_set(self, engine: TimerEngine) -> RunState:
        """Handle the explicit "complete set" control"""
        pass

    @abstractmethod
    def carry_active(self, was_active: bool) -> bool:
        """Whether the next exercise starts running after next()"""
        pass

    def pause(self, engine: TimerEngine) -> RunState:
        return engine.pause()

    def resume(self, engine: TimerEngine) -> RunState:
        return engine.resume()

    def skip_rest(self, engine: TimerEngine) -> RunState:
        return engine.skip_rest()


class TimedMode(AdvancementMode):
    """Engine-driven: the breathing phase machine completes sets on its own"""

    mode = WorkoutMode.timed

    def toggle(self, engine: TimerEngine) -> RunState:
        return engine.start()

    def complete_set(self, engine: TimerEngine) -> RunState:
        logger.warning("complete_set ignored in timed mode; sets complete from the breathing timer")
        return engine.state

    def carry_active(self, was_active: bool) -> bool:
        return was_active


class ManualMode(AdvancementMode):
    """User-driven: the phase machine stays inert and every tap completes a set"""

    mode = WorkoutMode.manual

    def toggle(self, engine: TimerEngine) -> RunState:
        logger.info("Play/pause has no effect in manual mode")
        return engine.state

    def pause(self, engine: TimerEngine) -> RunState:
        return engine.state

    def resume(self, engine: TimerEngine) -> RunState:
        return engine.state

    def skip_rest(self, engine: TimerEngine) -> RunState:
        return engine.state

    def complete_set(self, engine: TimerEngine) -> RunState:
        return engine.record_set()

    def carry_active(self, was_active: bool) -> bool:
        return False


MODES: Dict[WorkoutMode, Type[AdvancementMode]] = {
    WorkoutMode.timed: TimedMode,
    WorkoutMode.manual: ManualMode,
}


class WorkoutSession:
    """
    Main session coordinator: owns the plan, the exercise index and the active TimerEngine.
    A fresh engine (and RunState) is created on every exercise change.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        breathing_pattern: Optional[BreathingPattern] = None,
        on_next: Optional[Callable[[], None]] = None,
        on_prev: Optional[Callable[[], None]] = None,
        on_finish: Optional[Callable[[], None]] = None,
        on_change: Optional[Callable[[RunState], None]] = None,
        countdown_seconds: Optional[int] = None,
    ):
        self.scheduler = scheduler
        self.breathing_pattern = breathing_pattern or BreathingPattern.default()
        self.on_next = on_next
        self.on_prev = on_prev
        self.on_finish = on_finish
        self.on_change = on_change
        self.countdown_seconds = config.countdown_seconds if countdown_seconds is None else countdown_seconds

        self.plan: List[Exercise] = []
        self.program: Optional[Program] = None
        self.mode: AdvancementMode = TimedMode()
        self.index = 0
        self.engine: Optional[TimerEngine] = None
        self.finished = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, plan: Union[Program, Sequence[Exercise]], mode: WorkoutMode = WorkoutMode.timed) -> RunState:
        """Begin a new session at the first exercise; the plan and mode are fixed until the next start"""
        if isinstance(plan, Program):
            program, exercises = plan, list(plan.exercises)
        else:
            program, exercises = None, list(plan)
        if not exercises:
            raise InvalidPlanError("Cannot start a workout with no exercises")

        self._dispose_engine()
        self.program = program
        self.plan = exercises
        self.mode = MODES[WorkoutMode(mode)]()
        self.index = 0
        self.finished = False
        self._load_exercise(active=False)
        logger.info(f"Session started: {len(exercises)} exercises, {self.mode.mode.value} mode")
        return self.engine.state

    def next(self) -> Optional[RunState]:
        """Advance to the following exercise; ignored on the last one"""
        if not self._accepting("next"):
            return None
        if self.is_last:
            return self.engine.state
        was_active = self.engine.state.isActive
        self._dispose_engine()
        self.index += 1
        self._load_exercise(active=self.mode.carry_active(was_active))
        logger.info(f"Next exercise {self.index + 1}/{len(self.plan)}: {self.current_exercise.id}")
        if self.on_next:
            self.on_next()
        return self.engine.state

    def prev(self) -> Optional[RunState]:
        """Go back one exercise; always lands idle"""
        if not self._accepting("prev"):
            return None
        if self.is_first:
            return self.engine.state
        self._dispose_engine()
        self.index -= 1
        self._load_exercise(active=False)
        logger.info(f"Previous exercise {self.index + 1}/{len(self.plan)}: {self.current_exercise.id}")
        if self.on_prev:
            self.on_prev()
        return self.engine.state

    def finish(self):
        """Mark the session complete; onFinish fires at most once until the next start or reset"""
        if self.finished:
            return
        self.finished = True
        if self.engine:
            self.engine.dispose()
        logger.info("Session finished")
        if self.on_finish:
            self.on_finish()

    def close(self):
        """Tear down without signalling completion (exit to menu)"""
        self._dispose_engine()
        self.plan = []
        self.program = None
        self.index = 0
        self.finished = False

    # ------------------------------------------------------------------
    # Controls routed through the mode
    # ------------------------------------------------------------------

    def toggle(self) -> Optional[RunState]:
        return self.mode.toggle(self.engine) if self._accepting("toggle") else None

    def pause(self) -> Optional[RunState]:
        return self.mode.pause(self.engine) if self._accepting("pause") else None

    def resume(self) -> Optional[RunState]:
        return self.mode.resume(self.engine) if self._accepting("resume") else None

    def skip_rest(self) -> Optional[RunState]:
        return self.mode.skip_rest(self.engine) if self._accepting("skip_rest") else None

    def complete_set(self) -> Optional[RunState]:
        return self.mode.complete_set(self.engine) if self._accepting("complete_set") else None

    def reset(self) -> Optional[RunState]:
        """
        Restart the current exercise from its first set.
        On a finished session this reopens it with a fresh idle engine so play works again.
        """
        if self.engine is None:
            return None
        if self.finished:
            self._dispose_engine()
            self.finished = False
            self._load_exercise(active=False)
            logger.info(f"Session reopened at exercise {self.index + 1}/{len(self.plan)}")
            return self.engine.state
        return self.engine.reset()

    def adjust_target(self, exercise: Exercise, field: str, delta: int) -> Exercise:
        """
        Tune a draft exercise before it is played.
        Exercises that belong to an unfinished session are read-only.
        """
        if self.has_session and not self.finished and any(e.id == exercise.id for e in self.plan):
            raise PlanLockedError(f"{exercise.id} is part of the running workout")
        return exercise.adjust(field, delta)

    def adjust_breathing(self, phase: Phase, delta: float) -> BreathingPattern:
        """Settings surface step; the result stays inside the allowed range"""
        self.set_breathing_pattern(self.breathing_pattern.adjust(phase, delta))
        return self.breathing_pattern

    def set_breathing_pattern(self, pattern: BreathingPattern):
        """Replace the pattern; the running engine picks it up at the next phase boundary"""
        self.breathing_pattern = pattern
        logger.info(f"Breathing pattern set to {pattern.model_dump()}")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def has_session(self) -> bool:
        return self.engine is not None

    @property
    def is_first(self) -> bool:
        return self.index == 0

    @property
    def is_last(self) -> bool:
        return self.index >= len(self.plan) - 1

    @property
    def current_exercise(self) -> Optional[Exercise]:
        return self.plan[self.index] if self.plan else None

    @property
    def state(self) -> RunState:
        return self.engine.state if self.engine else RunState()

    def status(self) -> WorkoutState:
        """Snapshot of everything the player screen renders"""
        exercise = self.current_exercise
        state = self.state
        total = len(self.plan)
        set_progress = 0.0
        if exercise:
            set_progress = min(1.0, state.currentSet / exercise.defaultSets)
        return WorkoutState(
            runState=state,
            exercise=exercise,
            mode=self.mode.mode,
            currentExerciseIndex=self.index,
            totalExercises=total,
            isFirst=self.is_first,
            isLast=self.is_last,
            isFinished=self.finished,
            instruction=get_instruction(state, self.mode.mode),
            caption=get_caption(state, exercise, self.mode.mode),
            exerciseProgress=(self.index / total) if total else 0.0,
            setProgress=set_progress,
            breathingPattern=self.breathing_pattern,
        )

    def snapshot(self, **ui_fields) -> StateSnapshot:
        """Build the persistable snapshot; UI-only fields (selection, location...) are passed through"""
        program = self.program
        if program is None and self.plan:
            program = Program(id="custom-mixed", name="Custom", description="Custom Mixed Program", exercises=self.plan)
        return StateSnapshot(
            activeProgram=program,
            activeMode=self.mode.mode,
            currentExerciseIndex=self.index,
            breathingPattern=self.breathing_pattern,
            **ui_fields,
        )

    def restore(self, snapshot: StateSnapshot) -> Optional[RunState]:
        """Rebuild the session from a stored snapshot; the restored exercise starts idle"""
        self.breathing_pattern = snapshot.breathingPattern
        if not snapshot.activeProgram or not snapshot.activeProgram.exercises:
            self.close()
            return None
        self.start(snapshot.activeProgram, snapshot.activeMode)
        index = min(max(0, snapshot.currentExerciseIndex), len(self.plan) - 1)
        if index != self.index:
            self._dispose_engine()
            self.index = index
            self._load_exercise(active=False)
        logger.info(f"Session restored at exercise {self.index + 1}/{len(self.plan)}")
        return self.engine.state

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _accepting(self, action: str) -> bool:
        if self.engine is None:
            logger.warning(f"{action} ignored: no session started")
            return False
        if self.finished:
            logger.info(f"{action} ignored: session already finished")
            return False
        return True

    def _load_exercise(self, active: bool):
        self.engine = TimerEngine(
            exercise=self.current_exercise,
            scheduler=self.scheduler,
            pattern_provider=lambda: self.breathing_pattern,
            is_last=self.is_last,
            on_next=self.next,
            on_finish=self.finish,
            on_change=self.on_change,
            active=active,
            countdown_seconds=self.countdown_seconds,
        )

    def _dispose_engine(self):
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
