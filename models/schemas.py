# schemas.py
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from config import config
from models.exceptions import InvalidDurationError


class Phase(str, Enum):
    """Engine phases: the four breathing steps plus rest between sets/exercises."""
    inhale = "inhale"
    holdIn = "holdIn"
    exhale = "exhale"
    holdOut = "holdOut"
    rest = "rest"


BREATHING_PHASES = (Phase.inhale, Phase.holdIn, Phase.exhale, Phase.holdOut)


class WorkoutMode(str, Enum):
    """Advancement strategy, fixed for the duration of a session."""
    timed = "timed"
    manual = "manual"


class BreathingPattern(BaseModel):
    """
    Seconds spent in each of the four breathing phases.
    Replaced wholesale when the user edits it; the engine reads it again on every phase transition.
    """
    model_config = ConfigDict(frozen=True)

    inhale: float = 2.0
    holdIn: float = 1.0
    exhale: float = 2.0
    holdOut: float = 2.0

    @classmethod
    def default(cls) -> "BreathingPattern":
        return cls(**config.default_breathing)

    def duration_of(self, phase: Phase) -> float:
        """Configured seconds for a breathing phase (rest is not part of the pattern)"""
        if phase not in BREATHING_PHASES:
            raise ValueError(f"{phase} is not a breathing phase")
        return getattr(self, phase.value)

    @property
    def cycle_seconds(self) -> float:
        """Duration of one full rep: inhale + holdIn + exhale + holdOut"""
        return self.inhale + self.holdIn + self.exhale + self.holdOut

    def adjust(self, phase: Phase, delta: float) -> "BreathingPattern":
        """Step a phase up or down, clamped to the settings range"""
        value = self.duration_of(phase) + delta
        value = min(config.breathing_max, max(config.breathing_min, value))
        return self.model_copy(update={phase.value: value})

    def validate_settings(self) -> "BreathingPattern":
        """
        Check the pattern against the settings surface limits.
        Programmatic patterns skip this; the engine clamps whatever it is given.
        """
        for phase in BREATHING_PHASES:
            value = self.duration_of(phase)
            if not config.breathing_min <= value <= config.breathing_max:
                raise InvalidDurationError(
                    phase.value, value,
                    f"{phase.value} must be between {config.breathing_min} and {config.breathing_max} seconds"
                )
        return self


class Exercise(BaseModel):
    """
    Exercise descriptor from the program catalog.
    Targets may be tuned before a session starts and are read-only afterwards.
    """
    id: str
    name: str = ""
    description: str = ""
    equipment: List[str] = []
    defaultSets: int = Field(1, ge=1)           # Target number of sets
    defaultReps: int = Field(1, ge=1)           # Breathing cycles per set
    defaultRest: int = Field(0, ge=0)           # Rest after each set (seconds)

    def adjust(self, field: Literal["defaultSets", "defaultReps", "defaultRest"], delta: int) -> "Exercise":
        """Return a copy with one target nudged by delta; sets/reps floor at 1, rest at 0"""
        floor = 0 if field == "defaultRest" else 1
        return self.model_copy(update={field: max(floor, getattr(self, field) + delta)})


class Program(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    exercises: List[Exercise] = []


class RunState(BaseModel):
    """
    Per-exercise progress owned by the timer engine.
    Frozen: every change produces a new instance so a stale timer can never write into it.
    """
    model_config = ConfigDict(frozen=True)

    phase: Phase = Phase.inhale
    currentSet: int = 0                         # Completed-set counter, 0-based
    reps: int = 0                               # Completed reps within the current set
    restTimeLeft: int = 0                       # Seconds left, meaningful only in rest
    countdown: Optional[int] = None             # Get-ready pre-roll, None when inactive
    isActive: bool = False                      # Whether the engine is advancing time


class StateSnapshot(BaseModel):
    """
    Everything the surrounding application persists between visits.
    Session and run state are rebuilt from it on resume.
    """
    selectedPrograms: List[Program] = []
    isCustomizing: bool = False
    activeProgram: Optional[Program] = None
    activeMode: WorkoutMode = WorkoutMode.timed
    currentExerciseIndex: int = 0
    breathingPattern: BreathingPattern = Field(default_factory=BreathingPattern.default)
    location: Literal["home", "gym"] = "home"
    selectedEquipment: List[str] = ["bodyweight", "dumbbell", "bench"]

    @model_validator(mode="before")
    @classmethod
    def migrate_single_program(cls, data: Any) -> Any:
        # Older snapshots stored one selectedProgram instead of a list
        if isinstance(data, dict) and "selectedPrograms" not in data and data.get("selectedProgram"):
            data = dict(data)
            data["selectedPrograms"] = [data.pop("selectedProgram")]
        return data


class WorkoutState(BaseModel):
    """
    Pydantic model representing the player state returned to clients.
    Contains the run state, the active exercise, navigation flags, and display text.
    """
    runState: RunState = Field(default_factory=RunState)
    exercise: Optional[Exercise] = None
    mode: WorkoutMode = WorkoutMode.timed
    currentExerciseIndex: int = 0
    totalExercises: int = 0
    isFirst: bool = True
    isLast: bool = True
    isFinished: bool = False
    instruction: str = "Ready?"                 # Headline for the breathing circle
    caption: str = ""                           # Secondary line (reps done / rest seconds)
    exerciseProgress: float = 0.0               # Completed exercises / total
    setProgress: float = 0.0                    # Completed sets / target sets
    breathingPattern: BreathingPattern = Field(default_factory=BreathingPattern.default)


class StartSessionRequest(BaseModel):
    exercises: List[Exercise] = []
    program: Optional[Program] = None
    mode: WorkoutMode = WorkoutMode.timed


class EstimateRequest(BaseModel):
    exercises: List[Exercise] = []
    breathingPattern: Optional[BreathingPattern] = None


class DurationEstimate(BaseModel):
    totalSeconds: float = 0.0
    minutes: int = 0


class AdjustExerciseRequest(BaseModel):
    exercise: Exercise
    field: Literal["defaultSets", "defaultReps", "defaultRest"]
    delta: int


class AdjustBreathingRequest(BaseModel):
    phase: Literal["inhale", "holdIn", "exhale", "holdOut"]
    delta: float
