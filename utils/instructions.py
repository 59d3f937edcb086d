# instructions.py
from typing import Optional

from models.schemas import Exercise, Phase, RunState, WorkoutMode

PHASE_INSTRUCTIONS = {
    Phase.inhale: "Breathe in",
    Phase.holdIn: "Hold (full)",
    Phase.exhale: "Breathe out",
    Phase.holdOut: "Hold (empty)",
    Phase.rest: "Rest",
}


def get_instruction(state: RunState, mode: WorkoutMode = WorkoutMode.timed) -> str:
    """
    Headline shown inside the breathing circle.
    Returns "Ready?" while idle, the countdown while getting ready, otherwise the phase cue.
    """
    if mode == WorkoutMode.manual:
        return "Complete your set"
    if state.countdown is not None:
        return f"Get ready... {state.countdown}"
    if not state.isActive:
        return "Ready?"
    return PHASE_INSTRUCTIONS[state.phase]


def get_caption(state: RunState, exercise: Optional[Exercise], mode: WorkoutMode = WorkoutMode.timed) -> str:
    """Secondary line: reps or sets done, or the rest countdown with what comes after it"""
    if exercise is None:
        return ""
    if mode == WorkoutMode.manual:
        return f"{state.currentSet}/{exercise.defaultSets} sets done"
    if state.phase == Phase.rest:
        # The rest after the final set leads into the next exercise
        if state.currentSet >= exercise.defaultSets - 1:
            label = "Next exercise coming up..."
        else:
            label = "Rest between sets"
        return f"{label} {state.restTimeLeft}s"
    return f"{state.reps}/{exercise.defaultReps} reps"
