# duration.py
from typing import Iterable

from models.schemas import BreathingPattern, DurationEstimate, Exercise


def estimate_duration(exercises: Iterable[Exercise], pattern: BreathingPattern) -> DurationEstimate:
    """
    Rough total workout length shown before starting.
    Every set counts its reps at one breathing cycle each plus a full rest.
    """
    total = 0.0
    for exercise in exercises:
        active_time = exercise.defaultSets * exercise.defaultReps * pattern.cycle_seconds
        rest_time = exercise.defaultSets * exercise.defaultRest
        total += active_time + rest_time
    return DurationEstimate(totalSeconds=total, minutes=int(total // 60))
