import pytest

from config import config
from models.schemas import BreathingPattern, Exercise
from models.timer_engine import TimerEngine
from services.scheduler import SimulatedScheduler

PATTERN = BreathingPattern(inhale=2, holdIn=1, exhale=2, holdOut=2)


class Recorder:
    """on_change sink that remembers when each run state was published"""

    def __init__(self, scheduler):
        self.scheduler = scheduler
        self.states = []

    def __call__(self, state):
        self.states.append((self.scheduler.now(), state))

    def phase_changes(self):
        changes = []
        last = None
        for when, state in self.states:
            if state.phase != last:
                changes.append((when, state.phase.value, state.reps, state.currentSet))
                last = state.phase
        return changes


def make_exercise(exercise_id="squat", sets=2, reps=2, rest=10):
    return Exercise(id=exercise_id, name=exercise_id.title(), defaultSets=sets, defaultReps=reps, defaultRest=rest)


def make_engine(scheduler, exercise=None, pattern=PATTERN, **kwargs):
    kwargs.setdefault("countdown_seconds", 5)
    return TimerEngine(
        exercise=exercise or make_exercise(),
        scheduler=scheduler,
        pattern_provider=lambda: pattern,
        **kwargs,
    )


def begin(engine, scheduler):
    """Press play and sit through the get-ready countdown"""
    engine.start()
    scheduler.advance(engine.countdown_seconds)


@pytest.fixture
def scheduler():
    return SimulatedScheduler()


@pytest.fixture
def recorder(scheduler):
    return Recorder(scheduler)


@pytest.fixture(autouse=True)
def isolated_state_file(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "state_file", tmp_path / "flowlift_state.json")
    monkeypatch.setattr(config, "save_state", True)
    monkeypatch.setattr(config, "countdown_seconds", 5)
