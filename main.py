# main.py
import time
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import config
from utils.logging_utils import logger
from utils.duration import estimate_duration
from services.scheduler import AsyncioScheduler
from services.state_store import state_store
from models.exceptions import InvalidDurationError, InvalidPlanError, PlanLockedError
from models.schemas import (
    AdjustBreathingRequest,
    AdjustExerciseRequest,
    BreathingPattern,
    Exercise,
    Phase,
    DurationEstimate,
    EstimateRequest,
    StartSessionRequest,
    StateSnapshot,
    WorkoutState,
)
from models.workout_session import WorkoutSession

logger.info(f"Starting in: {config.mode_description}")

# Initialize FastAPI application with dynamic title based on mode
app = FastAPI(title=f"FlowLift Workout Player - {config.mode_description}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# Session storage; one player per client, single consumer each
workout_sessions: Dict[str, WorkoutSession] = {}

# UI-only snapshot fields (program selection, location, equipment) kept opaque here
ui_state: Dict[str, Any] = {}

UI_FIELDS = ("selectedPrograms", "isCustomizing", "location", "selectedEquipment")


def persist_state(session_id: str = "default"):
    """Save the current snapshot after any navigation change"""
    session = workout_sessions.get(session_id)
    if session is not None:
        state_store.save(session.snapshot(**ui_state))


def finish_callback(session_id: str = "default"):
    logger.info(f"Session {session_id}: workout complete")
    persist_state(session_id)


def get_session(session_id: str = "default") -> WorkoutSession:
    """Retrieve or create the player for a client"""
    if session_id not in workout_sessions:
        workout_sessions[session_id] = WorkoutSession(
            scheduler=AsyncioScheduler(),
            on_next=lambda: persist_state(session_id),
            on_prev=lambda: persist_state(session_id),
            on_finish=lambda: finish_callback(session_id),
        )
    return workout_sessions[session_id]


def require_session(session_id: str = "default") -> WorkoutSession:
    session = get_session(session_id)
    if not session.has_session:
        raise HTTPException(status_code=404, detail="No workout in progress")
    return session


@app.on_event("startup")
async def startup_event():
    """Rebuild the player from the last stored snapshot, if any"""
    snapshot = state_store.load()
    if snapshot is None:
        logger.info("No stored state, starting fresh")
        return
    ui_state.update(snapshot.model_dump(include=set(UI_FIELDS)))
    get_session().restore(snapshot)


@app.on_event("shutdown")
async def shutdown_event():
    """Cancel outstanding timers so nothing fires into a closed loop"""
    for session_id, session in workout_sessions.items():
        persist_state(session_id)
        session.close()


@app.get("/health")
async def health_check():
    """Simple health check endpoint for service monitoring"""
    return {"status": "healthy", "timestamp": time.time()}


@app.post("/session/start", response_model=WorkoutState)
async def start_session(request: StartSessionRequest):
    """Start a new workout from a program or an ordered list of exercises"""
    session = get_session()
    plan = request.program if request.program is not None else request.exercises
    try:
        session.start(plan, request.mode)
    except InvalidPlanError as e:
        logger.warning(f"Rejected session start: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    persist_state()
    return session.status()


@app.get("/session/state", response_model=WorkoutState)
async def session_state():
    return get_session().status()


@app.post("/session/next", response_model=WorkoutState)
async def next_exercise():
    session = require_session()
    session.next()
    return session.status()


@app.post("/session/prev", response_model=WorkoutState)
async def prev_exercise():
    session = require_session()
    session.prev()
    return session.status()


@app.post("/session/finish", response_model=WorkoutState)
async def finish_session():
    session = require_session()
    session.finish()
    persist_state()
    return session.status()


@app.post("/session/toggle", response_model=WorkoutState)
async def toggle_play():
    """Play/pause control: starts the get-ready countdown or pauses"""
    session = require_session()
    session.toggle()
    return session.status()


@app.post("/session/pause", response_model=WorkoutState)
async def pause_session():
    session = require_session()
    session.pause()
    return session.status()


@app.post("/session/resume", response_model=WorkoutState)
async def resume_session():
    session = require_session()
    session.resume()
    return session.status()


@app.post("/session/reset", response_model=WorkoutState)
async def reset_exercise():
    """Restart the current exercise from its first set"""
    session = require_session()
    session.reset()
    persist_state()
    return session.status()


@app.post("/session/skip_rest", response_model=WorkoutState)
async def skip_rest():
    session = require_session()
    session.skip_rest()
    return session.status()


@app.post("/session/complete_set", response_model=WorkoutState)
async def complete_set():
    """Manual mode: the user finished a set"""
    session = require_session()
    session.complete_set()
    return session.status()


@app.put("/breathing", response_model=BreathingPattern)
async def update_breathing(pattern: BreathingPattern):
    """Settings surface: each phase must lie within the configured range"""
    try:
        pattern.validate_settings()
    except InvalidDurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    get_session().set_breathing_pattern(pattern)
    persist_state()
    return pattern


@app.post("/breathing/adjust", response_model=BreathingPattern)
async def adjust_breathing(request: AdjustBreathingRequest):
    """Step one breathing phase by delta seconds, clamped to the settings range"""
    pattern = get_session().adjust_breathing(Phase(request.phase), request.delta)
    persist_state()
    return pattern


@app.post("/exercise/adjust", response_model=Exercise)
async def adjust_exercise(request: AdjustExerciseRequest):
    """Tune sets, reps or rest on a draft exercise before the workout starts"""
    try:
        return get_session().adjust_target(request.exercise, request.field, request.delta)
    except PlanLockedError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.post("/estimate", response_model=DurationEstimate)
async def estimate(request: EstimateRequest):
    """Estimated workout length for a prospective plan"""
    pattern = request.breathingPattern or get_session().breathing_pattern
    return estimate_duration(request.exercises, pattern)


@app.get("/snapshot", response_model=StateSnapshot)
async def get_snapshot():
    return get_session().snapshot(**ui_state)


@app.put("/snapshot", response_model=StateSnapshot)
async def put_snapshot(snapshot: StateSnapshot):
    """Replace the stored state wholesale and rebuild the player from it"""
    ui_state.update(snapshot.model_dump(include=set(UI_FIELDS)))
    session = get_session()
    session.restore(snapshot)
    state_store.save(snapshot)
    return session.snapshot(**ui_state)
