# app/main.py

import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from posealign.activities.pose_profiles import (
    UnknownPoseError, aliases_for, list_profiles, resolve_pose_id,
)
from posealign.analysis.session_tracker import SessionTracker
from posealign.backends.keypoint_adapter import keypoints_from_movenet
from posealign.config import ScoringConfig
from posealign.data_models import (
    FrameOutcome, PoseListing, ScoreFrameRequest, SessionSummary,
    StartSessionRequest, StartSessionResponse, Skipped,
)
from posealign.pose_engine import PoseScoringEngine

logging.basicConfig(level=os.getenv("POSEALIGN_LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

# Sessions untouched for this long are dropped on the next request
SESSION_IDLE_SECONDS = float(os.getenv("POSEALIGN_SESSION_IDLE_SECONDS", "900"))

# --- APP SETUP ---
app = FastAPI(title="PoseAlign")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- GLOBAL STATE ---
@dataclass
class PracticeSession:
    pose_key: str
    engine: PoseScoringEngine
    tracker: SessionTracker
    # Server clock; client frame timestamps are not comparable across sessions
    touched: float = field(default_factory=time.monotonic)


# One engine per session; engines are never shared between streams
sessions: Dict[str, PracticeSession] = {}


def evict_idle_sessions(now: Optional[float] = None) -> List[str]:
    now = time.monotonic() if now is None else now
    stale = [sid for sid, s in sessions.items() if now - s.touched > SESSION_IDLE_SECONDS]
    for sid in stale:
        summary = sessions.pop(sid).tracker.summary()
        logger.info("[Sessions] Evicted idle %s after %d frames", sid, summary.frames)
    return stale


def _get_session(session_id: str) -> PracticeSession:
    evict_idle_sessions()
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    session.touched = time.monotonic()
    return session


# --- ENDPOINTS ---
@app.get("/poses", response_model=List[PoseListing])
async def get_poses():
    return [
        PoseListing(
            key=p.key,
            label=p.label,
            aliases=aliases_for(p.key),
            joints=[c.name for c in p.checks],
        )
        for p in list_profiles()
    ]


@app.post("/sessions", response_model=StartSessionResponse)
async def start_session(req: StartSessionRequest):
    try:
        pose_key = resolve_pose_id(req.pose_id)
    except UnknownPoseError as e:
        raise HTTPException(status_code=404, detail=str(e))

    evict_idle_sessions()
    session_id = uuid.uuid4().hex
    sessions[session_id] = PracticeSession(
        pose_key=pose_key,
        engine=PoseScoringEngine(ScoringConfig.from_env()),
        tracker=SessionTracker(pose_key=pose_key),
    )
    logger.info("[Sessions] Started %s for %s", session_id, pose_key)
    return StartSessionResponse(session_id=session_id, pose_key=pose_key)


@app.post("/sessions/{session_id}/frames", response_model=FrameOutcome)
async def score_frame(session_id: str, req: ScoreFrameRequest):
    session = _get_session(session_id)
    keypoints = req.keypoints
    if req.movenet_output is not None:
        try:
            keypoints = keypoints_from_movenet(req.movenet_output, frame_size=req.frame_size)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

    outcome = session.engine.process(keypoints, req.pose_id or session.pose_key, now_ms=req.timestamp_ms)
    if not isinstance(outcome, Skipped):
        ts = req.timestamp_ms / 1000.0 if req.timestamp_ms is not None else time.time()
        session.tracker.record(outcome.result, timestamp=ts)
    return outcome


@app.get("/sessions/{session_id}/summary", response_model=SessionSummary)
async def session_summary(session_id: str):
    return _get_session(session_id).tracker.summary()


@app.delete("/sessions/{session_id}", response_model=SessionSummary)
async def end_session(session_id: str):
    session = _get_session(session_id)
    summary = session.tracker.summary()
    del sessions[session_id]
    logger.info("[Sessions] Ended %s after %d frames", session_id, summary.frames)
    return summary


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=int(os.getenv("PORT", "8000")))
