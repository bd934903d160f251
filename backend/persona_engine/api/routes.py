import logging
import os
import sys
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Optional

import psutil
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from .. import __version__
from ..config import settings
from ..core import (
    InvalidOptionIndexError, QuizGraph, Session, SessionAlreadyTerminalError,
    SessionStore, current_node, deserialize_session, serialize_session,
    session_progress, submit_answer
)

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "Personality Quiz Engine"


# REQUEST MODELS

class StartQuizRequest(BaseModel):
    session_id: Optional[str] = Field(None, min_length=1, max_length=128)


class AnswerRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    option_index: int = Field(..., description="Zero-based index into the current node's options")


class ImportSessionRequest(BaseModel):
    blob: str = Field(..., min_length=2)


# DEPENDENCIES

def get_graph(request: Request) -> QuizGraph:
    graph = getattr(request.app.state, "graph", None)
    if graph is None:
        raise HTTPException(status_code=503, detail="Quiz graph is not loaded")
    return graph


def get_session_store(request: Request) -> SessionStore:
    store = getattr(request.app.state, "session_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Session store is not initialized")
    return store


def _session_state(session: Session) -> Dict[str, Any]:
    """Common response body describing where a session stands"""
    data: Dict[str, Any] = {
        "session_id": session.session_id,
        "progress": session_progress(session)
    }
    if session.is_terminal:
        data["profile"] = session.profile.model_dump(mode="json")
    else:
        data["node"] = current_node(session).model_dump()
    return data


# QUIZ ENDPOINTS

@router.post("/quiz/start")
async def start_quiz(request: Optional[StartQuizRequest] = None,
                     store: SessionStore = Depends(get_session_store)):
    """Start a new quiz session at the graph root"""
    session_id = request.session_id if request else None
    if session_id and session_id in store.sessions:
        raise HTTPException(
            status_code=409,
            detail=f"Session {session_id} already exists"
        )

    session = store.create(session_id)
    logger.info(f"Started quiz session {session.session_id}")
    return _session_state(session)


@router.post("/quiz/answer")
async def answer_question(request: AnswerRequest,
                          store: SessionStore = Depends(get_session_store)):
    """Submit one answer and get the next question or the finished profile"""
    session = store.get(request.session_id)

    try:
        with store.session_lock(session.session_id):
            transition = submit_answer(session, request.option_index)

    except InvalidOptionIndexError as e:
        raise HTTPException(
            status_code=400,
            detail={
                "error_type": "invalid_option",
                "message": str(e),
                "node": current_node(session).model_dump()
            }
        )
    except SessionAlreadyTerminalError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "error_type": "session_complete",
                "message": str(e),
                "profile": session.profile.model_dump(mode="json")
            }
        )

    response: Dict[str, Any] = {
        "session_id": session.session_id,
        "kind": transition.kind,
        "progress": session_progress(session)
    }
    if transition.kind == "continue":
        response["node"] = transition.node.model_dump()
    else:
        response["terminal"] = transition.terminal.model_dump(mode="json")
        response["profile"] = transition.profile.model_dump(mode="json")

    return response


@router.get("/quiz/status/{session_id}")
async def get_session_status(session_id: str,
                             store: SessionStore = Depends(get_session_store)):
    session = store.get(session_id)
    data = _session_state(session)
    data.update({
        "state": "complete" if session.is_terminal else "in_progress",
        "created_at": session.created_at.isoformat(),
        "last_activity": session.last_activity.isoformat()
    })
    return data


@router.get("/quiz/profile/{session_id}")
async def get_profile(session_id: str,
                      store: SessionStore = Depends(get_session_store)):
    """Finished profile of a completed session"""
    session = store.get(session_id)
    if not session.is_terminal:
        raise HTTPException(
            status_code=409,
            detail={
                "error_type": "session_incomplete",
                "message": f"Session {session_id} has not reached a result yet",
                "node": current_node(session).model_dump()
            }
        )
    return session.profile.model_dump(mode="json")


@router.get("/quiz/session/{session_id}/export")
async def export_session(session_id: str,
                         store: SessionStore = Depends(get_session_store)):
    """Serialize a session so it can be resumed later or elsewhere"""
    session = store.get(session_id)
    return {"session_id": session_id, "blob": serialize_session(session)}


@router.post("/quiz/session/import")
async def import_session(request: ImportSessionRequest,
                         graph: QuizGraph = Depends(get_graph),
                         store: SessionStore = Depends(get_session_store)):
    """Restore an exported session and make it active again"""
    session = deserialize_session(request.blob, graph)
    if session.session_id in store.sessions:
        raise HTTPException(
            status_code=409,
            detail=f"Session {session.session_id} already exists"
        )

    store.put(session)
    logger.info(f"Imported session {session.session_id}")
    return _session_state(session)


@router.get("/quiz/graph")
async def get_graph_summary(graph: QuizGraph = Depends(get_graph)):
    return graph.summary()


# MONITORING ENDPOINTS

@router.get("/health")
async def health_check(graph: QuizGraph = Depends(get_graph),
                       store: SessionStore = Depends(get_session_store)):
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": SERVICE_NAME,
        "version": __version__,
        "components": {
            "graph_nodes": len(graph.nodes),
            "graph_fingerprint": graph.fingerprint,
            "active_sessions": len(store.sessions)
        },
        "configuration": {
            "dominant_trait_count": store.dominant_count,
            "low_threshold": store.low_threshold,
            "high_threshold": store.high_threshold,
            "max_active_sessions": store.max_sessions
        }
    }


@router.get("/health/detailed")
async def detailed_health_check(graph: QuizGraph = Depends(get_graph),
                                store: SessionStore = Depends(get_session_store)):
    """Detailed health check with process and system metrics"""
    try:
        memory = psutil.virtual_memory()
        process = psutil.Process(os.getpid())

        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "system": {
                "memory_percent": memory.percent,
                "memory_available_gb": round(memory.available / (1024 ** 3), 2),
                "cpu_count": psutil.cpu_count(),
                "process_rss_mb": round(process.memory_info().rss / (1024 ** 2), 1),
                "python_version": f"{sys.version_info.major}.{sys.version_info.minor}"
            },
            "graph": graph.summary(),
            "sessions": {
                "active": len(store.sessions),
                "capacity": store.max_sessions
            }
        }

    except psutil.Error as e:
        logger.error(f"Detailed health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service unhealthy: {e}"
        )


@router.get("/stats")
async def get_usage_statistics(store: SessionStore = Depends(get_session_store)):
    """Session and personality statistics"""
    sessions = store.list_sessions()
    completed = [s for s in sessions if s.is_terminal]
    in_progress = [s for s in sessions if not s.is_terminal]

    personality_counts = Counter(s.profile.personality_type for s in completed)
    answer_counts = [s.questions_answered for s in completed]
    average_answers = sum(answer_counts) / len(answer_counts) if answer_counts else 0
    completion_rate = len(completed) / len(sessions) if sessions else 0

    return {
        "summary": {
            "total_sessions": len(sessions),
            "completed_sessions": len(completed),
            "active_sessions": len(in_progress),
            "completion_rate": round(completion_rate, 3)
        },
        "metrics": {
            "average_answers_per_completed_session": round(average_answers, 1)
        },
        "popular_personalities": personality_counts.most_common(5),
        "timestamp": datetime.now().isoformat()
    }


@router.post("/admin/cleanup")
async def cleanup_sessions(max_age_hours: int = Query(settings.SESSION_MAX_AGE_HOURS, ge=1, le=168),
                           store: SessionStore = Depends(get_session_store)):
    """Remove sessions idle for longer than max_age_hours"""
    removed = store.cleanup_expired_sessions(max_age_hours)
    logger.info(f"Session cleanup: removed {removed} sessions older than {max_age_hours}h")

    return {
        "sessions_removed": removed,
        "sessions_remaining": len(store.sessions),
        "max_age_hours": max_age_hours,
        "timestamp": datetime.now().isoformat()
    }
