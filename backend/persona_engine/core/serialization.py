import logging
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ValidationError

from .errors import InvalidOptionIndexError, SessionRestoreError
from .models import PathStep, QuizGraph, Session
from .traversal import create_session, submit_answer

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class SessionSnapshot(BaseModel):
    """Wire form of a session; the graph itself is referenced by fingerprint"""
    version: int
    graph_fingerprint: str
    session_id: str
    current_node_id: str
    path: List[PathStep]
    raw_scores: Dict[str, float]
    dominant_count: int
    low_threshold: float
    high_threshold: float
    created_at: datetime
    last_activity: datetime
    completed_at: Optional[datetime] = None


def serialize_session(session: Session) -> str:
    """Encode a session (in progress or finished) as a JSON string"""
    snapshot = SessionSnapshot(
        version=FORMAT_VERSION,
        graph_fingerprint=session.graph.fingerprint,
        session_id=session.session_id,
        current_node_id=session.current_node_id,
        path=list(session.path),
        raw_scores=dict(session.raw_scores),
        dominant_count=session.dominant_count,
        low_threshold=session.low_threshold,
        high_threshold=session.high_threshold,
        created_at=session.created_at,
        last_activity=session.last_activity,
        completed_at=session.completed_at
    )
    return snapshot.model_dump_json()


def deserialize_session(blob: str, graph: QuizGraph) -> Session:
    """
    Rebuild a session from serialize_session output.

    The recorded path is replayed through submit_answer on a fresh session, so
    the restored session is exactly what an uninterrupted run would hold. The
    recorded position and raw scores must agree with the replay.

    Raises:
        SessionRestoreError: malformed blob, other graph, or inconsistent state
    """
    try:
        snapshot = SessionSnapshot.model_validate_json(blob)
    except ValidationError as e:
        raise SessionRestoreError(f"Malformed session blob: {e.error_count()} errors") from e

    if snapshot.version != FORMAT_VERSION:
        raise SessionRestoreError(f"Unsupported session format version {snapshot.version}")

    if snapshot.graph_fingerprint != graph.fingerprint:
        raise SessionRestoreError(
            f"Session {snapshot.session_id} was created on a different quiz graph"
        )

    try:
        session = create_session(
            graph,
            session_id=snapshot.session_id,
            dominant_count=snapshot.dominant_count,
            low_threshold=snapshot.low_threshold,
            high_threshold=snapshot.high_threshold
        )
    except ValidationError as e:
        raise SessionRestoreError(f"Invalid session parameters: {e.error_count()} errors") from e

    for index, step in enumerate(snapshot.path):
        if session.is_terminal:
            raise SessionRestoreError(f"Path continues after the terminal answer at step {index}")

        if step.node_id != session.current_node_id:
            raise SessionRestoreError(
                f"Path step {index} is at node '{step.node_id}', "
                f"replay is at '{session.current_node_id}'"
            )

        try:
            submit_answer(session, step.option_index)
        except InvalidOptionIndexError as e:
            raise SessionRestoreError(f"Path step {index}: {e}") from e

        if session.path[-1] != step:
            raise SessionRestoreError(f"Path step {index} does not match the graph's text")

    if session.current_node_id != snapshot.current_node_id:
        raise SessionRestoreError(
            f"Recorded node '{snapshot.current_node_id}' disagrees with replayed "
            f"node '{session.current_node_id}'"
        )

    if session.raw_scores != snapshot.raw_scores:
        raise SessionRestoreError("Recorded raw scores disagree with the replayed path")

    session.created_at = snapshot.created_at
    session.last_activity = snapshot.last_activity
    if session.is_terminal:
        session.completed_at = snapshot.completed_at

    logger.info(
        f"Restored session {session.session_id} with {len(session.path)} answers "
        f"at node {session.current_node_id}"
    )
    return session
