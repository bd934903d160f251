import logging
from datetime import datetime
from typing import Any, Dict, Optional

from .accumulator import merge
from .classifier import DEFAULT_DOMINANT_COUNT, HIGH_THRESHOLD, LOW_THRESHOLD, classify
from .errors import InvalidOptionIndexError, SessionAlreadyTerminalError
from .models import NodeView, PathStep, QuizGraph, Session, TransitionResult, TERMINAL
from .normalizer import normalize
from .resolver import resolve

logger = logging.getLogger(__name__)


def create_session(graph: QuizGraph,
                   session_id: Optional[str] = None,
                   dominant_count: int = DEFAULT_DOMINANT_COUNT,
                   low_threshold: float = LOW_THRESHOLD,
                   high_threshold: float = HIGH_THRESHOLD) -> Session:
    """
    Start a new walk at the graph's root.

    The classification parameters are pinned on the session so that a
    session restored elsewhere finishes with exactly the same profile.
    """
    session = Session(
        graph=graph,
        current_node_id=graph.root_id,
        dominant_count=dominant_count,
        low_threshold=low_threshold,
        high_threshold=high_threshold
    )
    if session_id:
        session.session_id = session_id

    logger.info(f"Created quiz session {session.session_id} at node {graph.root_id}")
    return session


def current_node(session: Session) -> NodeView:
    """Question the session is waiting on"""
    if session.is_terminal:
        raise SessionAlreadyTerminalError(session.session_id)
    return session.graph.node(session.current_node_id).to_view()


def submit_answer(session: Session, option_index: int) -> TransitionResult:
    """
    Apply one answer to the session.

    Validation happens before anything is touched, so a rejected call leaves
    the session exactly as it was.

    Args:
        session: Session to advance
        option_index: Zero-based index into the current node's options

    Returns:
        TransitionResult of kind "continue" with the next node, or of kind
        "done" with the terminal identity and the finished profile

    Raises:
        SessionAlreadyTerminalError: session already reached TERMINAL
        InvalidOptionIndexError: index is not a valid option position
    """
    if session.is_terminal:
        raise SessionAlreadyTerminalError(session.session_id)

    node = session.graph.node(session.current_node_id)
    if (isinstance(option_index, bool) or not isinstance(option_index, int)
            or not 0 <= option_index < len(node.options)):
        logger.warning(
            f"Session {session.session_id}: rejected option {option_index!r} "
            f"at node {node.node_id}"
        )
        raise InvalidOptionIndexError(node.node_id, option_index, len(node.options))

    option = node.options[option_index]
    step = PathStep(
        node_id=node.node_id,
        option_index=option_index,
        question=node.question,
        answer_text=option.answer_text
    )

    path = session.path + [step]
    raw_scores = merge(dict(session.raw_scores), option.weights)

    if not option.is_terminal:
        session.path = path
        session.raw_scores = raw_scores
        session.current_node_id = option.next_id
        session.update_activity()
        logger.debug(
            f"Session {session.session_id}: {node.node_id}[{option_index}] -> {option.next_id}"
        )
        return TransitionResult(kind="continue", node=session.graph.node(option.next_id).to_view())

    # The session is only touched once the profile has been built
    staged = session.model_copy(update={"path": path, "raw_scores": raw_scores})
    normalized = normalize(raw_scores)
    levels = classify(normalized, session.low_threshold, session.high_threshold)
    profile = resolve(staged, option.result, normalized, levels, session.dominant_count)

    session.path = path
    session.raw_scores = raw_scores
    session.current_node_id = TERMINAL
    session.profile = profile
    session.completed_at = datetime.now()
    session.update_activity()

    logger.info(
        f"Session {session.session_id} complete after {len(session.path)} answers: "
        f"{session.profile.personality_type}"
    )
    return TransitionResult(kind="done", terminal=option.result, profile=session.profile)


def session_progress(session: Session) -> Dict[str, Any]:
    """Progress summary derived from the graph's remaining-depth tables"""
    answered = len(session.path)

    if session.is_terminal:
        remaining_min = remaining_max = 0
    else:
        remaining_min = session.graph.min_remaining[session.current_node_id]
        remaining_max = session.graph.max_remaining[session.current_node_id]

    estimated_total = answered + remaining_max
    progress = answered / estimated_total if estimated_total else 1.0

    return {
        "questions_answered": answered,
        "remaining_min": remaining_min,
        "remaining_max": remaining_max,
        "estimated_total": estimated_total,
        "progress_percentage": round(progress * 100, 1),
        "is_complete": session.is_terminal
    }
