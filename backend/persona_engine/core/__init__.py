from .accumulator import accumulate, merge
from .classifier import (
    DEFAULT_DOMINANT_COUNT, HIGH_THRESHOLD, LOW_THRESHOLD,
    classify, dominant_traits, level_for
)
from .errors import (
    GraphValidationError, InvalidOptionIndexError, QuizEngineError,
    SessionAlreadyTerminalError, SessionNotFoundError, SessionRestoreError
)
from .graph_store import load_graph, load_graph_file
from .legacy import convert_nested_tree, parse_result_label
from .models import (
    TERMINAL, NodeView, PathStep, PersonalityProfile, ProfileScores, QuizGraph,
    QuizNode, QuizOption, Session, TerminalResult, TraitLevel, TransitionResult
)
from .normalizer import normalize
from .resolver import resolve
from .serialization import deserialize_session, serialize_session
from .session_store import SessionStore
from .traversal import create_session, current_node, session_progress, submit_answer

__all__ = [
    "accumulate", "merge",
    "DEFAULT_DOMINANT_COUNT", "HIGH_THRESHOLD", "LOW_THRESHOLD",
    "classify", "dominant_traits", "level_for",
    "GraphValidationError", "InvalidOptionIndexError", "QuizEngineError",
    "SessionAlreadyTerminalError", "SessionNotFoundError", "SessionRestoreError",
    "load_graph", "load_graph_file",
    "convert_nested_tree", "parse_result_label",
    "TERMINAL", "NodeView", "PathStep", "PersonalityProfile", "ProfileScores",
    "QuizGraph", "QuizNode", "QuizOption", "Session", "TerminalResult",
    "TraitLevel", "TransitionResult",
    "normalize", "resolve",
    "deserialize_session", "serialize_session",
    "SessionStore",
    "create_session", "current_node", "session_progress", "submit_answer",
]
