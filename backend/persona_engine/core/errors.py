from typing import List, Optional


class QuizEngineError(Exception):
    """Base class for every failure raised by the quiz engine"""


class GraphValidationError(QuizEngineError):
    """Raised when a quiz graph source fails structural validation"""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []

    def __str__(self):
        if self.errors:
            return f"{super().__str__()}: {'; '.join(self.errors)}"
        return super().__str__()


class InvalidOptionIndexError(QuizEngineError):
    """Option index out of range for the session's current node"""

    def __init__(self, node_id: str, option_index, option_count: int):
        self.node_id = node_id
        self.option_index = option_index
        self.option_count = option_count
        super().__init__(
            f"Option index {option_index!r} is invalid for node '{node_id}' "
            f"(expected 0..{option_count - 1})"
        )


class SessionAlreadyTerminalError(QuizEngineError):
    """An answer was submitted after the session reached its terminal state"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is already complete")


class SessionNotFoundError(QuizEngineError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class SessionRestoreError(QuizEngineError):
    """A serialized session could not be restored against the given graph"""
