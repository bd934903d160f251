from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Literal, Mapping, Optional, Tuple
import uuid

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

# Sentinel stored in Session.current_node_id once a terminal option was chosen
TERMINAL = "END"


class TraitLevel(str, Enum):
    """Qualitative bucket for a normalized trait score"""
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"


class TerminalResult(BaseModel):
    """Identity declared on a terminal option at authoring time"""
    personality_name: str
    trait_tags: Tuple[str, ...] = ()

    class Config:
        frozen = True


class QuizOption(BaseModel):
    """One answer of a question; either leads to another node or ends the quiz"""
    answer_text: str
    weights: Dict[str, float] = Field(default_factory=dict)
    next_id: Optional[str] = None
    result: Optional[TerminalResult] = None

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _exactly_one_outcome(self):
        if (self.next_id is None) == (self.result is None):
            raise ValueError("option must declare exactly one of next_id or result")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.result is not None


class NodeView(BaseModel):
    """What a client needs to render the current question"""
    node_id: str
    question: str
    options: List[str]


class QuizNode(BaseModel):
    node_id: str
    question: str
    options: Tuple[QuizOption, ...]

    class Config:
        frozen = True

    def to_view(self) -> NodeView:
        return NodeView(
            node_id=self.node_id,
            question=self.question,
            options=[option.answer_text for option in self.options]
        )


class QuizGraph(BaseModel):
    """
    Validated, immutable question graph.

    Built only by graph_store.load_graph; the derived tables (trait_order,
    remaining-answer counts, fingerprint) are computed once at load time.
    """
    root_id: str
    nodes: Dict[str, QuizNode]
    traits: Tuple[str, ...] = ()
    trait_order: Tuple[str, ...] = ()
    max_remaining: Dict[str, int] = Field(default_factory=dict)
    min_remaining: Dict[str, int] = Field(default_factory=dict)
    longest_path: int = 0
    fingerprint: str = ""

    class Config:
        frozen = True

    def node(self, node_id: str) -> QuizNode:
        return self.nodes[node_id]

    def summary(self) -> Dict[str, object]:
        return {
            "root_id": self.root_id,
            "node_count": len(self.nodes),
            "traits": list(self.trait_order),
            "longest_path": self.longest_path,
            "fingerprint": self.fingerprint
        }


class PathStep(BaseModel):
    """A single recorded answer in a session's journey"""
    node_id: str
    option_index: int
    question: str
    answer_text: str

    class Config:
        frozen = True


class ProfileScores(BaseModel):
    """Score maps of a finished profile, exposed as read-only mappings"""
    raw: Mapping[str, float]
    normalized: Mapping[str, float]
    levels: Mapping[str, TraitLevel]

    class Config:
        frozen = True

    @field_validator("raw", "normalized", "levels", mode="after")
    @classmethod
    def _read_only(cls, value):
        return MappingProxyType(dict(value))

    @field_serializer("raw", "normalized", "levels")
    def _plain_dict(self, value):
        return dict(value)


class PersonalityProfile(BaseModel):
    """Immutable result of a completed session"""
    personality_type: str
    dominant_traits: Tuple[str, ...]
    ranked_traits: Tuple[str, ...] = ()
    scores: ProfileScores
    quiz_journey: Tuple[PathStep, ...]
    questions_answered: int

    class Config:
        frozen = True


class Session(BaseModel):
    """
    In-progress walk of one user through a QuizGraph.

    Only traversal.submit_answer moves a session forward; the graph is shared
    and never serialized with the session.
    """
    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    graph: QuizGraph = Field(exclude=True, repr=False)
    current_node_id: str
    path: List[PathStep] = Field(default_factory=list)
    raw_scores: Dict[str, float] = Field(default_factory=dict)
    dominant_count: int = Field(..., ge=0)
    low_threshold: float = Field(..., ge=0.0, le=1.0)
    high_threshold: float = Field(..., ge=0.0, le=1.0)
    profile: Optional[PersonalityProfile] = None
    created_at: datetime = Field(default_factory=datetime.now)
    last_activity: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_thresholds(self):
        if self.low_threshold > self.high_threshold:
            raise ValueError(
                f"low_threshold ({self.low_threshold}) must not exceed "
                f"high_threshold ({self.high_threshold})"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        return self.current_node_id == TERMINAL

    @property
    def questions_answered(self) -> int:
        return len(self.path)

    def update_activity(self):
        """Update last activity timestamp"""
        self.last_activity = datetime.now()


class TransitionResult(BaseModel):
    """Outcome of one submitted answer"""
    kind: Literal["continue", "done"]
    node: Optional[NodeView] = None
    terminal: Optional[TerminalResult] = None
    profile: Optional[PersonalityProfile] = None
