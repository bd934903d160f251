import logging
from typing import Mapping

from .classifier import DEFAULT_DOMINANT_COUNT, dominant_traits
from .models import PersonalityProfile, ProfileScores, Session, TerminalResult, TraitLevel

logger = logging.getLogger(__name__)


def resolve(session: Session,
            terminal_result: TerminalResult,
            normalized: Mapping[str, float],
            levels: Mapping[str, TraitLevel],
            k: int = DEFAULT_DOMINANT_COUNT) -> PersonalityProfile:
    """
    Freeze a finished session into its PersonalityProfile.

    The terminal option's declared trait tags are what the profile displays
    as dominant traits; the computed ranking is used only when the terminal
    declares no tags. The computed ranking is always kept in ranked_traits.
    """
    ranked = dominant_traits(normalized, k, session.graph.trait_order)

    if terminal_result.trait_tags:
        displayed = tuple(terminal_result.trait_tags[:k])
    else:
        displayed = tuple(ranked)

    profile = PersonalityProfile(
        personality_type=terminal_result.personality_name,
        dominant_traits=displayed,
        ranked_traits=tuple(ranked),
        scores=ProfileScores(
            raw=dict(session.raw_scores),
            normalized=dict(normalized),
            levels=dict(levels)
        ),
        quiz_journey=tuple(session.path),
        questions_answered=len(session.path)
    )

    logger.debug(
        f"Resolved session {session.session_id} to '{profile.personality_type}' "
        f"with traits {list(profile.dominant_traits)}"
    )
    return profile
