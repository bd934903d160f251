import logging
from typing import Dict, List, Mapping, Optional, Sequence

from .models import TraitLevel

logger = logging.getLogger(__name__)

# Level thresholds on the normalized [0, 1] scale
LOW_THRESHOLD = 0.34
HIGH_THRESHOLD = 0.67

DEFAULT_DOMINANT_COUNT = 4


def level_for(value: float, low_threshold: float = LOW_THRESHOLD,
              high_threshold: float = HIGH_THRESHOLD) -> TraitLevel:
    """Bucket a single normalized score"""
    if value < low_threshold:
        return TraitLevel.LOW
    elif value < high_threshold:
        return TraitLevel.MODERATE
    else:
        return TraitLevel.HIGH


def classify(normalized: Mapping[str, float],
             low_threshold: float = LOW_THRESHOLD,
             high_threshold: float = HIGH_THRESHOLD) -> Dict[str, TraitLevel]:
    """
    Bucket every normalized trait score into Low / Moderate / High.

    Args:
        normalized: Trait name -> normalized score in [0, 1]
        low_threshold: Scores below this are Low
        high_threshold: Scores at or above this are High

    Returns:
        Trait name -> TraitLevel
    """
    if not low_threshold <= high_threshold:
        raise ValueError(
            f"low_threshold ({low_threshold}) must not exceed high_threshold ({high_threshold})"
        )

    return {
        trait: level_for(value, low_threshold, high_threshold)
        for trait, value in normalized.items()
    }


def dominant_traits(normalized: Mapping[str, float],
                    k: int = DEFAULT_DOMINANT_COUNT,
                    trait_order: Optional[Sequence[str]] = None) -> List[str]:
    """
    Rank traits with a positive normalized score and keep the top k.

    Ties are broken by the trait's first appearance in the graph's weight
    declarations (trait_order), then alphabetically. Traits missing from
    trait_order sort after every declared trait. Traits that ended at or
    below zero are never dominant.
    """
    if k < 0:
        raise ValueError(f"k must be non-negative, got {k}")

    position = {trait: index for index, trait in enumerate(trait_order or ())}
    undeclared = len(position)

    ranked = sorted(
        ((trait, value) for trait, value in normalized.items() if value > 0),
        key=lambda item: (-item[1], position.get(item[0], undeclared), item[0])
    )
    return [trait for trait, _ in ranked[:k]]
