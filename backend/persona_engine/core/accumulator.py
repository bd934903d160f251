import math
from typing import Dict, Iterable, Mapping, Optional


def merge(raw_scores: Dict[str, float], weights: Optional[Mapping[str, float]]) -> Dict[str, float]:
    """
    Add one answer's weight vector into a running raw-score map (in place).

    Traits absent from raw_scores start at 0. A missing or empty weight map is
    a valid zero-contribution answer.
    """
    for trait, weight in (weights or {}).items():
        raw_scores[trait] = raw_scores.get(trait, 0.0) + weight
    return raw_scores


def accumulate(weight_vectors: Iterable[Optional[Mapping[str, float]]]) -> Dict[str, float]:
    """
    Fold a whole sequence of weight vectors at once.

    Uses math.fsum per trait, so the totals are exactly the same for every
    permutation of the input, even for weights that are not exactly
    representable in binary.
    """
    contributions: Dict[str, list] = {}
    for weights in weight_vectors:
        for trait, weight in (weights or {}).items():
            contributions.setdefault(trait, []).append(weight)
    return {trait: math.fsum(values) for trait, values in contributions.items()}
