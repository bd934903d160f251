from typing import Dict, Mapping

import numpy as np


def normalize(raw_scores: Mapping[str, float]) -> Dict[str, float]:
    """
    Rescale raw trait scores into [0, 1] relative to the largest magnitude.

    Different paths through the graph touch different traits, so there is no
    fixed per-trait ceiling; the reference is max(|raw|) over this session.
    Negative raw scores clamp to 0. When every raw score is 0 (or there are
    none) all normalized values are 0.

    Args:
        raw_scores: Trait name -> accumulated raw score

    Returns:
        Trait name -> normalized score, same keys and order as the input
    """
    traits = list(raw_scores.keys())
    if not traits:
        return {}

    values = np.array([raw_scores[t] for t in traits], dtype=float)
    reference_max = float(np.max(np.abs(values)))

    if reference_max == 0.0:
        return {trait: 0.0 for trait in traits}

    normalized = np.clip(values / reference_max, 0.0, 1.0)
    return {trait: float(value) for trait, value in zip(traits, normalized)}
