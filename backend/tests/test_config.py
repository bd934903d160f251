import pytest
from pydantic import ValidationError

from persona_engine.config import Settings
from persona_engine.core import DEFAULT_DOMINANT_COUNT, HIGH_THRESHOLD, LOW_THRESHOLD


def test_classification_defaults_follow_engine_constants():
    config = Settings(_env_file=None)

    assert config.DOMINANT_TRAIT_COUNT == DEFAULT_DOMINANT_COUNT
    assert config.LOW_LEVEL_THRESHOLD == LOW_THRESHOLD
    assert config.HIGH_LEVEL_THRESHOLD == HIGH_THRESHOLD


@pytest.mark.parametrize("low, high", [(0.9, 0.1), (-0.1, 0.5), (0.2, 1.5)])
def test_invalid_thresholds_rejected(low, high):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, LOW_LEVEL_THRESHOLD=low, HIGH_LEVEL_THRESHOLD=high)


def test_relative_graph_file_resolves_against_backend():
    config = Settings(_env_file=None, GRAPH_FILE="data/other.json")

    assert config.graph_path.parts[-2:] == ("data", "other.json")
    assert config.graph_path.is_absolute()
