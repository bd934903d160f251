"""
Tests for the trait accumulator, normalizer and classifier
"""
import pytest

from persona_engine.core import (
    TraitLevel, accumulate, classify, dominant_traits, level_for, merge, normalize
)


class TestMerge:
    def test_adds_into_existing_and_new_traits(self):
        raw = {"Bold": 2.0}
        result = merge(raw, {"Bold": 3, "Calm": 1.5})

        assert result is raw
        assert raw == {"Bold": 5.0, "Calm": 1.5}

    @pytest.mark.parametrize("weights", [None, {}])
    def test_missing_weights_contribute_nothing(self, weights):
        raw = {"Bold": 2.0}
        merge(raw, weights)
        assert raw == {"Bold": 2.0}

    def test_negative_weights_subtract(self):
        raw = merge({}, {"Bold": 4})
        merge(raw, {"Bold": -6})
        assert raw == {"Bold": -2.0}

    def test_order_of_answers_does_not_matter(self):
        answers = [{"Bold": 15, "Excitement": 12}, {"Elegance": 12}, {"Bold": 6, "Whimsy": 8}]

        forward, backward = {}, {}
        for weights in answers:
            merge(forward, weights)
        for weights in reversed(answers):
            merge(backward, weights)

        assert forward == backward


class TestAccumulate:
    def test_totals_per_trait(self):
        assert accumulate([{"Bold": 1}, None, {"Bold": 2, "Calm": 1}]) == {"Bold": 3.0, "Calm": 1.0}

    def test_exact_for_inexact_binary_fractions(self):
        forward = accumulate([{"t": 0.1}, {"t": 0.2}, {"t": 0.3}])
        backward = accumulate([{"t": 0.3}, {"t": 0.2}, {"t": 0.1}])

        assert forward == backward == {"t": 0.6}

    def test_empty(self):
        assert accumulate([]) == {}


class TestNormalize:
    def test_relative_to_largest(self):
        assert normalize({"Bold": 10, "Calm": 5, "Art": 0}) == {"Bold": 1.0, "Calm": 0.5, "Art": 0.0}

    def test_empty_input(self):
        assert normalize({}) == {}

    def test_all_zero(self):
        assert normalize({"Bold": 0, "Calm": 0}) == {"Bold": 0.0, "Calm": 0.0}

    def test_negative_scores_clamp_to_zero(self):
        assert normalize({"Bold": 4, "Calm": -2}) == {"Bold": 1.0, "Calm": 0.0}

    def test_negative_dominated_scores_use_magnitude(self):
        # The reference is max |raw|, so a large negative score scales the positives down
        assert normalize({"Bold": 2, "Calm": -8}) == {"Bold": 0.25, "Calm": 0.0}

    def test_keeps_key_order(self):
        assert list(normalize({"b": 1, "a": 2, "c": 3})) == ["b", "a", "c"]


class TestClassify:
    @pytest.mark.parametrize("value,expected", [
        (0.0, TraitLevel.LOW),
        (0.3399, TraitLevel.LOW),
        (0.34, TraitLevel.MODERATE),
        (0.6699, TraitLevel.MODERATE),
        (0.67, TraitLevel.HIGH),
        (1.0, TraitLevel.HIGH),
    ])
    def test_threshold_boundaries(self, value, expected):
        assert level_for(value) is expected

    def test_classify_all_traits(self):
        levels = classify({"Bold": 1.0, "Calm": 0.5, "Art": 0.1})
        assert levels == {"Bold": TraitLevel.HIGH, "Calm": TraitLevel.MODERATE, "Art": TraitLevel.LOW}

    def test_custom_thresholds(self):
        assert classify({"Bold": 0.5}, low_threshold=0.2, high_threshold=0.4) == {"Bold": TraitLevel.HIGH}

    def test_inverted_thresholds_rejected(self):
        with pytest.raises(ValueError):
            classify({"Bold": 0.5}, low_threshold=0.8, high_threshold=0.2)

    def test_levels_serialize_as_names(self):
        assert TraitLevel.MODERATE.value == "Moderate"


class TestDominantTraits:
    def test_descending_top_k(self):
        normalized = {"a": 0.2, "b": 1.0, "c": 0.6, "d": 0.4, "e": 0.8}
        assert dominant_traits(normalized, k=3) == ["b", "e", "c"]

    def test_fewer_traits_than_k(self):
        assert dominant_traits({"Bold": 1.0}, k=4) == ["Bold"]

    def test_zero_k(self):
        assert dominant_traits({"Bold": 1.0}, k=0) == []

    def test_negative_k_rejected(self):
        with pytest.raises(ValueError):
            dominant_traits({"Bold": 1.0}, k=-1)

    def test_ties_follow_declaration_order(self):
        normalized = {"Alpha": 0.5, "Zeta": 0.5, "Mid": 0.5}
        assert dominant_traits(normalized, k=3, trait_order=("Zeta", "Mid", "Alpha")) == ["Zeta", "Mid", "Alpha"]

    def test_ties_fall_back_to_name(self):
        normalized = {"b": 0.5, "a": 0.5, "declared": 0.5}
        assert dominant_traits(normalized, k=3, trait_order=("declared",)) == ["declared", "a", "b"]

    def test_non_positive_traits_are_never_dominant(self):
        normalized = {"Bold": 1.0, "Calm": 0.0, "Edge": -0.5}
        assert dominant_traits(normalized, k=4) == ["Bold"]

    def test_all_zero_scores_have_no_dominant_traits(self):
        assert dominant_traits({"Bold": 0.0, "Calm": 0.0}, k=2) == []
