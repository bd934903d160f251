"""
Property tests for scoring, classification and session resumption
"""
from pathlib import Path

from hypothesis import given, seed, settings
from hypothesis import strategies as st

from persona_engine.core import (
    TraitLevel, accumulate, classify, create_session, current_node, deserialize_session,
    dominant_traits, load_graph_file, merge, normalize, serialize_session, submit_answer
)

GRAPH = load_graph_file(str(Path(__file__).resolve().parent.parent / "data" / "personality_graph.json"))

LEVEL_RANK = {TraitLevel.LOW: 0, TraitLevel.MODERATE: 1, TraitLevel.HIGH: 2}

trait_names = st.sampled_from(["Boldness", "Elegance", "Whimsy", "Sincerity", "Competence", "Minimalism"])

integral_weights = st.dictionaries(
    trait_names, st.integers(min_value=-50, max_value=50).map(float), max_size=4
)

any_weights = st.dictionaries(
    trait_names,
    st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False),
    max_size=4
)

raw_score_maps = st.dictionaries(
    trait_names,
    st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False),
    min_size=1
)

unit_interval = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)


@seed(1337)
@settings(max_examples=100, deadline=None)
@given(answers=st.lists(integral_weights, max_size=12), data=st.data())
def test_merge_ignores_answer_order(answers, data) -> None:
    shuffled = data.draw(st.permutations(answers))

    forward, reordered = {}, {}
    for weights in answers:
        merge(forward, weights)
    for weights in shuffled:
        merge(reordered, weights)

    assert forward == reordered


@seed(7331)
@settings(max_examples=100, deadline=None)
@given(answers=st.lists(any_weights, max_size=12), data=st.data())
def test_accumulate_ignores_answer_order_for_any_weights(answers, data) -> None:
    shuffled = data.draw(st.permutations(answers))
    assert accumulate(answers) == accumulate(shuffled)


@seed(2024)
@settings(max_examples=150, deadline=None)
@given(raw=raw_score_maps)
def test_normalized_values_stay_in_unit_interval(raw) -> None:
    normalized = normalize(raw)

    assert set(normalized) == set(raw)
    assert all(0.0 <= value <= 1.0 for value in normalized.values())
    if all(value == 0 for value in raw.values()):
        assert all(value == 0.0 for value in normalized.values())


@seed(2025)
@settings(max_examples=150, deadline=None)
@given(raw=st.dictionaries(
    trait_names, st.floats(min_value=0.0, max_value=1e6, allow_nan=False), min_size=1
))
def test_largest_non_negative_score_normalizes_to_one(raw) -> None:
    normalized = normalize(raw)

    if any(value > 0 for value in raw.values()):
        top = max(raw, key=raw.get)
        assert normalized[top] == 1.0
    else:
        assert set(normalized.values()) == {0.0}


@seed(99)
@settings(max_examples=150, deadline=None)
@given(first=unit_interval, second=unit_interval)
def test_levels_are_monotonic(first, second) -> None:
    low, high = sorted((first, second))
    levels_low = classify({"t": low})
    levels_high = classify({"t": high})

    assert LEVEL_RANK[levels_low["t"]] <= LEVEL_RANK[levels_high["t"]]


@seed(4242)
@settings(max_examples=150, deadline=None)
@given(
    normalized=st.dictionaries(trait_names, unit_interval),
    k=st.integers(min_value=0, max_value=8)
)
def test_dominant_traits_bounded_sorted_and_stable(normalized, k) -> None:
    ranked = dominant_traits(normalized, k, GRAPH.trait_order)

    assert len(ranked) <= k
    assert len(ranked) == min(k, sum(1 for value in normalized.values() if value > 0))
    assert all(normalized[trait] > 0 for trait in ranked)
    scores = [normalized[trait] for trait in ranked]
    assert scores == sorted(scores, reverse=True)
    assert ranked == dominant_traits(dict(normalized), k, GRAPH.trait_order)


@seed(8080)
@settings(max_examples=60, deadline=None)
@given(data=st.data())
def test_resumed_session_matches_uninterrupted_run(data) -> None:
    uninterrupted = create_session(GRAPH, session_id="walk")
    answers = []
    while not uninterrupted.is_terminal:
        option_count = len(current_node(uninterrupted).options)
        index = data.draw(st.integers(min_value=0, max_value=option_count - 1))
        answers.append(index)
        submit_answer(uninterrupted, index)

    split = data.draw(st.integers(min_value=0, max_value=len(answers)))
    partial = create_session(GRAPH, session_id="walk")
    for index in answers[:split]:
        submit_answer(partial, index)

    resumed = deserialize_session(serialize_session(partial), GRAPH)
    for index in answers[split:]:
        submit_answer(resumed, index)

    assert resumed.profile == uninterrupted.profile
    assert resumed.profile.model_dump_json() == uninterrupted.profile.model_dump_json()
