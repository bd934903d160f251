import hashlib
import json
import logging
import math
import os
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from .errors import GraphValidationError
from .models import QuizGraph, QuizNode, QuizOption, TerminalResult, TERMINAL

logger = logging.getLogger(__name__)


# Source format models. These mirror the authored JSON and are only used
# while loading; the rest of the engine sees QuizGraph.

class ResultSource(BaseModel):
    personality_name: str = Field(
        ..., validation_alias=AliasChoices("personalityName", "personality_name")
    )
    trait_tags: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("traitTags", "trait_tags")
    )


class OptionSource(BaseModel):
    answer_text: str = Field(
        ..., validation_alias=AliasChoices("answerText", "answer_text", "text", "answer")
    )
    weights: Optional[Dict[str, float]] = None
    next: Optional[str] = None
    result: Optional[ResultSource] = None


class NodeSource(BaseModel):
    question: str
    options: List[OptionSource] = Field(default_factory=list)


class GraphSource(BaseModel):
    root: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("root", "rootId", "root_id")
    )
    nodes: Dict[str, NodeSource] = Field(default_factory=dict)
    traits: List[str] = Field(default_factory=list)


def _unwrap_source(source: Mapping[str, Any]) -> Dict[str, Any]:
    """Accept both the flat format and the {graph, dimensions} wrapper"""
    if "graph" not in source:
        return dict(source)

    payload = dict(source["graph"] or {})
    dimensions = source.get("dimensions") or {}
    if dimensions and "traits" not in payload:
        traits: List[str] = []
        for group in dimensions.values():
            for trait in group:
                if trait not in traits:
                    traits.append(trait)
        payload["traits"] = traits
    return payload


def _parse_source(source: Mapping[str, Any]) -> GraphSource:
    if not isinstance(source, Mapping):
        raise GraphValidationError(
            "Quiz graph validation failed",
            [f"Graph source must be a mapping, got {type(source).__name__}"]
        )

    try:
        return GraphSource.model_validate(_unwrap_source(source))
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise GraphValidationError("Quiz graph validation failed", errors) from e


def _check_structure(parsed: GraphSource) -> List[str]:
    """Collect every local structural problem (everything except cycles)"""
    errors = []
    catalog = set(parsed.traits)

    if not parsed.root:
        errors.append("Graph has no root node id")
    elif parsed.root not in parsed.nodes:
        errors.append(f"Root node '{parsed.root}' does not exist")

    for node_id, node in parsed.nodes.items():
        if node_id == TERMINAL:
            errors.append(f"Node id '{TERMINAL}' is reserved for the terminal state")

        if not node.options:
            errors.append(f"Node '{node_id}' has no options")

        for index, option in enumerate(node.options):
            where = f"Node '{node_id}' option {index}"

            if option.next is not None and option.result is not None:
                errors.append(f"{where} declares both next and result")
            elif option.next is None and option.result is None:
                errors.append(f"{where} declares neither next nor result")

            if option.next is not None and option.next not in parsed.nodes:
                errors.append(f"{where} points to unknown node '{option.next}'")

            if option.result is not None and not option.result.personality_name.strip():
                errors.append(f"{where} has an empty personality name")

            for trait, weight in (option.weights or {}).items():
                if not math.isfinite(weight):
                    errors.append(f"{where} has non-finite weight for trait '{trait}'")
                if catalog and trait not in catalog:
                    errors.append(f"{where} uses undeclared trait '{trait}'")

    return errors


def _walk_from_root(
    root_id: str, nodes: Dict[str, QuizNode]
) -> Tuple[Dict[str, int], Dict[str, int]]:
    """
    Depth-first walk from the root that rejects cycles and computes, for every
    reachable node, the maximum and minimum number of answers left until a
    terminal option is chosen.

    A node revisited while still on the DFS stack closes a cycle.
    """
    max_remaining: Dict[str, int] = {}
    min_remaining: Dict[str, int] = {}
    on_stack: Set[str] = set()
    stack: List[Tuple[str, int]] = [(root_id, 0)]
    on_stack.add(root_id)

    while stack:
        node_id, option_index = stack[-1]
        node = nodes[node_id]

        if option_index < len(node.options):
            stack[-1] = (node_id, option_index + 1)
            next_id = node.options[option_index].next_id
            if next_id is None or next_id in max_remaining:
                continue
            if next_id in on_stack:
                cycle = [step for step, _ in stack]
                cycle = cycle[cycle.index(next_id):] + [next_id]
                raise GraphValidationError(
                    "Quiz graph validation failed",
                    [f"Cycle detected: {' -> '.join(cycle)}"]
                )
            on_stack.add(next_id)
            stack.append((next_id, 0))
            continue

        # All children finished: fold their depths into this node
        depths = [
            1 if option.next_id is None else 1 + max_remaining[option.next_id]
            for option in node.options
        ]
        shallow = [
            1 if option.next_id is None else 1 + min_remaining[option.next_id]
            for option in node.options
        ]
        max_remaining[node_id] = max(depths)
        min_remaining[node_id] = min(shallow)
        on_stack.discard(node_id)
        stack.pop()

    return max_remaining, min_remaining


def _trait_order(parsed: GraphSource) -> Tuple[str, ...]:
    order: List[str] = []
    seen: Set[str] = set()
    for node in parsed.nodes.values():
        for option in node.options:
            for trait in option.weights or {}:
                if trait not in seen:
                    seen.add(trait)
                    order.append(trait)
    return tuple(order)


def _fingerprint(parsed: GraphSource) -> str:
    canonical = json.dumps(parsed.model_dump(), separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def load_graph(source: Mapping[str, Any]) -> QuizGraph:
    """
    Parse and validate a quiz graph source.

    Args:
        source: Mapping with a root id, a node mapping and optionally a trait
            catalog (see data/personality_graph.json for an example)

    Returns:
        Immutable QuizGraph

    Raises:
        GraphValidationError: missing root, dangling reference, empty option
            list, malformed option, or a cycle reachable from the root
    """
    parsed = _parse_source(source)

    errors = _check_structure(parsed)
    if errors:
        logger.warning(f"Quiz graph validation failed with {len(errors)} errors")
        raise GraphValidationError("Quiz graph validation failed", errors)

    nodes: Dict[str, QuizNode] = {}
    for node_id, node in parsed.nodes.items():
        options = []
        for option in node.options:
            result = None
            if option.result is not None:
                result = TerminalResult(
                    personality_name=option.result.personality_name.strip(),
                    trait_tags=tuple(option.result.trait_tags)
                )
            options.append(QuizOption(
                answer_text=option.answer_text,
                weights=dict(option.weights or {}),
                next_id=option.next,
                result=result
            ))
        nodes[node_id] = QuizNode(node_id=node_id, question=node.question, options=tuple(options))

    max_remaining, min_remaining = _walk_from_root(parsed.root, nodes)

    unreachable = [node_id for node_id in nodes if node_id not in max_remaining]
    if unreachable:
        logger.warning(f"Nodes unreachable from root '{parsed.root}': {unreachable}")

    graph = QuizGraph(
        root_id=parsed.root,
        nodes=nodes,
        traits=tuple(parsed.traits),
        trait_order=_trait_order(parsed),
        max_remaining=max_remaining,
        min_remaining=min_remaining,
        longest_path=max_remaining[parsed.root],
        fingerprint=_fingerprint(parsed)
    )

    logger.info(
        f"Loaded quiz graph: {len(nodes)} nodes, {len(graph.trait_order)} traits, "
        f"longest path {graph.longest_path}"
    )
    return graph


def load_graph_file(file_path: str) -> QuizGraph:
    """Load and validate a quiz graph from a JSON file"""
    try:
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"Quiz graph file not found: {file_path}")

        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        return load_graph(data)

    except Exception as e:
        logger.error(f"Failed to load quiz graph from {file_path}: {e}")
        raise
