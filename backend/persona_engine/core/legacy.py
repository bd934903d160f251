"""
Conversion of nested-tree quizzes into the graph source format.

Older quizzes were authored as one nested structure where every option either
embeds its follow-up question or ends with a free-text result such as
"Abstract Leopard (Vibrant, Bold)". The result text is parsed here, once, into
a structured personality name and trait tags.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Tuple

from .errors import GraphValidationError

logger = logging.getLogger(__name__)

_RESULT_PATTERN = re.compile(r"^\s*(?P<name>[^()]*?)\s*\((?P<tags>[^()]*)\)\s*$")


def parse_result_label(label: str) -> Dict[str, Any]:
    """
    Split "Name (Tag one, Tag two)" into name and tags.

    A label without a trailing parenthetical becomes a name with no tags.
    """
    match = _RESULT_PATTERN.match(label)
    if not match:
        return {"personalityName": label.strip(), "traitTags": []}

    tags = [tag.strip() for tag in match.group("tags").split(",") if tag.strip()]
    return {"personalityName": match.group("name"), "traitTags": tags}


def convert_nested_tree(tree: Mapping[str, Any], root_id: str = "Q1") -> Dict[str, Any]:
    """
    Flatten a nested quiz tree into a graph source for load_graph.

    Node ids are derived from the option path: the root is root_id and the
    follow-up of its second option is f"{root_id}.2", and so on.

    Raises:
        GraphValidationError: an option has both or neither of a follow-up
            question and a result
    """
    nodes: Dict[str, Any] = {}
    errors: List[str] = []
    pending: List[Tuple[str, Mapping[str, Any]]] = [(root_id, tree)]

    while pending:
        node_id, node = pending.pop()
        options = []

        for position, option in enumerate(node.get("options") or [], start=1):
            follow_up = option.get("next_question")
            result = option.get("result")
            converted: Dict[str, Any] = {
                "answerText": option.get("answer", ""),
                "weights": dict(option.get("weights") or {})
            }

            if follow_up and result:
                errors.append(f"Option {position} of '{node_id}' has both a follow-up and a result")
            elif follow_up:
                child_id = f"{node_id}.{position}"
                converted["next"] = child_id
                pending.append((child_id, follow_up))
            elif result:
                converted["result"] = parse_result_label(result)
            else:
                errors.append(f"Option {position} of '{node_id}' has neither a follow-up nor a result")

            options.append(converted)

        nodes[node_id] = {"question": node.get("question", ""), "options": options}

    if errors:
        raise GraphValidationError("Nested quiz tree conversion failed", errors)

    # Keep parents before children so weight declaration order follows the tree
    ordered = dict(sorted(nodes.items(), key=lambda item: _id_sort_key(item[0], root_id)))

    logger.info(f"Converted nested quiz tree into {len(ordered)} nodes")
    return {"root": root_id, "nodes": ordered}


def _id_sort_key(node_id: str, root_id: str) -> Tuple[int, ...]:
    suffix = node_id[len(root_id):].lstrip(".")
    return tuple(int(part) for part in suffix.split(".")) if suffix else ()
