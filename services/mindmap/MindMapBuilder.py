"""Mind map generation with a four-step fallback ladder.

1. structured map from the LLM gateway
2. hierarchy parsed from the indentation of the raw text
3. flat map from the first long sentences
4. a single root node built from a text excerpt

Each step is only tried when the previous one produced no nodes. The result
is always passed through format_for_react_flow().
"""

import re
from typing import TYPE_CHECKING

from shared.exceptions.errors import ChatCoreError, ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.mindmap import MindMap

if TYPE_CHECKING:
    from services.llm_gateway.LLMGateway import LLMGateway

EDGE_COLOR = "#90caf9"
ROOT_POSITION = {"x": 250, "y": 5}
LEVEL_SPACING_Y = 120
SIBLING_SPACING_X = 220
MAX_LABEL_CHARS = 80


def _empty_map() -> dict:
    return {"nodes": [], "edges": []}


def _clip_label(label: str) -> str:
    if len(label) <= MAX_LABEL_CHARS:
        return label
    return label[:MAX_LABEL_CHARS - 3].rstrip() + "..."


def create_hierarchical_mind_map(text: str) -> dict:
    """Build a tree from indentation: each line hangs below the closest less-indented line above it.

    The first non-empty line becomes the root. Markdown heading and bullet
    markers are stripped from labels.
    """
    lines = [line for line in (text or "").split("\n") if line.strip()]
    if not lines:
        return _empty_map()

    root_label = _clip_label(re.sub(r"[#*]", "", lines[0].strip()).strip())
    nodes: list[dict] = [{
        "id": "node-0",
        "type": "input",
        "data": {"label": root_label, "content": ""},
        "position": dict(ROOT_POSITION),
    }]
    edges: list[dict] = []

    # (depth, node_id, level) of the open ancestors; the root sits above every indentation
    stack: list[tuple[int, str, int]] = [(-1, "node-0", 0)]
    children_per_level: dict[int, int] = {}
    next_id = 1

    for line in lines[1:]:
        depth = len(line) - len(line.lstrip())
        label = _clip_label(re.sub(r"[#*-]", "", line.strip()).strip())
        if not label:
            continue

        while len(stack) > 1 and stack[-1][0] >= depth:
            stack.pop()
        _, parent_id, parent_level = stack[-1]
        level = parent_level + 1
        slot = children_per_level.get(level, 0)
        children_per_level[level] = slot + 1

        node_id = f"node-{next_id}"
        nodes.append({
            "id": node_id,
            "type": "default",
            "data": {"label": label, "content": ""},
            "position": {"x": slot * SIBLING_SPACING_X, "y": ROOT_POSITION["y"] + level * LEVEL_SPACING_Y},
        })
        edges.append({"id": f"edge-{parent_id}-{node_id}", "source": parent_id, "target": node_id})
        stack.append((depth, node_id, level))
        next_id += 1

    return {"nodes": nodes, "edges": edges}


def create_basic_mind_map(text: str) -> dict:
    """Root plus up to four children taken from the first sentences longer than 50 characters."""
    sentences = [s for s in re.split(r"[\n.!?]", text or "") if len(s.strip()) > 50][:5]
    if not sentences:
        return create_fallback_mind_map(text)

    nodes: list[dict] = [{"id": "1", "data": {"label": sentences[0][:50].strip() + "..."}, "position": dict(ROOT_POSITION)}]
    edges: list[dict] = []
    for index, sentence in enumerate(sentences[1:]):
        node_id = str(index + 2)
        nodes.append({
            "id": node_id,
            "data": {"label": sentence[:50].strip() + "..."},
            "position": {"x": 50 + index * 200, "y": 200},
        })
        edges.append({"id": f"e1-{node_id}", "source": "1", "target": node_id})
    return {"nodes": nodes, "edges": edges}


def create_fallback_mind_map(text: str) -> dict:
    """A single root node labelled with the start of the text."""
    title = re.sub(r"[#\n]", "", (text or "")[:50]).strip() or "Document Summary"
    return {"nodes": [{"id": "1", "data": {"label": title}, "position": dict(ROOT_POSITION)}], "edges": []}


def format_for_react_flow(data: dict | MindMap) -> dict:
    """Decorate a mind map for React Flow: string ids, guaranteed labels, styled edges.

    Raises:
        ValueError: If the map has no nodes or edges collection.
    """
    if isinstance(data, MindMap):
        data = data.model_dump()
    if not data or data.get("nodes") is None or data.get("edges") is None:
        raise ValueError("Invalid mind map data format.")

    nodes = []
    for node in data["nodes"]:
        node_data = dict(node.get("data") or {})
        node_data["label"] = node_data.get("label") or node.get("label") or "Untitled"
        nodes.append({
            **node,
            "id": str(node["id"]),
            "position": node.get("position") or {"x": 0, "y": 0},
            "data": node_data,
        })

    edges = []
    for edge in data["edges"]:
        edges.append({
            **edge,
            "id": str(edge["id"]),
            "source": str(edge["source"]),
            "target": str(edge["target"]),
            "type": "smoothstep",
            "animated": True,
            "style": {"strokeWidth": 2, "stroke": EDGE_COLOR},
            "markerEnd": {"type": "arrowclosed", "color": EDGE_COLOR},
        })
    return {"nodes": nodes, "edges": edges}


class MindMapBuilder:
    def __init__(self, helper_config: HelperConfig, gateway: "LLMGateway"):
        self.logging = helper_config.get_logger()
        self._gateway = gateway

    async def build(self, document_text: str, title: str = "Document") -> dict:
        """Run the fallback ladder and return a React Flow ready map with at least one node."""
        mind_map: dict = _empty_map()
        try:
            mind_map = (await self._gateway.generate_mind_map(document_text, title)).model_dump()
        except ProviderError as e:
            self.logging.warning("Mind map generation via LLM failed (%s); using local fallback.", e.kind.value)
        except ChatCoreError as e:
            self.logging.warning("Mind map generation via LLM failed: %s; using local fallback.", e.message)

        if not mind_map.get("nodes"):
            self.logging.info("Building hierarchical mind map from text for '%s'.", title)
            mind_map = create_hierarchical_mind_map(document_text)
        if not mind_map.get("nodes"):
            mind_map = create_basic_mind_map(document_text)
        if not mind_map.get("nodes"):
            mind_map = create_fallback_mind_map(document_text)

        try:
            return format_for_react_flow(mind_map)
        except (ValueError, KeyError, TypeError) as e:
            self.logging.error("Mind map formatting failed: %s; returning basic map.", e)
            return format_for_react_flow(create_basic_mind_map(document_text))
