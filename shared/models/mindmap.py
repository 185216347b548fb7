from pydantic import BaseModel, ConfigDict


class NodePosition(BaseModel):
    x: float = 0
    y: float = 0


class NodeData(BaseModel):
    model_config = ConfigDict(extra="allow")

    label: str = ""


class MindMapNode(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | int
    position: NodePosition = NodePosition()
    data: NodeData = NodeData()


class MindMapEdge(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | int
    source: str | int
    target: str | int


class MindMap(BaseModel):
    """Mind map in the nodes/edges shape consumed by React Flow."""

    nodes: list[MindMapNode] = []
    edges: list[MindMapEdge] = []
