"""
Graph Compiler Service
Turns the builder's visual graph (nodes + edges) into the flat node map the
flow engine walks at message time. Runs once per save over the whole graph.
"""
from typing import Optional, List, Dict, Any

# Utils
from utils.log_utils import LogUtil

# Models
from models.chatbot_node import ChatbotNode, NodeKind, NodeRef, NodeMap, FileType, NUMBERED_MENU_KINDS
from models.visual_graph import VisualNode, VisualEdge, VisualNodeData


class GraphCompilerService:
    def __init__(self, log_util: LogUtil):
        self.log_util = log_util

    def compile(self, nodes: List[VisualNode], edges: List[VisualEdge]) -> NodeMap:
        """
        Compile a visual graph into a node map keyed by node id.

        Never raises on malformed input: missing children become empty
        placeholders, missing data is treated as empty, and edges pointing at
        unknown nodes are dropped with a warning.
        """
        node_map: NodeMap = {}

        if nodes is None:
            self.log_util.error(service_name="GraphCompilerService", message="Invalid nodes array provided to compile")
            return node_map
        if edges is None:
            self.log_util.error(service_name="GraphCompilerService", message="Invalid edges array provided to compile")
            return node_map

        nodes_by_id: Dict[str, VisualNode] = {node.id: node for node in nodes}

        # First pass: provisional entries with resolved children
        for node in nodes:
            chatbot_node = self._build_node(node, nodes_by_id)
            if chatbot_node is not None:
                node_map[node.id] = chatbot_node

        # Second pass: successors from edges
        linked_sources = set()
        for edge in edges:
            source_node = nodes_by_id.get(edge.source)
            if source_node is None or edge.source not in node_map:
                self.log_util.warning(
                    service_name="GraphCompilerService",
                    message=f"Edge {edge.id or ''} source '{edge.source}' is not a compiled node, skipping"
                )
                continue
            if edge.target not in node_map:
                self.log_util.warning(
                    service_name="GraphCompilerService",
                    message=f"Edge {edge.id or ''} target '{edge.target}' is not a compiled node, skipping"
                )
                continue
            if edge.source in linked_sources:
                self.log_util.warning(
                    service_name="GraphCompilerService",
                    message=f"Node '{edge.source}' has more than one outgoing edge, '{edge.target}' replaces '{node_map[edge.source].next}'"
                )
            linked_sources.add(edge.source)

            node_map[edge.source] = node_map[edge.source].model_copy(update={"next": edge.target})

            if source_node.parentNode:
                self._link_child_in_parent(node_map, source_node, edge.target)

        self.log_util.info(
            service_name="GraphCompilerService",
            message=f"Compiled {len(node_map)} nodes from {len(nodes)} visual nodes and {len(edges)} edges"
        )
        return node_map

    def _build_node(self, node: VisualNode, nodes_by_id: Dict[str, VisualNode]) -> Optional[ChatbotNode]:
        kind = NodeKind.parse(node.type)
        if kind is None:
            self.log_util.warning(
                service_name="GraphCompilerService",
                message=f"Node '{node.id}' has unknown type '{node.type}', skipping"
            )
            return None

        data = node.data
        if data is None:
            self.log_util.warning(service_name="GraphCompilerService", message=f"Node '{node.id}' has no data object")
            data = VisualNodeData()

        message = data.message or ""
        children: List[NodeRef] = []

        for index, child_id in enumerate(data.children):
            child_node = nodes_by_id.get(child_id)
            if child_node is None:
                self.log_util.warning(
                    service_name="GraphCompilerService",
                    message=f"Child node with id '{child_id}' not found for parent node '{node.id}'"
                )
                children.append(NodeRef(id=child_id, message=""))
                continue

            child_message = self._message_of(child_node)
            if kind in NUMBERED_MENU_KINDS:
                message += f"\n{index + 1} {child_message}"
            children.append(NodeRef(id=child_node.id, message=child_message))

        file_type = FileType.parse(data.fileType)
        if data.fileType and file_type.value != str(data.fileType).lower():
            self.log_util.warning(
                service_name="GraphCompilerService",
                message=f"Node '{node.id}' has unsupported fileType '{data.fileType}', using 'none'"
            )

        try:
            return ChatbotNode(
                nodeId=node.id,
                type=kind,
                next=None,
                children=children,
                message=message,
                link=data.link,
                fileType=file_type,
                location=data.location,
                cta=data.cta,
                api=data.api,
            )
        except ValueError as e:
            # Malformed location/cta/api payloads should not cost the node its content
            self.log_util.warning(
                service_name="GraphCompilerService",
                message=f"Node '{node.id}' has invalid directive payload, dropping it: {str(e)}"
            )
            return ChatbotNode(
                nodeId=node.id,
                type=kind,
                next=None,
                children=children,
                message=message,
                link=data.link,
                fileType=file_type,
            )

    def _link_child_in_parent(self, node_map: NodeMap, source_node: VisualNode, target: str) -> None:
        """
        Swap the parent's {id, message} reference to source_node for the fuller
        record carrying the child's own onward link.
        """
        parent = node_map.get(source_node.parentNode)
        if parent is None:
            self.log_util.warning(
                service_name="GraphCompilerService",
                message=f"Parent node '{source_node.parentNode}' of '{source_node.id}' is not a compiled node"
            )
            return

        children: List[NodeRef] = []
        for child in parent.children:
            if child.ref_id == source_node.id:
                children.append(NodeRef(
                    type=NodeKind.parse(source_node.type),
                    next=target,
                    nodeId=source_node.id,
                    children=[],
                    message=self._message_of(source_node),
                    needResponse=False,
                ))
            else:
                children.append(child)

        node_map[parent.nodeId] = parent.model_copy(update={"children": children})

    @staticmethod
    def _message_of(node: VisualNode) -> str:
        if node.data is None:
            return ""
        return node.data.message or ""

    def compile_raw(self, nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]]) -> NodeMap:
        """
        Compile from plain dicts, dropping entries that are not even shaped like nodes or edges
        """
        visual_nodes: List[VisualNode] = []
        for raw_node in nodes or []:
            try:
                visual_nodes.append(VisualNode.model_validate(raw_node))
            except ValueError as e:
                self.log_util.warning(service_name="GraphCompilerService", message=f"Skipping malformed node: {str(e)}")

        visual_edges: List[VisualEdge] = []
        for raw_edge in edges or []:
            try:
                visual_edges.append(VisualEdge.model_validate(raw_edge))
            except ValueError as e:
                self.log_util.warning(service_name="GraphCompilerService", message=f"Skipping malformed edge: {str(e)}")

        return self.compile(visual_nodes, visual_edges)
