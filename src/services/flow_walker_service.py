from typing import Optional, List, Set

# Utils
from utils.log_utils import LogUtil

# Models
from models.chatbot_node import ChatbotNode, NodeMap

DEFAULT_MAX_WALK_LENGTH = 100


class FlowWalkerService:
    """
    Walks the `next` chain of a compiled node map.
    Pure with respect to the node map: same arguments, same list.
    """

    def __init__(self, log_util: LogUtil, max_walk_length: int = DEFAULT_MAX_WALK_LENGTH):
        self.log_util = log_util
        self.max_walk_length = max_walk_length

    def walk(self, node_map: NodeMap, start_id: Optional[str]) -> List[ChatbotNode]:
        """
        Collect nodes from start_id along `next`, up to and including the first
        node that needs a response, or the last node before a missing target.
        """
        walked: List[ChatbotNode] = []
        visited: Set[str] = set()
        current_id = start_id

        if not current_id or current_id not in node_map:
            self.log_util.warning(service_name="FlowWalkerService", message=f"Start node '{start_id}' not found in node map")
            return walked

        while current_id:
            node = node_map.get(current_id)
            if node is None:
                self.log_util.warning(
                    service_name="FlowWalkerService",
                    message=f"Node '{current_id}' referenced by '{walked[-1].nodeId}' not found, ending flow"
                )
                break

            if current_id in visited:
                self.log_util.warning(
                    service_name="FlowWalkerService",
                    message=f"Cycle detected at node '{current_id}' while walking from '{start_id}', stopping"
                )
                break
            if len(walked) >= self.max_walk_length:
                self.log_util.warning(
                    service_name="FlowWalkerService",
                    message=f"Walk from '{start_id}' exceeded {self.max_walk_length} nodes, stopping"
                )
                break

            visited.add(current_id)
            walked.append(node)

            if node.needResponse:
                self.log_util.debug(service_name="FlowWalkerService", message=f"Node '{current_id}' needs response, stopping")
                break

            current_id = node.next

        return walked
