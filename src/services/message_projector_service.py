from typing import List

# Utils
from utils.log_utils import LogUtil

# Models
from models.chatbot_node import ChatbotNode, NodeKind, STRUCTURAL_KINDS
from models.message_intent import MessageIntent


class MessageProjectorService:
    def __init__(self, log_util: LogUtil):
        self.log_util = log_util

    def project(self, nodes: List[ChatbotNode]) -> List[MessageIntent]:
        """
        Map walked nodes to message intents, in order.
        Start markers and choice leaves (buttons, options) carry routing only and are dropped.
        """
        intents: List[MessageIntent] = []
        for node in nodes:
            if node.type in STRUCTURAL_KINDS:
                continue
            intents.append(self.to_intent(node))
        self.log_util.debug(service_name="MessageProjectorService", message=f"Projected {len(intents)} intents from {len(nodes)} walked nodes")
        return intents

    @staticmethod
    def to_intent(node: ChatbotNode) -> MessageIntent:
        return MessageIntent(
            nodeId=node.nodeId,
            message=node.message,
            link=node.link,
            fileType=node.fileType,
            openChat=node.type == NodeKind.CHAT_WITH_AGENT,
            type=node.type,
            children=list(node.children),
            location=node.location,
            cta=node.cta,
            api=node.api,
        )
