"""
Interaction Resolver Service
Decides what to send next for a conversation: on trigger start, on a button
click, or on a numbered/typed option reply. Also owns the priority order used
when one node carries several send directives.
"""
from typing import Optional, List

# Utils
from utils.log_utils import LogUtil

# Services
from services.flow_walker_service import FlowWalkerService
from services.message_projector_service import MessageProjectorService

# Models
from models.chatbot_node import ChatbotNode, NodeKind, NodeMap, NodeRef, FileType
from models.conversation_state import ConversationState
from models.interaction_result import InteractionResult, InteractionStatus
from models.message_intent import MessageIntent, SendDirective, MAX_BUTTON_TITLE_LENGTH

START_NODE_ID = "start"

MEDIA_DIRECTIVES = {
    FileType.IMAGE: SendDirective.IMAGE,
    FileType.VIDEO: SendDirective.VIDEO,
    FileType.AUDIO: SendDirective.AUDIO,
}


def choose_directive(intent: MessageIntent) -> SendDirective:
    """
    Pick the single directive to send for a node; first match wins.

    A node with both a CTA and a file only ever sends the CTA. This matches
    what existing bots do today and is kept until product decides otherwise.
    """
    if intent.type == NodeKind.BUTTON_MESSAGE_NODE and intent.children:
        return SendDirective.BUTTONS
    if intent.location is not None:
        return SendDirective.LOCATION
    if intent.cta is not None:
        return SendDirective.CTA
    if intent.api is not None:
        return SendDirective.API
    if intent.fileType in MEDIA_DIRECTIVES and intent.link:
        return MEDIA_DIRECTIVES[intent.fileType]
    return SendDirective.TEXT


class InteractionResolverService:
    def __init__(
        self,
        log_util: LogUtil,
        flow_walker_service: FlowWalkerService,
        message_projector_service: MessageProjectorService
    ):
        self.log_util = log_util
        self.flow_walker_service = flow_walker_service
        self.message_projector_service = message_projector_service

    def start_flow(self, node_map: NodeMap, start_id: str = START_NODE_ID) -> InteractionResult:
        """
        Walk a freshly triggered bot from its start node
        """
        walked = self.flow_walker_service.walk(node_map, start_id)
        if not walked:
            self.log_util.warning(service_name="InteractionResolverService", message=f"No nodes walked from start node '{start_id}'")
            return InteractionResult(status=InteractionStatus.EMPTY_FLOW, next_node_id=start_id)
        return self._result_from_walk(walked, start_id)

    def resolve_interaction(
        self,
        node_map: NodeMap,
        conversation_state: Optional[ConversationState],
        inbound_button_id: Optional[str],
        button_title: Optional[str] = None
    ) -> InteractionResult:
        """
        Resolve a button click to the intents that follow it.

        The button's own entry is looked up by id. Older bots sent button ids
        that are not map keys, so the title is matched against the parked
        node's children as a fallback.
        """
        button_node: Optional[ChatbotNode] = node_map.get(inbound_button_id) if inbound_button_id else None

        if button_node is None and button_title:
            parked_node = self._parked_node(node_map, conversation_state)
            if parked_node is not None:
                child = self._find_child_by_message(parked_node.children, button_title, MAX_BUTTON_TITLE_LENGTH)
                if child is not None:
                    self.log_util.info(
                        service_name="InteractionResolverService",
                        message=f"Button '{inbound_button_id}' matched by title '{button_title}' to child '{child.ref_id}'"
                    )
                    return self._resolve_child(node_map, child)

        if button_node is None:
            self.log_util.warning(
                service_name="InteractionResolverService",
                message=f"Button '{inbound_button_id}' not found in node map"
            )
            return InteractionResult(status=InteractionStatus.BUTTON_NOT_FOUND)

        return self._advance_from(node_map, button_node)

    def resolve_option_reply(
        self,
        node_map: NodeMap,
        conversation_state: Optional[ConversationState],
        text: Optional[str]
    ) -> InteractionResult:
        """
        Resolve a typed reply to the parked node's options: either the 1-based
        number shown in the menu or the option's exact text.
        """
        parked_node = self._parked_node(node_map, conversation_state)
        if parked_node is None or not parked_node.children:
            return InteractionResult(status=InteractionStatus.NOT_WAITING)

        reply = (text or "").strip()
        child: Optional[NodeRef] = None
        if reply.isdecimal():
            option = int(reply)
            if 1 <= option <= len(parked_node.children):
                child = parked_node.children[option - 1]
        if child is None:
            child = self._find_child_by_message(parked_node.children, reply)

        if child is None:
            self.log_util.info(
                service_name="InteractionResolverService",
                message=f"Reply '{reply}' does not match any of {len(parked_node.children)} options of node '{parked_node.nodeId}'"
            )
            return InteractionResult(status=InteractionStatus.OPTION_NOT_FOUND)

        return self._resolve_child(node_map, child)

    def _resolve_child(self, node_map: NodeMap, child: NodeRef) -> InteractionResult:
        child_node = node_map.get(child.ref_id) if child.ref_id else None
        if child_node is not None:
            return self._advance_from(node_map, child_node)

        # Child has no entry of its own, fall back to the link carried on the reference
        if child.next:
            return self._walk_from(node_map, child.next)

        self.log_util.warning(
            service_name="InteractionResolverService",
            message=f"Option '{child.ref_id}' has no node and no next, flow ends"
        )
        return InteractionResult(status=InteractionStatus.RESOLVED)

    def _advance_from(self, node_map: NodeMap, choice_node: ChatbotNode) -> InteractionResult:
        if not choice_node.next:
            self.log_util.info(
                service_name="InteractionResolverService",
                message=f"Choice '{choice_node.nodeId}' has no next node, flow ends"
            )
            return InteractionResult(status=InteractionStatus.RESOLVED)
        return self._walk_from(node_map, choice_node.next)

    def _walk_from(self, node_map: NodeMap, next_node_id: str) -> InteractionResult:
        walked = self.flow_walker_service.walk(node_map, next_node_id)
        if not walked:
            self.log_util.warning(
                service_name="InteractionResolverService",
                message=f"Next node '{next_node_id}' not found, flow ends"
            )
            return InteractionResult(status=InteractionStatus.RESOLVED, next_node_id=next_node_id)
        return self._result_from_walk(walked, next_node_id)

    def _result_from_walk(self, walked: List[ChatbotNode], next_node_id: str) -> InteractionResult:
        intents = self.message_projector_service.project(walked)
        for intent in intents:
            if not intent.message and choose_directive(intent) == SendDirective.TEXT:
                self.log_util.warning(
                    service_name="InteractionResolverService",
                    message=f"Node '{intent.nodeId}' has no message and no directive, sending empty text"
                )

        last_node = walked[-1]
        return InteractionResult(
            status=InteractionStatus.RESOLVED,
            intents=intents,
            parked_node_id=last_node.nodeId if last_node.needResponse else None,
            next_node_id=next_node_id,
        )

    @staticmethod
    def _parked_node(node_map: NodeMap, conversation_state: Optional[ConversationState]) -> Optional[ChatbotNode]:
        if conversation_state is None or not conversation_state.current_node:
            return None
        return node_map.get(conversation_state.current_node)

    @staticmethod
    def _find_child_by_message(children: List[NodeRef], message: str, title_length: Optional[int] = None) -> Optional[NodeRef]:
        """
        Exact match on the option text. Button titles come back from WhatsApp
        cut to title_length, so those also match on the cut text.
        """
        for child in children:
            if child.message == message:
                return child
            if title_length and child.message[:title_length] == message:
                return child
        return None
