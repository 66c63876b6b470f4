"""
Chatbot Flow Service
Handles one inbound WhatsApp message end to end: picks the active or
triggered chatbot, resolves what to send, sends it in order and writes the
conversation state once.
"""
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime, timedelta
from pydantic import ValidationError

# Utils
from utils.log_utils import LogUtil

# Database
from database.chatbot_db import ChatbotDB

# Services
from services.interaction_resolver_service import InteractionResolverService
from services.whatsapp_send_service import WhatsAppSendService
from services.internal.workspace_service import WorkspaceService

# Models
from models.chatbot_data import ChatbotData
from models.chatbot_node import ChatbotNode, NodeMap
from models.conversation_state import ConversationState, CONVERSATION_OPEN, CONVERSATION_CLOSED
from models.interaction_result import InteractionResult
from models.request.webhook_message_request import WebhookMessageRequest


def matches_trigger(message: Optional[str], trigger: Optional[str], allow_contains: bool = True) -> bool:
    """
    Case-insensitive trigger match. "/menu" is matched by "/menu", "menu",
    and, when allow_contains is set, by any message containing either.
    """
    if not message or not trigger:
        return False
    message_text = message.lower().strip()
    trigger_text = trigger.lower().strip()
    if not message_text or not trigger_text:
        return False
    bare_trigger = trigger_text[1:] if trigger_text.startswith("/") else trigger_text

    if message_text == trigger_text or (bare_trigger and message_text == bare_trigger):
        return True
    if allow_contains:
        return trigger_text in message_text or bool(bare_trigger and bare_trigger in message_text)
    return False


def extract_reply(message_type: str, message_body: Dict[str, Any]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """
    Returns (text, button_id, button_title) from a WhatsApp message payload
    """
    if "user_reply" in message_body:
        return message_body["user_reply"], None, None

    if message_type == "text" and "text" in message_body:
        return message_body["text"].get("body", ""), None, None
    if message_type == "button" and "button" in message_body:
        # Template quick-reply buttons carry no node id, only text
        button = message_body["button"]
        return button.get("text", button.get("payload", "")), None, None
    if message_type == "interactive" and "interactive" in message_body:
        interactive_data = message_body.get("interactive", {})
        if interactive_data.get("type") == "button_reply":
            button_reply = interactive_data.get("button_reply", {})
            return None, button_reply.get("id"), button_reply.get("title")
        if interactive_data.get("type") == "list_reply":
            list_reply = interactive_data.get("list_reply", {})
            return None, list_reply.get("id"), list_reply.get("title")
    return None, None, None


class ChatbotFlowService:
    def __init__(
        self,
        log_util: LogUtil,
        chatbot_db: ChatbotDB,
        interaction_resolver_service: InteractionResolverService,
        whatsapp_send_service: WhatsAppSendService,
        workspace_service: WorkspaceService,
        chatbot_timeout_seconds: int = 720
    ):
        self.log_util = log_util
        self.chatbot_db = chatbot_db
        self.interaction_resolver_service = interaction_resolver_service
        self.whatsapp_send_service = whatsapp_send_service
        self.workspace_service = workspace_service
        self.chatbot_timeout_seconds = chatbot_timeout_seconds

    def load_node_map(self, chatbot: ChatbotData) -> NodeMap:
        """
        Build the node map from the stored JSON blob, skipping entries that no
        longer validate instead of failing the whole conversation
        """
        node_map: NodeMap = {}
        for node_id, raw_node in (chatbot.bot or {}).items():
            try:
                node_map[node_id] = ChatbotNode.model_validate({**raw_node, "nodeId": raw_node.get("nodeId") or node_id})
            except (ValidationError, AttributeError) as e:
                self.log_util.warning(
                    service_name="ChatbotFlowService",
                    message=f"Skipping invalid node '{node_id}' in chatbot {chatbot.id}: {str(e)}"
                )
        return node_map

    async def find_chatbot_by_trigger(self, message: Optional[str], state: ConversationState) -> Optional[ChatbotData]:
        """
        Exact (slash-insensitive) matches win over contains-matches. The
        workspace default bot only answers when no agent owns the chat.
        """
        if not message:
            return None

        chatbots = await self.chatbot_db.get_chatbots(state.workspace_id, published_only=True)
        candidates = [bot for bot in chatbots if not bot.default]
        if state.status == CONVERSATION_CLOSED:
            candidates += [bot for bot in chatbots if bot.default]

        for chatbot in candidates:
            if matches_trigger(message, chatbot.trigger, allow_contains=False):
                self.log_util.info(service_name="ChatbotFlowService", message=f"Found chatbot '{chatbot.name}' with exact trigger match")
                return chatbot
        for chatbot in candidates:
            if matches_trigger(message, chatbot.trigger):
                self.log_util.info(service_name="ChatbotFlowService", message=f"Found chatbot '{chatbot.name}' with partial trigger match")
                return chatbot
        return None

    async def handle_inbound(self, request: WebhookMessageRequest) -> Dict[str, Any]:
        text, button_id, button_title = extract_reply(request.message_type, request.message_body)
        interactive = button_id is not None or button_title is not None

        state = await self.chatbot_db.get_conversation_state(request.sender, request.workspace_id)
        if state is None:
            state = ConversationState(phone=request.sender, workspace_id=request.workspace_id)

        if request.message_id:
            if state.last_message_id == request.message_id:
                # Webhook re-delivery of a message this conversation already moved on from
                self.log_util.info(service_name="ChatbotFlowService", message=f"Duplicate message {request.message_id} from {request.sender} ignored")
                return self._unhandled(state, "Duplicate message ignored")
            state = state.model_copy(update={"last_message_id": request.message_id})

        chatbot: Optional[ChatbotData] = None
        abandoned = False
        if state.chatbot_id:
            chatbot = await self.chatbot_db.get_chatbot(state.chatbot_id)
            if chatbot is None:
                self.log_util.warning(
                    service_name="ChatbotFlowService",
                    message=f"Chatbot {state.chatbot_id} of conversation {request.sender} no longer exists"
                )
                state = state.clear_chatbot()
                abandoned = True

        if chatbot is not None:
            if state.is_expired():
                if interactive:
                    # A click on a button we sent still belongs to this flow
                    self.log_util.info(service_name="ChatbotFlowService", message=f"Timeout expired for {request.sender}, continuing on button click")
                elif matches_trigger(text, chatbot.trigger):
                    self.log_util.info(service_name="ChatbotFlowService", message=f"Trigger on expired chatbot {chatbot.id}, restarting flow")
                    return await self._start(chatbot, state.clear_chatbot())
                else:
                    self.log_util.info(service_name="ChatbotFlowService", message=f"Chatbot {chatbot.id} expired for {request.sender}")
                    state = state.clear_chatbot()
                    chatbot = None
                    abandoned = True

        if chatbot is not None:
            node_map = self.load_node_map(chatbot)
            if interactive:
                result = self.interaction_resolver_service.resolve_interaction(node_map, state, button_id, button_title)
            else:
                result = self.interaction_resolver_service.resolve_option_reply(node_map, state, text)

            if result.resolved:
                return await self._deliver(chatbot, state, result)

            self.log_util.info(
                service_name="ChatbotFlowService",
                message=f"Inbound message from {request.sender} not resolved in chatbot {chatbot.id}: {result.status.value}"
            )
            if interactive:
                return self._unhandled(state, f"Interaction not resolved: {result.status.value}")

        # No active flow, or the reply did not fit it: look for a trigger
        triggered = await self.find_chatbot_by_trigger(text, state)
        if triggered is not None:
            return await self._start(triggered, state.clear_chatbot())

        if abandoned:
            # Persist the abandoned wait so the next message starts clean
            await self.chatbot_db.save_conversation_state(state)
        return self._unhandled(state, "No chatbot matched the message")

    async def _start(self, chatbot: ChatbotData, state: ConversationState) -> Dict[str, Any]:
        node_map = self.load_node_map(chatbot)
        result = self.interaction_resolver_service.start_flow(node_map)
        if not result.resolved:
            self.log_util.warning(service_name="ChatbotFlowService", message=f"Chatbot {chatbot.id} produced no messages")
            return self._unhandled(state, "Chatbot produced no messages")
        self.log_util.info(service_name="ChatbotFlowService", message=f"Starting chatbot '{chatbot.name}' for {state.phone}")
        return await self._deliver(chatbot, state, result)

    async def _deliver(self, chatbot: ChatbotData, state: ConversationState, result: InteractionResult) -> Dict[str, Any]:
        """
        Send intents strictly in order, then write the conversation state once
        """
        sent_message_ids: List[str] = []
        hand_off = False

        if result.intents:
            workspace = await self.workspace_service.get_workspace_info(state.workspace_id)
            if workspace is None:
                self.log_util.error(service_name="ChatbotFlowService", message=f"Workspace {state.workspace_id} not found, nothing sent")
                return {
                    "status": "error",
                    "message": "Workspace not found",
                    "handled": False,
                    "chatbot_id": chatbot.id,
                    "current_node": state.current_node,
                    "sent_message_ids": [],
                    "error_details": f"Workspace {state.workspace_id} not found",
                }

            for intent in result.intents:
                send_result = await self.whatsapp_send_service.send(workspace, state.phone, intent)
                if send_result.message_id:
                    sent_message_ids.append(send_result.message_id)
                if intent.openChat:
                    hand_off = True

        if hand_off:
            new_state = state.clear_chatbot(status=CONVERSATION_OPEN)
        elif result.parked_node_id:
            new_state = state.model_copy(update={
                "chatbot_id": chatbot.id,
                "current_node": result.parked_node_id,
                "chatbot_timeout": datetime.utcnow() + timedelta(seconds=self.chatbot_timeout_seconds),
                "status": CONVERSATION_CLOSED,
            })
        else:
            new_state = state.clear_chatbot(status=CONVERSATION_CLOSED)

        saved_state = await self.chatbot_db.save_conversation_state(new_state)
        self.log_util.info(
            service_name="ChatbotFlowService",
            message=f"Chatbot {chatbot.id} sent {len(result.intents)} messages to {state.phone}, parked at {saved_state.current_node}"
        )

        return {
            "status": "success",
            "message": "Agent hand-off" if hand_off else "Chatbot messages sent",
            "handled": True,
            "chatbot_id": chatbot.id,
            "current_node": saved_state.current_node,
            "sent_message_ids": sent_message_ids,
        }

    @staticmethod
    def _unhandled(state: ConversationState, message: str) -> Dict[str, Any]:
        return {
            "status": "success",
            "message": message,
            "handled": False,
            "chatbot_id": state.chatbot_id,
            "current_node": state.current_node,
            "sent_message_ids": [],
        }
