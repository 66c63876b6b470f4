from typing import Optional, List, Dict, Any
from datetime import datetime

# Utils
from utils.log_utils import LogUtil

# Database
from database.chatbot_db import ChatbotDB

# Services
from services.graph_compiler_service import GraphCompilerService

# Models
from models.chatbot_data import ChatbotData
from models.chatbot_node import dump_node_map
from models.request.chatbot_request import ChatbotRequest

# Exceptions
from exceptions.chatbot_exception import ChatbotException, ChatbotServiceException, ChatbotNotFoundException, ChatbotValidationException


def normalize_trigger(trigger: Optional[str]) -> Optional[str]:
    if trigger is None:
        return None
    trigger = trigger.strip()
    if not trigger:
        return None
    if not trigger.startswith("/"):
        return "/" + trigger
    return trigger


class ChatbotService:
    def __init__(self, log_util: LogUtil, chatbot_db: ChatbotDB, graph_compiler_service: GraphCompilerService):
        self.log_util = log_util
        self.chatbot_db = chatbot_db
        self.graph_compiler_service = graph_compiler_service

    def compile_preview(self, request: ChatbotRequest) -> Dict[str, Any]:
        """
        Compile a graph without saving it, so the builder can show the result
        """
        node_map = self.graph_compiler_service.compile(request.graph.nodes, request.graph.edges)
        return dump_node_map(node_map)

    def _build_chatbot(self, workspace_id: int, request: ChatbotRequest) -> ChatbotData:
        if not request.name or not request.name.strip():
            raise ChatbotValidationException(message="Chatbot name is required")

        # The node map is rebuilt wholesale on every save
        node_map = self.graph_compiler_service.compile(request.graph.nodes, request.graph.edges)
        return ChatbotData(
            workspace_id=workspace_id,
            name=request.name.strip(),
            trigger=normalize_trigger(request.trigger),
            publish=request.publish,
            default=request.default,
            graph=request.graph,
            bot=dump_node_map(node_map),
        )

    async def create_chatbot(self, workspace_id: int, request: ChatbotRequest) -> ChatbotData:
        try:
            chatbot = self._build_chatbot(workspace_id, request)
            saved = await self.chatbot_db.create_chatbot(chatbot)
            self.log_util.info(
                service_name="ChatbotService",
                message=f"Chatbot '{saved.name}' created with ID {saved.id} ({len(saved.bot)} nodes)"
            )
            return saved
        except ChatbotException:
            raise
        except Exception as e:
            self.log_util.error(service_name="ChatbotService", message=f"Error creating chatbot: {str(e)}")
            raise ChatbotServiceException(message=f"Error creating chatbot: {str(e)}")

    async def update_chatbot(self, workspace_id: int, chatbot_id: str, request: ChatbotRequest) -> ChatbotData:
        try:
            chatbot = self._build_chatbot(workspace_id, request)
            chatbot.updated_at = datetime.utcnow()
            updated = await self.chatbot_db.update_chatbot(chatbot_id, chatbot)
            if updated is None:
                raise ChatbotNotFoundException(message=f"Chatbot {chatbot_id} not found")
            self.log_util.info(
                service_name="ChatbotService",
                message=f"Chatbot {chatbot_id} updated ({len(updated.bot)} nodes)"
            )
            return updated
        except ChatbotException:
            raise
        except Exception as e:
            self.log_util.error(service_name="ChatbotService", message=f"Error updating chatbot: {str(e)}")
            raise ChatbotServiceException(message=f"Error updating chatbot: {str(e)}")

    async def get_chatbot(self, workspace_id: int, chatbot_id: str) -> ChatbotData:
        chatbot = await self.chatbot_db.get_chatbot(chatbot_id, workspace_id=workspace_id)
        if chatbot is None:
            raise ChatbotNotFoundException(message=f"Chatbot {chatbot_id} not found")
        return chatbot

    async def list_chatbots(self, workspace_id: int) -> List[ChatbotData]:
        return await self.chatbot_db.get_chatbots(workspace_id)

    async def delete_chatbot(self, workspace_id: int, chatbot_id: str) -> Dict[str, Any]:
        deleted = await self.chatbot_db.delete_chatbot(chatbot_id, workspace_id)
        if not deleted:
            raise ChatbotNotFoundException(message=f"Chatbot {chatbot_id} not found")
        self.log_util.info(service_name="ChatbotService", message=f"Chatbot {chatbot_id} deleted")
        return {"status": "success", "chatbot_id": chatbot_id}
