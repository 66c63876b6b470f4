from motor.motor_asyncio import AsyncIOMotorClient
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
import urllib.parse
import threading
import asyncio
from typing import Optional, List, Dict, Any
from datetime import datetime
import weakref
from pymongo.errors import NetworkTimeout, ServerSelectionTimeoutError, ConnectionFailure

# Utils
from utils.log_utils import LogUtil
from utils.environment_utils import EnvironmentUtils

# Exceptions
from exceptions.chatbot_exception import ChatbotDBException

# Models
from models.chatbot_data import ChatbotData
from models.conversation_state import ConversationState

"""
Database class for chatbot and conversation state operations
"""
class ChatbotDB:
    def __init__(self, log_util: LogUtil, environment_utils: EnvironmentUtils):

        # Initialize logger
        self.log_util = log_util

        # Initialize environment utils
        self.environment_utils = environment_utils

        # Mongo credentials
        self.username = urllib.parse.quote_plus(self.environment_utils.get_env_variable("MONGO_USERNAME"))
        self.password = urllib.parse.quote_plus(self.environment_utils.get_env_variable("MONGO_PASSWORD"))
        self.auth_source = self.environment_utils.get_env_variable("MONGO_AUTH_SOURCE")
        self.host = self.environment_utils.get_env_variable("MONGO_HOST")
        self.port = int(self.environment_utils.get_env_variable("MONGO_PORT"))
        self.db_name = self.environment_utils.get_env_variable("MONGO_DB_NAME")

        # Mongo Connection Pool Configs
        self.max_pool_size = 50
        self.min_pool_size = 0  # Create connections on-demand instead of at startup
        self.max_idle_time_ms = 30000
        self.wait_queue_timeout_ms = 10000
        self.connect_timeout_ms = 10000
        self.server_selection_timeout_ms = 10000
        self.socket_timeout_ms = 10000

        # One client per event loop, created lazily on first use
        self._clients = {}  # {loop_id: {client, db, collections, loop}}

        # Thread-safe initialization lock
        self._client_lock = threading.Lock()

    def _get_client_for_current_loop(self):
        """
        Get the MongoDB client and collections for the current event loop,
        creating them on first use. Motor clients are bound to the loop they
        were created on, so each loop gets its own.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError("No event loop available. Database methods must be called from an async context.")

        loop_id = id(loop)

        if loop_id in self._clients:
            return self._clients[loop_id]

        with self._client_lock:
            # Double-check after acquiring lock
            if loop_id in self._clients:
                return self._clients[loop_id]

            client = AsyncIOMotorClient(
                f"mongodb://{self.username}:{self.password}@{self.host}:{self.port}/?authSource={self.auth_source}",
                maxPoolSize=self.max_pool_size,
                minPoolSize=self.min_pool_size,
                maxIdleTimeMS=self.max_idle_time_ms,
                waitQueueTimeoutMS=self.wait_queue_timeout_ms,
                connectTimeoutMS=self.connect_timeout_ms,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                socketTimeoutMS=self.socket_timeout_ms,
                retryWrites=True,
                retryReads=True
            )
            db = client[self.db_name]

            client_data = {
                'client': client,
                'db': db,
                'collections': {
                    'chatbots': db.chatbots,
                    'conversations': db.conversations,
                },
                'loop': weakref.ref(loop)
            }
            self._clients[loop_id] = client_data

            self.log_util.info(
                service_name="ChatbotDB",
                message=f"MongoDB client initialized for event loop {loop_id} (lazy initialization)"
            )

            return client_data

    def close(self):
        """
        Close all MongoDB clients
        """
        with self._client_lock:
            for loop_id, client_data in self._clients.items():
                try:
                    client_data['client'].close()
                except Exception as e:
                    self.log_util.warning(
                        service_name="ChatbotDB",
                        message=f"Error closing client for loop {loop_id}: {str(e)}"
                    )
            self._clients.clear()
            self.log_util.info(service_name="ChatbotDB", message="All MongoDB clients closed")

    def _handle_db_operation(self, operation_name: str, error: Exception) -> None:
        """
        Log a failed write and re-raise it as ChatbotDBException
        """
        if isinstance(error, (NetworkTimeout, ServerSelectionTimeoutError, ConnectionFailure)):
            self.log_util.error(
                service_name="ChatbotDB",
                message=f"Database connection error in {operation_name}: {str(error)}"
            )
            raise ChatbotDBException(
                message=f"Database connection error: {str(error)}",
                status_code=503
            )
        self.log_util.error(
            service_name="ChatbotDB",
            message=f"Error in {operation_name}: {str(error)}"
        )
        raise ChatbotDBException(
            message=f"Database error: {str(error)}",
            status_code=500
        )

    @staticmethod
    def _to_chatbot(document: Dict[str, Any]) -> ChatbotData:
        document["id"] = str(document.pop("_id"))
        return ChatbotData.model_validate(document)

    # Chatbot CRUD operations
    async def create_chatbot(self, chatbot: ChatbotData) -> ChatbotData:
        client_data = self._get_client_for_current_loop()
        try:
            chatbot_dict = chatbot.model_dump(mode="json", exclude={"id"})
            chatbot_dict["created_at"] = chatbot.created_at
            chatbot_dict["updated_at"] = chatbot.updated_at
            result = await client_data['collections']['chatbots'].insert_one(chatbot_dict)
            return chatbot.model_copy(update={"id": str(result.inserted_id)})
        except Exception as e:
            self._handle_db_operation("create_chatbot", e)

    async def update_chatbot(self, chatbot_id: str, chatbot: ChatbotData) -> Optional[ChatbotData]:
        client_data = self._get_client_for_current_loop()
        try:
            chatbot_dict = chatbot.model_dump(mode="json", exclude={"id", "created_at"})
            chatbot_dict["updated_at"] = datetime.utcnow()
            result = await client_data['collections']['chatbots'].find_one_and_update(
                {"_id": ObjectId(chatbot_id), "workspace_id": chatbot.workspace_id},
                {"$set": chatbot_dict},
                return_document=ReturnDocument.AFTER
            )
            if result is None:
                return None
            return self._to_chatbot(result)
        except InvalidId:
            return None
        except Exception as e:
            self._handle_db_operation("update_chatbot", e)

    async def get_chatbot(self, chatbot_id: str, workspace_id: Optional[int] = None) -> Optional[ChatbotData]:
        client_data = self._get_client_for_current_loop()
        try:
            query: Dict[str, Any] = {"_id": ObjectId(chatbot_id)}
            if workspace_id is not None:
                query["workspace_id"] = workspace_id
            result = await client_data['collections']['chatbots'].find_one(query)
            if result is None:
                return None
            return self._to_chatbot(result)
        except InvalidId:
            return None
        except Exception as e:
            self.log_util.error(service_name="ChatbotDB", message=f"Error getting chatbot: {str(e)}")
            return None

    async def get_chatbots(self, workspace_id: int, published_only: bool = False) -> List[ChatbotData]:
        client_data = self._get_client_for_current_loop()
        try:
            query: Dict[str, Any] = {"workspace_id": workspace_id}
            if published_only:
                query["publish"] = True
            cursor = client_data['collections']['chatbots'].find(query)
            chatbots: List[ChatbotData] = []
            async for chatbot_dict in cursor:
                chatbots.append(self._to_chatbot(chatbot_dict))
            return chatbots
        except Exception as e:
            self.log_util.error(service_name="ChatbotDB", message=f"Error getting chatbots: {str(e)}")
            return []

    async def delete_chatbot(self, chatbot_id: str, workspace_id: int) -> bool:
        client_data = self._get_client_for_current_loop()
        try:
            result = await client_data['collections']['chatbots'].delete_one(
                {"_id": ObjectId(chatbot_id), "workspace_id": workspace_id}
            )
            if result.deleted_count == 0:
                return False
            # Conversations parked in the deleted bot fall back to no bot
            await client_data['collections']['conversations'].update_many(
                {"chatbot_id": chatbot_id},
                {"$set": {"chatbot_id": None, "current_node": None, "chatbot_timeout": None, "updated_at": datetime.utcnow()}}
            )
            return True
        except InvalidId:
            return False
        except Exception as e:
            self._handle_db_operation("delete_chatbot", e)

    # Conversation state operations
    async def get_conversation_state(self, phone: str, workspace_id: int) -> Optional[ConversationState]:
        client_data = self._get_client_for_current_loop()
        try:
            result = await client_data['collections']['conversations'].find_one(
                {"phone": phone, "workspace_id": workspace_id}
            )
            if result is None:
                return None
            result["id"] = str(result.pop("_id"))
            return ConversationState.model_validate(result)
        except Exception as e:
            self.log_util.error(service_name="ChatbotDB", message=f"Error getting conversation state: {str(e)}")
            return None

    async def save_conversation_state(self, state: ConversationState) -> ConversationState:
        """
        Upsert the conversation state for (phone, workspace_id)
        """
        client_data = self._get_client_for_current_loop()
        try:
            state_dict = state.model_dump(exclude={"id", "created_at"})
            state_dict["updated_at"] = datetime.utcnow()
            result = await client_data['collections']['conversations'].find_one_and_update(
                {"phone": state.phone, "workspace_id": state.workspace_id},
                {"$set": state_dict, "$setOnInsert": {"created_at": state.created_at}},
                upsert=True,
                return_document=ReturnDocument.AFTER
            )
            result["id"] = str(result.pop("_id"))
            return ConversationState.model_validate(result)
        except Exception as e:
            self._handle_db_operation("save_conversation_state", e)
