from unittest.mock import AsyncMock, Mock

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from database.chatbot_db import ChatbotDB
from exceptions.chatbot_exception import ChatbotDBException
from models.conversation_state import ConversationState

ENV = {
    "MONGO_USERNAME": "user",
    "MONGO_PASSWORD": "p@ss",
    "MONGO_AUTH_SOURCE": "admin",
    "MONGO_HOST": "localhost",
    "MONGO_PORT": 27017,
    "MONGO_DB_NAME": "chatbot_db",
}


@pytest.fixture
def chatbot_db(log_util):
    environment_utils = Mock()
    environment_utils.get_env_variable = Mock(side_effect=ENV.__getitem__)
    return ChatbotDB(log_util=log_util, environment_utils=environment_utils)


def with_collections(chatbot_db, **collections):
    chatbot_db._get_client_for_current_loop = Mock(return_value={"collections": collections})


def test_credentials_are_url_quoted(chatbot_db):
    assert chatbot_db.password == "p%40ss"
    assert chatbot_db.port == 27017


def test_connection_errors_raise_503(chatbot_db):
    with pytest.raises(ChatbotDBException) as exc_info:
        chatbot_db._handle_db_operation("save", ServerSelectionTimeoutError("no servers"))

    assert exc_info.value.status_code == 503


def test_other_errors_raise_500(chatbot_db):
    with pytest.raises(ChatbotDBException) as exc_info:
        chatbot_db._handle_db_operation("save", RuntimeError("boom"))

    assert exc_info.value.status_code == 500


def test_to_chatbot_exposes_string_id():
    object_id = ObjectId()
    chatbot = ChatbotDB._to_chatbot({"_id": object_id, "workspace_id": 7, "name": "Welcome", "bot": {}})

    assert chatbot.id == str(object_id)
    assert chatbot.graph.nodes == []


@pytest.mark.asyncio
async def test_get_chatbot_with_malformed_id_is_none(chatbot_db):
    chatbots = Mock()
    chatbots.find_one = AsyncMock()
    with_collections(chatbot_db, chatbots=chatbots)

    assert await chatbot_db.get_chatbot("not-an-object-id") is None
    chatbots.find_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_save_conversation_state_upserts_by_phone_and_workspace(chatbot_db):
    object_id = ObjectId()
    conversations = Mock()
    conversations.find_one_and_update = AsyncMock(return_value={
        "_id": object_id, "phone": "+15550001", "workspace_id": 7, "current_node": "menu", "status": "closed",
    })
    with_collections(chatbot_db, conversations=conversations)

    saved = await chatbot_db.save_conversation_state(
        ConversationState(phone="+15550001", workspace_id=7, chatbot_id="bot-1", current_node="menu")
    )

    assert saved.id == str(object_id)
    query, update = conversations.find_one_and_update.await_args.args
    assert query == {"phone": "+15550001", "workspace_id": 7}
    assert update["$set"]["current_node"] == "menu"
    assert "created_at" in update["$setOnInsert"]
    assert conversations.find_one_and_update.await_args.kwargs["upsert"] is True


@pytest.mark.asyncio
async def test_save_conversation_state_failure_raises(chatbot_db):
    conversations = Mock()
    conversations.find_one_and_update = AsyncMock(side_effect=RuntimeError("write failed"))
    with_collections(chatbot_db, conversations=conversations)

    with pytest.raises(ChatbotDBException):
        await chatbot_db.save_conversation_state(ConversationState(phone="+15550001", workspace_id=7))
