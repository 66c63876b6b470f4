from unittest.mock import AsyncMock, Mock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from apis.chatbot_api import create_chatbot_api
from apis.webhook_message_api import create_webhook_message_api
from exceptions.chatbot_exception import ChatbotNotFoundException
from models.chatbot_data import ChatbotData

WEBHOOK_BODY = {
    "sender": "+15550001",
    "workspace_id": 7,
    "message_type": "text",
    "message_body": {"text": {"body": "/demo"}},
}


def make_client(log_util, chatbot_service=None, chatbot_flow_service=None):
    app = FastAPI()
    app.include_router(create_chatbot_api(log_util=log_util, chatbot_service=chatbot_service or Mock()))
    app.include_router(create_webhook_message_api(log_util=log_util, chatbot_flow_service=chatbot_flow_service or Mock()))
    return TestClient(app)


def test_chatbot_routes_require_workspace_header(log_util):
    client = make_client(log_util)

    assert client.get("/chatbot/list").status_code == 401
    assert client.get("/chatbot/list", headers={"x-workspace-id": "abc"}).status_code == 400


def test_list_chatbots(log_util):
    chatbot_service = Mock()
    chatbot_service.list_chatbots = AsyncMock(return_value=[ChatbotData(id="bot-1", workspace_id=7, name="Welcome")])
    client = make_client(log_util, chatbot_service=chatbot_service)

    response = client.get("/chatbot/list", headers={"x-workspace-id": "7"})

    assert response.status_code == 200
    assert response.json()[0]["id"] == "bot-1"
    chatbot_service.list_chatbots.assert_awaited_once_with(workspace_id=7)


def test_chatbot_exceptions_map_to_status(log_util):
    chatbot_service = Mock()
    chatbot_service.get_chatbot = AsyncMock(side_effect=ChatbotNotFoundException(message="Chatbot bot-9 not found"))
    client = make_client(log_util, chatbot_service=chatbot_service)

    response = client.get("/chatbot/detail/bot-9", headers={"x-workspace-id": "7"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Chatbot bot-9 not found"


def test_compile_preview_route(log_util):
    chatbot_service = Mock()
    chatbot_service.compile_preview = Mock(return_value={"start": {"nodeId": "start"}})
    client = make_client(log_util, chatbot_service=chatbot_service)

    response = client.post("/chatbot/compile", headers={"x-workspace-id": "7"}, json={"name": "Draft", "graph": {"nodes": [], "edges": []}})

    assert response.status_code == 200
    assert response.json() == {"start": {"nodeId": "start"}}


def test_webhook_message_returns_flow_result(log_util):
    chatbot_flow_service = Mock()
    chatbot_flow_service.handle_inbound = AsyncMock(return_value={
        "status": "success",
        "message": "Chatbot messages sent",
        "handled": True,
        "chatbot_id": "demo",
        "current_node": "btn_msg",
        "sent_message_ids": ["wamid.1"],
    })
    client = make_client(log_util, chatbot_flow_service=chatbot_flow_service)

    response = client.post("/webhook/message", json=WEBHOOK_BODY)

    assert response.status_code == 200
    body = response.json()
    assert body["handled"] is True
    assert body["current_node"] == "btn_msg"
    assert body["sent_message_ids"] == ["wamid.1"]


def test_webhook_message_never_fails_the_receiver(log_util):
    chatbot_flow_service = Mock()
    chatbot_flow_service.handle_inbound = AsyncMock(side_effect=RuntimeError("mongo down"))
    client = make_client(log_util, chatbot_flow_service=chatbot_flow_service)

    response = client.post("/webhook/message", json=WEBHOOK_BODY)

    assert response.status_code == 200
    assert response.json()["status"] == "error"
    assert response.json()["error_details"] == "mongo down"
    log_util.exception.assert_called_once()


def test_webhook_health(log_util):
    response = make_client(log_util).get("/webhook/health")

    assert response.json()["status"] == "healthy"
