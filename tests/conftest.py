from unittest.mock import Mock

import pytest

from models.chatbot_node import ChatbotNode, NodeKind, NodeRef
from services.flow_walker_service import FlowWalkerService
from services.message_projector_service import MessageProjectorService
from services.interaction_resolver_service import InteractionResolverService


@pytest.fixture
def log_util():
    # Stands in for LogUtil so tests never reach Loki
    return Mock()


@pytest.fixture
def resolver(log_util):
    return InteractionResolverService(
        log_util=log_util,
        flow_walker_service=FlowWalkerService(log_util=log_util),
        message_projector_service=MessageProjectorService(log_util=log_util),
    )


@pytest.fixture
def button_bot():
    """start -> greeting -> btn_msg [b1: Yes -> after, b2: No -> bye]"""
    return {
        "start": ChatbotNode(nodeId="start", type=NodeKind.START_NODE, next="greeting"),
        "greeting": ChatbotNode(nodeId="greeting", type=NodeKind.CHAT_BOT_MSG_NODE, message="Hello!", next="btn_msg"),
        "btn_msg": ChatbotNode(
            nodeId="btn_msg",
            type=NodeKind.BUTTON_MESSAGE_NODE,
            message="Do you want a demo?",
            children=[NodeRef(id="b1", message="Yes"), NodeRef(id="b2", message="No")],
        ),
        "b1": ChatbotNode(nodeId="b1", type=NodeKind.BUTTON_NODE, message="Yes", next="after"),
        "b2": ChatbotNode(nodeId="b2", type=NodeKind.BUTTON_NODE, message="No", next="bye"),
        "after": ChatbotNode(
            nodeId="after",
            type=NodeKind.CHAT_BOT_MSG_NODE,
            message="Thanks!",
            cta={"buttonText": "Visit", "url": "https://x.com"},
            fileType="image",
            link="https://img",
        ),
        "bye": ChatbotNode(nodeId="bye", type=NodeKind.CHAT_BOT_MSG_NODE, message="Maybe next time"),
    }
