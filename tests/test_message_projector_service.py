from models.chatbot_node import ChatbotNode, NodeKind, NodeRef, FileType, STRUCTURAL_KINDS
from services.message_projector_service import MessageProjectorService


def test_structural_kinds_are_dropped_and_content_kept(log_util):
    projector = MessageProjectorService(log_util=log_util)
    nodes = [ChatbotNode(nodeId=kind.value, type=kind) for kind in NodeKind]

    intents = projector.project(nodes)

    projected = {intent.nodeId for intent in intents}
    assert projected == {kind.value for kind in NodeKind if kind not in STRUCTURAL_KINDS}
    assert [intent.nodeId for intent in intents] == [n.nodeId for n in nodes if n.type not in STRUCTURAL_KINDS]


def test_empty_message_node_is_still_projected(log_util):
    projector = MessageProjectorService(log_util=log_util)
    node = ChatbotNode(nodeId="pic", type=NodeKind.IMAGE_NODE, fileType="image", link="https://img/p.png")

    intents = projector.project([node])

    assert len(intents) == 1
    assert intents[0].message == ""
    assert intents[0].fileType == FileType.IMAGE
    assert intents[0].link == "https://img/p.png"


def test_intent_carries_node_fields(log_util):
    projector = MessageProjectorService(log_util=log_util)
    node = ChatbotNode(
        nodeId="ask",
        type=NodeKind.BUTTON_MESSAGE_NODE,
        message="Continue?",
        children=[NodeRef(id="yes", message="Yes")],
        location={"latitude": 1.5, "longitude": 2.5},
    )

    intent = projector.project([node])[0]

    assert intent.type == NodeKind.BUTTON_MESSAGE_NODE
    assert intent.children[0].ref_id == "yes"
    assert intent.location.latitude == 1.5
    assert intent.fileType == FileType.NONE
    assert intent.openChat is False


def test_chat_with_agent_opens_chat(log_util):
    projector = MessageProjectorService(log_util=log_util)
    node = ChatbotNode(nodeId="agent", type=NodeKind.CHAT_WITH_AGENT, message="Connecting you")

    assert projector.project([node])[0].openChat is True
