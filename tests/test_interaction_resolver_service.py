from models.chatbot_node import ChatbotNode, NodeKind, NodeRef, FileType
from models.conversation_state import ConversationState
from models.interaction_result import InteractionStatus
from models.message_intent import MessageIntent, SendDirective
from services.interaction_resolver_service import choose_directive


def parked_at(node_id):
    return ConversationState(phone="+15550001", workspace_id=1, chatbot_id="bot", current_node=node_id)


def intent(**fields):
    fields.setdefault("nodeId", "n")
    fields.setdefault("type", NodeKind.CHAT_BOT_MSG_NODE)
    return MessageIntent(**fields)


def test_start_flow_projects_until_gate(resolver, button_bot):
    result = resolver.start_flow(button_bot)

    assert result.status == InteractionStatus.RESOLVED
    assert [i.nodeId for i in result.intents] == ["greeting", "btn_msg"]
    assert result.parked_node_id == "btn_msg"


def test_start_flow_without_start_node(resolver):
    result = resolver.start_flow({})

    assert result.status == InteractionStatus.EMPTY_FLOW
    assert not result.resolved
    assert result.intents == []


def test_button_click_resolves_to_next_node(resolver, button_bot):
    result = resolver.resolve_interaction(button_bot, parked_at("btn_msg"), "b1")

    assert result.resolved
    assert [i.nodeId for i in result.intents] == ["after"]
    assert result.parked_node_id is None
    assert choose_directive(result.intents[0]) == SendDirective.CTA


def test_button_click_parks_at_next_gate(resolver, button_bot):
    button_bot["b2"] = button_bot["b2"].model_copy(update={"next": "btn_msg"})

    result = resolver.resolve_interaction(button_bot, parked_at("btn_msg"), "b2")

    assert [i.nodeId for i in result.intents] == ["btn_msg"]
    assert result.parked_node_id == "btn_msg"


def test_unknown_button_is_reported(resolver, button_bot, log_util):
    result = resolver.resolve_interaction(button_bot, parked_at("btn_msg"), "zzz")

    assert result.status == InteractionStatus.BUTTON_NOT_FOUND
    assert result.intents == []
    log_util.warning.assert_called()


def test_button_title_falls_back_to_parked_children(resolver, button_bot):
    result = resolver.resolve_interaction(button_bot, parked_at("btn_msg"), "stale-id", button_title="No")

    assert result.resolved
    assert [i.nodeId for i in result.intents] == ["bye"]


def test_button_without_next_resolves_empty(resolver, button_bot):
    button_bot["b1"] = button_bot["b1"].model_copy(update={"next": None})

    result = resolver.resolve_interaction(button_bot, parked_at("btn_msg"), "b1")

    assert result.status == InteractionStatus.RESOLVED
    assert result.intents == []
    assert result.parked_node_id is None


def test_button_next_missing_resolves_empty(resolver, button_bot, log_util):
    button_bot["b1"] = button_bot["b1"].model_copy(update={"next": "ghost"})

    result = resolver.resolve_interaction(button_bot, parked_at("btn_msg"), "b1")

    assert result.resolved
    assert result.intents == []
    log_util.warning.assert_called()


def test_empty_node_still_sends_text(resolver, log_util):
    node_map = {
        "b": ChatbotNode(nodeId="b", type=NodeKind.BUTTON_NODE, next="empty"),
        "empty": ChatbotNode(nodeId="empty", type=NodeKind.CHAT_BOT_MSG_NODE),
    }

    result = resolver.resolve_interaction(node_map, None, "b")

    assert [i.message for i in result.intents] == [""]
    assert "empty text" in log_util.warning.call_args.kwargs["message"]


def option_bot():
    return {
        "menu": ChatbotNode(
            nodeId="menu",
            type=NodeKind.OPTION_MESSAGE_NODE,
            message="Pick a color\n1 Red\n2 Blue",
            children=[
                NodeRef(type=NodeKind.OPTION_NODE, nodeId="opt_a", next="red", message="Red", children=[], needResponse=False),
                NodeRef(id="opt_b", message="Blue"),
            ],
        ),
        "opt_a": ChatbotNode(nodeId="opt_a", type=NodeKind.OPTION_NODE, message="Red", next="red"),
        "opt_b": ChatbotNode(nodeId="opt_b", type=NodeKind.OPTION_NODE, message="Blue", next="blue"),
        "red": ChatbotNode(nodeId="red", type=NodeKind.CHAT_BOT_MSG_NODE, message="Red it is"),
        "blue": ChatbotNode(nodeId="blue", type=NodeKind.CHAT_BOT_MSG_NODE, message="Blue it is"),
    }


def test_numbered_option_reply(resolver):
    result = resolver.resolve_option_reply(option_bot(), parked_at("menu"), " 2 ")

    assert [i.nodeId for i in result.intents] == ["blue"]


def test_option_reply_by_text(resolver):
    result = resolver.resolve_option_reply(option_bot(), parked_at("menu"), "Red")

    assert [i.nodeId for i in result.intents] == ["red"]


def test_option_reply_out_of_range(resolver):
    result = resolver.resolve_option_reply(option_bot(), parked_at("menu"), "3")

    assert result.status == InteractionStatus.OPTION_NOT_FOUND


def test_option_reply_uses_reference_next_when_child_has_no_entry(resolver):
    node_map = option_bot()
    del node_map["opt_a"]

    result = resolver.resolve_option_reply(node_map, parked_at("menu"), "1")

    assert [i.nodeId for i in result.intents] == ["red"]


def test_option_reply_when_not_waiting(resolver):
    assert resolver.resolve_option_reply(option_bot(), parked_at("red"), "1").status == InteractionStatus.NOT_WAITING
    assert resolver.resolve_option_reply(option_bot(), None, "1").status == InteractionStatus.NOT_WAITING


def test_cta_beats_image():
    chosen = choose_directive(intent(
        message="Thanks!",
        cta={"buttonText": "Visit", "url": "https://x.com"},
        fileType=FileType.IMAGE,
        link="https://img",
    ))

    assert chosen == SendDirective.CTA


def test_directive_priority_order():
    location = {"latitude": 1.0, "longitude": 2.0}
    cta = {"buttonText": "Go", "url": "https://x.com"}
    api = {"endpoint": "https://api.example.com/hook"}
    buttons = [NodeRef(id="b1", message="Yes")]

    assert choose_directive(intent(type=NodeKind.BUTTON_MESSAGE_NODE, children=buttons, location=location)) == SendDirective.BUTTONS
    assert choose_directive(intent(location=location, cta=cta, api=api)) == SendDirective.LOCATION
    assert choose_directive(intent(cta=cta, api=api)) == SendDirective.CTA
    assert choose_directive(intent(api=api, fileType=FileType.VIDEO, link="https://v")) == SendDirective.API
    assert choose_directive(intent(fileType=FileType.VIDEO, link="https://v")) == SendDirective.VIDEO
    assert choose_directive(intent(fileType=FileType.AUDIO, link="https://a")) == SendDirective.AUDIO
    assert choose_directive(intent(fileType=FileType.IMAGE, link="")) == SendDirective.TEXT
    assert choose_directive(intent(type=NodeKind.BUTTON_MESSAGE_NODE)) == SendDirective.TEXT


def test_non_ascii_digits_do_not_count_as_option_numbers(resolver):
    for reply in ("²", "①", "3²"):
        result = resolver.resolve_option_reply(option_bot(), parked_at("menu"), reply)

        assert result.status == InteractionStatus.OPTION_NOT_FOUND


def test_button_title_fallback_matches_cut_title(resolver):
    node_map = {
        "ask": ChatbotNode(
            nodeId="ask",
            type=NodeKind.BUTTON_MESSAGE_NODE,
            message="How can we help?",
            children=[NodeRef(id="b_long", message="Talk to our sales team today")],
        ),
        "b_long": ChatbotNode(nodeId="b_long", type=NodeKind.BUTTON_NODE, message="Talk to our sales team today", next="sales"),
        "sales": ChatbotNode(nodeId="sales", type=NodeKind.CHAT_BOT_MSG_NODE, message="Connecting you to sales"),
    }

    result = resolver.resolve_interaction(node_map, parked_at("ask"), "stale-id", button_title="Talk to our sales te")

    assert [i.nodeId for i in result.intents] == ["sales"]


def test_typed_reply_must_match_full_option_text(resolver):
    result = resolver.resolve_option_reply(option_bot(), parked_at("menu"), "Re")

    assert result.status == InteractionStatus.OPTION_NOT_FOUND
