from fastapi import APIRouter
from typing import Dict, Any

# Utils
from utils.log_utils import LogUtil

# Services
from services.chatbot_flow_service import ChatbotFlowService

# Models
from models.request.webhook_message_request import WebhookMessageRequest
from models.response.webhook_message_response import WebhookMessageResponse


def create_webhook_message_api(
    log_util: LogUtil,
    chatbot_flow_service: ChatbotFlowService
) -> APIRouter:
    """
    Create API router for inbound WhatsApp messages. The webhook receiver
    forwards every customer message here to let a chatbot answer it.
    """
    router = APIRouter(
        prefix="/webhook",
        tags=["webhook"],
    )

    @router.post("/message", response_model=WebhookMessageResponse)
    async def process_webhook_message(request: WebhookMessageRequest) -> WebhookMessageResponse:
        """
        Process an inbound message:
        1. Loads the conversation state for the sender
        2. Continues the active chatbot or starts one whose trigger matches
        3. Sends the resulting messages in order
        4. Saves the parked node once all messages went out
        """
        try:
            result = await chatbot_flow_service.handle_inbound(request)

            return WebhookMessageResponse(
                status=result.get("status", "success"),
                message=result.get("message", "Webhook message processed successfully"),
                handled=result.get("handled", False),
                chatbot_id=result.get("chatbot_id"),
                current_node=result.get("current_node"),
                sent_message_ids=result.get("sent_message_ids", []),
                error_details=result.get("error_details")
            )

        except Exception as e:
            log_util.exception(
                service_name="WebhookMessageAPI",
                message=f"Error processing webhook message for {request.sender}: {str(e)}"
            )

            # The webhook receiver treats any non-2xx as a retry signal
            return WebhookMessageResponse(
                status="error",
                message="Error processing webhook message",
                handled=False,
                error_details=str(e)
            )

    @router.get("/health")
    async def webhook_health_check() -> Dict[str, Any]:
        """Health check endpoint for webhook API"""
        return {
            "status": "healthy",
            "api": "webhook_message_api",
            "service": "chatbot_flow_service"
        }

    return router
