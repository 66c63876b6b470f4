from typing import Optional, Dict, Any, List
import httpx

# Utils
from utils.log_utils import LogUtil

# Services
from services.interaction_resolver_service import choose_directive

# Models
from models.chatbot_node import MEDIA_FILE_TYPES
from models.message_intent import MessageIntent, SendDirective, MAX_BUTTON_TITLE_LENGTH
from models.response.send_result import SendResult
from models.response.workspace.workspace_info import WorkspaceInfo

MAX_REPLY_BUTTONS = 3


class WhatsAppSendService:
    """
    Sends message intents over the WhatsApp Cloud API, one Graph API call per intent.
    Never raises on transport failures; the caller gets a SendResult with status "error".
    """

    def __init__(
        self,
        log_util: LogUtil,
        facebook_base_endpoint: str,
        media_base_url: str,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.log_util = log_util
        self.facebook_base_endpoint = facebook_base_endpoint.rstrip("/")
        self.media_base_url = media_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport)

    async def send(self, workspace: WorkspaceInfo, phone: str, intent: MessageIntent) -> SendResult:
        directive = choose_directive(intent)

        if intent.fileType in MEDIA_FILE_TYPES and not intent.link and directive == SendDirective.TEXT:
            self.log_util.warning(
                service_name="WhatsAppSendService",
                message=f"Node {intent.nodeId} has fileType '{intent.fileType.value}' but no link, sending text only"
            )
        if directive == SendDirective.CTA and intent.fileType in MEDIA_FILE_TYPES:
            self.log_util.warning(
                service_name="WhatsAppSendService",
                message=f"Node {intent.nodeId} has both CTA and {intent.fileType.value} file, file is not sent"
            )

        if directive == SendDirective.API:
            return await self._call_node_api(intent)

        body = self.build_message_body(phone, intent, directive)
        return await self._post_message(workspace, intent, directive, body)

    def build_message_body(self, phone: str, intent: MessageIntent, directive: SendDirective) -> Dict[str, Any]:
        """
        Build the Graph API /messages payload for one directive
        """
        body: Dict[str, Any] = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": phone,
        }

        if directive == SendDirective.BUTTONS:
            body["type"] = "interactive"
            body["interactive"] = {
                "type": "button",
                "body": {"text": intent.message},
                "action": {"buttons": self._reply_buttons(intent)},
            }
        elif directive == SendDirective.LOCATION:
            location = intent.location
            body["type"] = "location"
            body["location"] = {
                "latitude": location.latitude,
                "longitude": location.longitude,
                "name": location.name or "",
                "address": location.address,
            }
        elif directive == SendDirective.CTA:
            cta = intent.cta
            body["type"] = "interactive"
            body["interactive"] = {
                "type": "cta_url",
                "body": {"text": intent.message or cta.buttonText},
                "action": {
                    "name": "cta_url",
                    "parameters": {"display_text": cta.buttonText, "url": cta.url},
                },
            }
        elif directive in (SendDirective.IMAGE, SendDirective.VIDEO):
            media_type = directive.value
            body["type"] = media_type
            body[media_type] = {"link": self.absolute_link(intent.link), "caption": intent.message}
        elif directive == SendDirective.AUDIO:
            # Audio messages do not accept a caption
            body["type"] = "audio"
            body["audio"] = {"link": self.absolute_link(intent.link)}
        else:
            body["type"] = "text"
            body["text"] = {"body": intent.message}

        return body

    def _reply_buttons(self, intent: MessageIntent) -> List[Dict[str, Any]]:
        if len(intent.children) > MAX_REPLY_BUTTONS:
            self.log_util.warning(
                service_name="WhatsAppSendService",
                message=f"Node {intent.nodeId} has {len(intent.children)} buttons, only the first {MAX_REPLY_BUTTONS} are sent"
            )
        buttons = []
        for child in intent.children[:MAX_REPLY_BUTTONS]:
            buttons.append({
                "type": "reply",
                "reply": {"id": child.ref_id, "title": child.message[:MAX_BUTTON_TITLE_LENGTH]},
            })
        return buttons

    def absolute_link(self, link: Optional[str]) -> Optional[str]:
        if link and not link.startswith("http"):
            return f"{self.media_base_url}/{link.lstrip('/')}"
        return link

    async def _post_message(
        self,
        workspace: WorkspaceInfo,
        intent: MessageIntent,
        directive: SendDirective,
        body: Dict[str, Any]
    ) -> SendResult:
        endpoint = f"{self.facebook_base_endpoint}/{workspace.phone_id}/messages"
        try:
            async with self._client() as client:
                response = await client.post(
                    endpoint,
                    json=body,
                    headers={
                        "Authorization": f"Bearer {workspace.access_token}",
                        "Content-Type": "application/json",
                    },
                )

            if response.status_code != 200:
                self.log_util.error(
                    service_name="WhatsAppSendService",
                    message=f"WhatsApp API returned error for node {intent.nodeId}: {response.status_code} - {response.text}"
                )
                return SendResult(
                    status="error",
                    node_id=intent.nodeId,
                    directive=directive,
                    error=f"WhatsApp API error {response.status_code}: {response.text}",
                )

            response_data = response.json()
            messages = response_data.get("messages") or [{}]
            message_id = messages[0].get("id")
            self.log_util.info(
                service_name="WhatsAppSendService",
                message=f"Sent {directive.value} message for node {intent.nodeId}: {message_id}"
            )
            return SendResult(status="sent", node_id=intent.nodeId, directive=directive, message_id=message_id)

        except httpx.TimeoutException:
            self.log_util.error(service_name="WhatsAppSendService", message=f"Timeout sending message for node {intent.nodeId}")
            return SendResult(status="error", node_id=intent.nodeId, directive=directive, error="Timeout sending message")
        except httpx.HTTPError as e:
            self.log_util.error(service_name="WhatsAppSendService", message=f"Error sending message for node {intent.nodeId}: {str(e)}")
            return SendResult(status="error", node_id=intent.nodeId, directive=directive, error=str(e))
        except (httpx.InvalidURL, ValueError) as e:
            # Unencodable token or phone id, or a non-JSON reply
            self.log_util.error(service_name="WhatsAppSendService", message=f"Invalid WhatsApp API request or response for node {intent.nodeId}: {str(e)}")
            return SendResult(status="error", node_id=intent.nodeId, directive=directive, error=str(e))

    async def _call_node_api(self, intent: MessageIntent) -> SendResult:
        api = intent.api
        self.log_util.info(
            service_name="WhatsAppSendService",
            message=f"Calling {api.method} {api.endpoint} for node {intent.nodeId}"
        )
        try:
            async with self._client() as client:
                response = await client.request(
                    api.method,
                    api.endpoint,
                    headers=api.headers or {},
                    content=api.body if api.method != "GET" else None,
                )

            if response.status_code >= 400:
                self.log_util.error(
                    service_name="WhatsAppSendService",
                    message=f"API node {intent.nodeId} returned {response.status_code} - {response.text}"
                )
                return SendResult(
                    status="error",
                    node_id=intent.nodeId,
                    directive=SendDirective.API,
                    error=f"API error {response.status_code}",
                )
            return SendResult(status="sent", node_id=intent.nodeId, directive=SendDirective.API)

        except httpx.TimeoutException:
            self.log_util.error(service_name="WhatsAppSendService", message=f"Timeout calling API for node {intent.nodeId}")
            return SendResult(status="error", node_id=intent.nodeId, directive=SendDirective.API, error="Timeout calling API")
        except httpx.HTTPError as e:
            self.log_util.error(service_name="WhatsAppSendService", message=f"Error calling API for node {intent.nodeId}: {str(e)}")
            return SendResult(status="error", node_id=intent.nodeId, directive=SendDirective.API, error=str(e))
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            # Authored endpoint, headers or body that do not form a request
            self.log_util.error(service_name="WhatsAppSendService", message=f"Invalid API request for node {intent.nodeId}: {str(e)}")
            return SendResult(status="error", node_id=intent.nodeId, directive=SendDirective.API, error=str(e))
