from fastapi import APIRouter, Request
from fastapi.exceptions import HTTPException

# Utils
from utils.log_utils import LogUtil

# Services
from services.chatbot_service import ChatbotService

# Models
from models.request.chatbot_request import ChatbotRequest

# Exceptions
from exceptions.chatbot_exception import ChatbotException

def _workspace_id(request: Request) -> int:
    workspace_id = request.headers.get("x-workspace-id")
    if workspace_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        return int(workspace_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid workspace id")

def create_chatbot_api(
    log_util: LogUtil,
    chatbot_service: ChatbotService
) -> APIRouter:
    router = APIRouter(
        prefix="/chatbot",
        tags=["chatbot"],
    )

    @router.post("/create")
    async def create_chatbot(request: Request, chatbot_request: ChatbotRequest):
        workspace_id = _workspace_id(request)
        try:
            return await chatbot_service.create_chatbot(workspace_id=workspace_id, request=chatbot_request)
        except ChatbotException as e:
            log_util.error(service_name="ChatbotAPI", message=f"Error creating chatbot: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.get("/list")
    async def get_chatbots_list(request: Request):
        workspace_id = _workspace_id(request)
        return await chatbot_service.list_chatbots(workspace_id=workspace_id)

    @router.get("/detail/{chatbot_id}")
    async def get_chatbot_detail(request: Request, chatbot_id: str):
        workspace_id = _workspace_id(request)
        try:
            return await chatbot_service.get_chatbot(workspace_id=workspace_id, chatbot_id=chatbot_id)
        except ChatbotException as e:
            log_util.error(service_name="ChatbotAPI", message=f"Error getting chatbot detail: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.put("/update/{chatbot_id}")
    async def update_chatbot(request: Request, chatbot_id: str, chatbot_request: ChatbotRequest):
        workspace_id = _workspace_id(request)
        try:
            return await chatbot_service.update_chatbot(workspace_id=workspace_id, chatbot_id=chatbot_id, request=chatbot_request)
        except ChatbotException as e:
            log_util.error(service_name="ChatbotAPI", message=f"Error updating chatbot: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.delete("/delete/{chatbot_id}")
    async def delete_chatbot(request: Request, chatbot_id: str):
        workspace_id = _workspace_id(request)
        try:
            return await chatbot_service.delete_chatbot(workspace_id=workspace_id, chatbot_id=chatbot_id)
        except ChatbotException as e:
            log_util.error(service_name="ChatbotAPI", message=f"Error deleting chatbot: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)

    @router.post("/compile")
    async def compile_chatbot(request: Request, chatbot_request: ChatbotRequest):
        """
        Compile the posted graph and return the node map without saving it
        """
        _workspace_id(request)
        return chatbot_service.compile_preview(chatbot_request)

    return router
