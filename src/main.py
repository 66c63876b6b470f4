import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

# Utils
from utils.log_utils import LogUtil
from utils.environment_utils import EnvironmentUtils

# Database
from database.chatbot_db import ChatbotDB

# Internal Services (for multitenancy)
from services.internal.workspace_service import WorkspaceService

# Services
from services.graph_compiler_service import GraphCompilerService
from services.flow_walker_service import FlowWalkerService
from services.message_projector_service import MessageProjectorService
from services.interaction_resolver_service import InteractionResolverService
from services.whatsapp_send_service import WhatsAppSendService
from services.chatbot_service import ChatbotService
from services.chatbot_flow_service import ChatbotFlowService

# APIs
from apis.chatbot_api import create_chatbot_api
from apis.webhook_message_api import create_webhook_message_api

# Exceptions
from exceptions.chatbot_exception import ChatbotException

# Utils
log_util = LogUtil()
environment_utils = EnvironmentUtils(log_util=log_util)

# Database
chatbot_db = ChatbotDB(log_util=log_util, environment_utils=environment_utils)

# Internal Services (for multitenancy)
workspace_service = WorkspaceService(
    log_util=log_util,
    workspace_service_url=environment_utils.get_env_variable("WORKSPACE_SERVICE_URL")
)

# Flow engine
graph_compiler_service = GraphCompilerService(log_util=log_util)
flow_walker_service = FlowWalkerService(
    log_util=log_util,
    max_walk_length=environment_utils.get_env_variable("MAX_WALK_LENGTH")
)
message_projector_service = MessageProjectorService(log_util=log_util)
interaction_resolver_service = InteractionResolverService(
    log_util=log_util,
    flow_walker_service=flow_walker_service,
    message_projector_service=message_projector_service
)

# Channel
whatsapp_send_service = WhatsAppSendService(
    log_util=log_util,
    facebook_base_endpoint=environment_utils.get_env_variable("FACEBOOK_BASE_ENDPOINT"),
    media_base_url=environment_utils.get_env_variable("MEDIA_BASE_URL"),
    timeout_seconds=environment_utils.get_env_variable("SEND_TIMEOUT_SECONDS")
)

# Services
chatbot_service = ChatbotService(
    log_util=log_util,
    chatbot_db=chatbot_db,
    graph_compiler_service=graph_compiler_service
)

chatbot_flow_service = ChatbotFlowService(
    log_util=log_util,
    chatbot_db=chatbot_db,
    interaction_resolver_service=interaction_resolver_service,
    whatsapp_send_service=whatsapp_send_service,
    workspace_service=workspace_service,
    chatbot_timeout_seconds=environment_utils.get_env_variable("CHATBOT_TIMEOUT_SECONDS")
)

# Define lifespan function
@asynccontextmanager
async def lifespan(app: FastAPI):
    log_util.info(service_name="ChatbotFlowService", message="Application startup complete")

    yield

    chatbot_db.close()
    log_util.info(service_name="ChatbotFlowService", message="Application shutdown complete")

# Create FastAPI app
app = FastAPI(
    title="chatbot flow service",
    description="Compiles builder graphs into chatbots and runs them against inbound WhatsApp messages",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Chatbot management APIs
chatbot_api_router = create_chatbot_api(
    log_util=log_util,
    chatbot_service=chatbot_service
)
app.include_router(chatbot_api_router)

# Webhook message API (receives customer messages from the WhatsApp webhook receiver)
webhook_message_router = create_webhook_message_api(
    log_util=log_util,
    chatbot_flow_service=chatbot_flow_service
)
app.include_router(webhook_message_router)

# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "chatbot_flow_service"}

# Exception handler for chatbot exceptions that escape a router
@app.exception_handler(ChatbotException)
async def chatbot_exception_handler(request: Request, exc: ChatbotException):
    log_util.error(service_name="ChatbotFlowService", message=f"ChatbotException: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "error": str(exc),
            "status_code": exc.status_code
        },
        headers={"Content-Type": "application/json"}
    )

# Global exception handler for HTTPExceptions
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    log_util.error(service_name="ChatbotFlowService", message=f"HTTPException: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error": str(exc),
            "status_code": exc.status_code
        },
        headers={"Content-Type": "application/json"}
    )

# Global exception handler for any unhandled exceptions
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    log_util.error(service_name="ChatbotFlowService", message=f"Exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "status_code": 500
        },
        headers={"Content-Type": "application/json"}
    )

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=environment_utils.get_env_variable("HOST"),
        port=environment_utils.get_env_variable("PORT")
    )
