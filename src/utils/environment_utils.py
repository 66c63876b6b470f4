from dotenv import load_dotenv
import os

# Utils
from utils.log_utils import LogUtil

"""
Utility class for environment variables
"""
class EnvironmentUtils:
    def __init__(self, log_util: LogUtil):

        # Load environment variables
        load_dotenv()

        # Initialize logger
        self.log_util = log_util

        # Environment variables
        self.env_variables = {
            "APP_ENV": os.getenv("APP_ENV", "production"),
            "HOST": os.getenv("HOST", "0.0.0.0"),
            "PORT": int(os.getenv("PORT", "8030")),
            "ORG_ID": os.getenv("ORG_ID", "Wendi"),
            "LOKI_URL": os.getenv("LOKI_URL", "http://localhost:3100/loki/api/v1/push"),
            "MONGO_USERNAME": os.getenv("MONGO_USERNAME", "chatbotservice"),
            "MONGO_PASSWORD": os.getenv("MONGO_PASSWORD", ""),
            "MONGO_AUTH_SOURCE": os.getenv("MONGO_AUTH_SOURCE", "admin"),
            "MONGO_HOST": os.getenv("MONGO_HOST", "localhost"),
            "MONGO_PORT": int(os.getenv("MONGO_PORT", "27017")),
            "MONGO_DB_NAME": os.getenv("MONGO_DB_NAME", "chatbot_db"),
            "FACEBOOK_BASE_ENDPOINT": os.getenv("FACEBOOK_BASE_ENDPOINT", "https://graph.facebook.com/v21.0"),
            "MEDIA_BASE_URL": os.getenv("MEDIA_BASE_URL", "https://wendi.app"),
            "WORKSPACE_SERVICE_URL": os.getenv("WORKSPACE_SERVICE_URL", "http://localhost:8012/workspace/data/fetch"),
            "CHATBOT_TIMEOUT_SECONDS": int(os.getenv("CHATBOT_TIMEOUT_SECONDS", "720")),
            "MAX_WALK_LENGTH": int(os.getenv("MAX_WALK_LENGTH", "100")),
            "SEND_TIMEOUT_SECONDS": float(os.getenv("SEND_TIMEOUT_SECONDS", "30")),
            "DEBUG": os.getenv("DEBUG", "false"),
        }

    def get_env_variable(self, variable_name: str) -> str | int | float:
        if variable_name not in self.env_variables:
            self.log_util.error(service_name="EnvironmentUtils", message=f"Environment variable {variable_name} not found")
            raise ValueError(f"Environment variable {variable_name} not found")
        return self.env_variables[variable_name]
