import logging
from logging_loki import LokiHandler
from dotenv import load_dotenv
import os

LOGGER_NAME = "chatbot_flow_service"

class NonEmptyTagsFilter(logging.Filter):
    """
    Drops records carrying an empty tag value; Loki rejects such streams
    """
    def filter(self, record):
        tags = getattr(record, 'tags', None)
        if not tags:
            return True
        return all(value not in (None, '') for value in tags.values())

class LogUtil:
    def __init__(self):

        # Load environment variables
        load_dotenv()

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(logging.DEBUG if os.getenv("DEBUG", "false").lower() == "true" else logging.INFO)

        # The app and the maintenance scripts each build a LogUtil; handlers go on the shared logger once
        if not self.logger.handlers:
            loki_handler = LokiHandler(
                url=os.getenv("LOKI_URL", "http://localhost:3100/loki/api/v1/push"),
                tags={
                    "application": LOGGER_NAME,
                    "environment": os.getenv("APP_ENV", "production"),
                    "org_id": os.getenv("ORG_ID", "Wendi"),
                },
                version="1"
            )
            loki_handler.addFilter(NonEmptyTagsFilter())
            self.logger.addHandler(loki_handler)

            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.DEBUG)
            console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - [%(levelname)s] - %(message)s'))
            self.logger.addHandler(console_handler)

        # Motor, pymongo and httpx are noisy at INFO
        for noisy_logger in ("pymongo", "motor", "httpx"):
            logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    def _log(self, level: int, service_name: str, message: str, exc_info: bool = False):
        self.logger.log(level, message, exc_info=exc_info, extra={"tags": {"service_name": service_name}})

    def info(self, service_name: str, message: str):
        self._log(logging.INFO, service_name, message)

    def error(self, service_name: str, message: str):
        self._log(logging.ERROR, service_name, message)

    def exception(self, service_name: str, message: str):
        """Log at ERROR with the traceback of the exception being handled"""
        self._log(logging.ERROR, service_name, message, exc_info=True)

    def warning(self, service_name: str, message: str):
        self._log(logging.WARNING, service_name, message)

    def debug(self, service_name: str, message: str):
        self._log(logging.DEBUG, service_name, message)
