class ChatbotException(Exception):
    """
    This is the base exception for all chatbot exceptions
    """
    def __init__(self, message: str, status_code: int):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message, self.status_code)

class ChatbotDBException(ChatbotException):
    """
    This is the exception for all chatbot database exceptions
    """
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message=self.message, status_code=self.status_code)

class ChatbotServiceException(ChatbotException):
    """
    This is the exception for all chatbot service exceptions
    """
    def __init__(self, message: str):
        self.message = message
        self.status_code = 500
        super().__init__(message=self.message, status_code=self.status_code)

class ChatbotNotFoundException(ChatbotException):
    """
    This is the exception when a chatbot is not found
    """
    def __init__(self, message: str):
        self.message = message
        self.status_code = 404
        super().__init__(message=self.message, status_code=self.status_code)

class ChatbotValidationException(ChatbotException):
    """
    This is the exception for chatbot validation errors
    """
    def __init__(self, message: str):
        self.message = message
        self.status_code = 400
        super().__init__(message=self.message, status_code=self.status_code)
