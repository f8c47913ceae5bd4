from fastapi import status


class SocialEngineError(Exception):
    """Base error for social engine operations, carries the HTTP status it maps to"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An unexpected error occurred"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SocialEngineError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(SocialEngineError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class AuthorizationError(SocialEngineError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Action not allowed"


class NotFoundError(SocialEngineError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"
