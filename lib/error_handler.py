from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

VALIDATION_ERROR = 'VALIDATION_ERROR'
AUTH_ERROR = 'AUTH_ERROR'
OPENAI_ERROR = 'OPENAI_ERROR'
ELEVENLABS_ERROR = 'ELEVENLABS_ERROR'
TWILIO_ERROR = 'TWILIO_ERROR'
DATABASE_ERROR = 'DATABASE_ERROR'
NETWORK_ERROR = 'NETWORK_ERROR'
UNKNOWN_ERROR = 'UNKNOWN_ERROR'


class AppError(Exception):
    error_type = UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        user_message: Optional[str] = None,
        error_type: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.user_message = user_message or message
        if error_type:
            self.error_type = error_type
        super().__init__(self.message)


class ValidationError(AppError):
    error_type = VALIDATION_ERROR

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message, status_code=status_code)


class AuthError(AppError):
    error_type = AUTH_ERROR

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, status_code=status_code)


class OpenAIError(AppError):
    error_type = OPENAI_ERROR


class ElevenLabsError(AppError):
    error_type = ELEVENLABS_ERROR


class TwilioError(AppError):
    error_type = TWILIO_ERROR


class DatabaseError(AppError):
    error_type = DATABASE_ERROR


class ErrorHandler:
    @staticmethod
    def to_envelope(error: AppError, request_id: str) -> Dict[str, Any]:
        """JSON body returned to clients for a failed request"""
        return {
            'success': False,
            'error': error.user_message,
            'errorType': error.error_type,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'requestId': request_id,
        }

    @staticmethod
    def handle_unexpected_error(error: Exception) -> AppError:
        logger.error(f"Unexpected error: {str(error)}", exc_info=error)
        return AppError(str(error) or 'An unexpected error occurred', status_code=500)
