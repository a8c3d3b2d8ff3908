import json
import logging
from typing import Any, Dict, Mapping, Optional

from svix.webhooks import Webhook, WebhookVerificationError

from lib.config import get_settings
from lib.error_handler import AppError, AuthError, ValidationError
from lib.monitoring import log_with_context

logger = logging.getLogger(__name__)

SVIX_HEADERS = ('svix-id', 'svix-timestamp', 'svix-signature')


class UserService:
    """Keeps user_profiles in step with Clerk's user lifecycle webhooks"""

    def __init__(self, database, storage_service, webhook_secret: Optional[str] = None):
        self.database = database
        self.storage = storage_service
        self.settings = get_settings()
        self.webhook_secret = webhook_secret or self.settings.clerk_webhook_secret

    def verify(self, payload: str, headers: Mapping[str, str], request_id: str) -> Dict[str, Any]:
        """Check the Svix signature and return the decoded event"""
        if not self.webhook_secret:
            raise AppError('Missing required environment variables: CLERK_WEBHOOK_SECRET', status_code=500)
        if not payload:
            raise ValidationError('Request body is required')

        svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
        if not all(svix_headers.values()):
            log_with_context(logger, logging.ERROR, 'Missing svix headers', request_id,
                             present=[name for name, value in svix_headers.items() if value])
            raise AuthError('Missing required svix headers for webhook verification')

        try:
            Webhook(self.webhook_secret).verify(payload, svix_headers)
        except WebhookVerificationError as e:
            log_with_context(logger, logging.ERROR, 'Webhook signature verification failed', request_id, error=str(e))
            raise AuthError('Invalid webhook signature')

        # verify() only checks the signature; its return value differs across svix releases
        try:
            event = json.loads(payload)
        except ValueError:
            raise ValidationError('Webhook payload is not valid JSON')
        if not isinstance(event, dict):
            raise ValidationError('Webhook payload must be a JSON object')

        log_with_context(logger, logging.INFO, 'Webhook signature verified', request_id, eventType=event.get('type'))
        return event

    async def handle_event(self, event: Dict[str, Any], request_id: str) -> str:
        """Apply a verified event and return a short description of what happened"""
        event_type = event.get('type')
        data = event.get('data') or {}

        if event_type == 'user.created':
            return await self._handle_user_created(data, request_id)
        elif event_type == 'user.deleted':
            return await self._handle_user_deleted(data, request_id)
        elif event_type == 'user.updated':
            log_with_context(logger, logging.INFO, 'User updated event received', request_id, userId=data.get('id'))
            return 'User update acknowledged'
        else:
            log_with_context(logger, logging.INFO, 'Unhandled webhook event type', request_id, eventType=event_type)
            return f'Event type {event_type} acknowledged'

    async def _handle_user_created(self, data: Dict[str, Any], request_id: str) -> str:
        user_id = data.get('id')
        if not user_id:
            raise ValidationError('Webhook payload is missing the user id')

        if await self.database.profile_exists(user_id):
            log_with_context(logger, logging.INFO, 'User profile already exists, skipping', request_id, userId=user_id)
            return 'User profile already exists'

        await self.database.create_profile(user_id, avatar_url=data.get('image_url'))
        log_with_context(logger, logging.INFO, 'User profile created', request_id, userId=user_id)
        return 'User profile created'

    async def _handle_user_deleted(self, data: Dict[str, Any], request_id: str) -> str:
        user_id = data.get('id')
        if not user_id:
            raise ValidationError('Webhook payload is missing the user id')

        profile = await self.database.get_profile(user_id, 'supabase_uuid')
        if not profile:
            log_with_context(logger, logging.WARNING, 'No profile found for deleted user', request_id, userId=user_id)
            return 'User profile not found'

        supabase_uuid = profile.get('supabase_uuid')
        if supabase_uuid:
            for bucket in (self.settings.current_photo_bucket, self.settings.future_photo_bucket):
                removed = self.storage.remove_folder(bucket, supabase_uuid)
                log_with_context(logger, logging.INFO, 'Cleaned up user storage', request_id,
                                 bucket=bucket, fileCount=removed)

        await self.database.delete_profile(user_id)
        log_with_context(logger, logging.INFO, 'User profile deleted', request_id, userId=user_id)
        return 'User profile deleted'
