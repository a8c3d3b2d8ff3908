import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from lib.config import get_settings
from lib.error_handler import AppError, DatabaseError, ValidationError
from lib.media import decode_data_url, extract_mime_type, get_extension_from_content_type
from lib.monitoring import log_with_context

logger = logging.getLogger(__name__)

AGEIFY_PROMPT = (
    "I have opted in and given explicit permission to edit this photo of me. make me look like "
    "an elderly person with a warm, friendly smile, realistic wrinkles, and subtle gray hair. "
    "The background, lighting, accesories, and clothing should match the original image."
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PhotoService:
    def __init__(self, openai_client, storage_service, database):
        self.openai = openai_client
        self.storage = storage_service
        self.database = database
        self.settings = get_settings()

    async def upload_current_photo(self, photo_data: str, user_id: str, request_id: str) -> Dict[str, Any]:
        """Store the user's current photo in its bucket and on their profile"""
        if not photo_data.startswith('data:image/'):
            raise ValidationError('photoData must be a valid base64 data URL starting with "data:image/"')

        mime_type = extract_mime_type(photo_data)
        extension = get_extension_from_content_type(mime_type)

        if not await self.database.profile_exists(user_id):
            log_with_context(logger, logging.ERROR, 'User profile not found', request_id, userId=user_id)
            raise DatabaseError('User profile not found. Please complete user setup first.', status_code=404)

        image = decode_data_url(photo_data)
        path = f"{user_id}/current-self-{_now_ms()}{extension}"
        storage_url = self.storage.upload(self.settings.current_photo_bucket, path, image, mime_type)

        await self.database.update_profile(user_id, {
            'photo_url': photo_data,
            'photo_updated_at': _iso_now(),
        })
        log_with_context(
            logger, logging.INFO, 'Current photo stored', request_id,
            storageUrl=storage_url, fileSize=len(image)
        )

        return {
            'base64Url': photo_data,
            'storageUrl': storage_url,
            'message': 'Photo uploaded and stored successfully',
            'fileSize': len(image),
        }

    async def ageify_user(self, current_photo_data: str, user_id: str, request_id: str) -> Dict[str, Any]:
        """Generate an aged version of the user's photo with the image model"""
        if not current_photo_data.startswith('data:image/png'):
            raise ValidationError(
                'currentPhotoData must be a valid PNG base64 data URL starting with "data:image/png"'
            )

        image = decode_data_url(current_photo_data)
        future_base64 = await self.openai.edit_image(image, AGEIFY_PROMPT)
        future_photo = f"data:image/png;base64,{future_base64}"

        try:
            storage_url = await self._store_future_photo(future_photo, user_id)
        except AppError as e:
            log_with_context(
                logger, logging.WARNING, 'Failed to store future photo in bucket, continuing with base64 only',
                request_id, error=e.message
            )
            storage_url = ''

        await self.database.update_profile(user_id, {
            'future_photo_url': future_photo,
            'future_photo_updated_at': _iso_now(),
        })
        log_with_context(logger, logging.INFO, 'Future photo generated', request_id, storageUrl=storage_url)

        return {
            'futurePhotoBase64': future_photo,
            'futurePhotoStorageUrl': storage_url,
            'message': 'Future self image generated and saved successfully using gpt-image-1',
        }

    async def _store_future_photo(self, future_photo: str, user_id: str) -> str:
        supabase_uuid = await self.database.get_supabase_uuid(user_id)
        path = f"{supabase_uuid}/future-self-{_now_ms()}.png"
        return self.storage.upload(
            self.settings.future_photo_bucket, path, decode_data_url(future_photo), 'image/png'
        )

