import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from lib.config import get_settings
from lib.error_handler import ElevenLabsError, NETWORK_ERROR, ValidationError
from lib.monitoring import log_with_context

logger = logging.getLogger(__name__)

CLONE_LABELS_SOURCE = 'MyFutrSelf'
DEFAULT_CLONE_DESCRIPTION = 'Custom voice clone created by MyFutrSelf'


class VoiceService:
    """Thin async wrapper over the ElevenLabs REST API"""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 model_id: Optional[str] = None):
        settings = get_settings()
        self.api_key = api_key or settings.elevenlabs_api_key
        self.base_url = (base_url or settings.elevenlabs_base_url).rstrip('/')
        self.model_id = model_id or settings.elevenlabs_model

    def _headers(self) -> Dict[str, str]:
        return {'xi-api-key': self.api_key}

    async def text_to_speech(self, text: str, voice_id: str) -> bytes:
        """Synthesize text with the given voice and return MP3 bytes"""
        logger.info(f"Converting {len(text)} chars to speech with voice {voice_id}")
        payload = {
            'text': text,
            'model_id': self.model_id,
            'voice_settings': {
                'stability': 0.5,
                'similarity_boost': 0.75
            }
        }
        headers = {**self._headers(), 'Accept': 'audio/mpeg', 'Content-Type': 'application/json'}

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(f"{self.base_url}/text-to-speech/{voice_id}",
                                        json=payload, headers=headers) as response:
                    if response.status >= 300:
                        error_text = await response.text()
                        logger.error(f"ElevenLabs TTS error: {error_text}")
                        raise ElevenLabsError(f"ElevenLabs API error ({response.status}): {error_text}")
                    audio = await response.read()
        except aiohttp.ClientError as e:
            raise ElevenLabsError(f"ElevenLabs request failed: {str(e)}", error_type=NETWORK_ERROR)

        logger.info(f"Speech generated: {len(audio)} bytes")
        return audio

    async def list_voices(self) -> List[Dict[str, Any]]:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"{self.base_url}/voices", headers=self._headers()) as response:
                    if response.status >= 300:
                        error_text = await response.text()
                        logger.error(f"ElevenLabs voices error: {error_text}")
                        raise ElevenLabsError(f"ElevenLabs API error ({response.status}): {error_text}")
                    data = await response.json()
        except aiohttp.ClientError as e:
            raise ElevenLabsError(f"ElevenLabs request failed: {str(e)}", error_type=NETWORK_ERROR)

        return data.get('voices', [])

    async def clone_voice(self, audio: bytes, filename: str, name: str, description: str) -> Dict[str, Any]:
        """
        Create an instant voice clone from a single recording.

        Returns the ElevenLabs response, which carries the new `voice_id`.
        """
        form = aiohttp.FormData()
        form.add_field('name', name)
        form.add_field('description', description)
        form.add_field('files', audio, filename=filename)
        form.add_field('labels', json.dumps({
            'source': CLONE_LABELS_SOURCE,
            'type': 'custom_clone',
            'created_at': datetime.now(timezone.utc).isoformat()
        }))

        logger.info(f"Cloning voice '{name}' from {filename} ({len(audio)} bytes)")
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(f"{self.base_url}/voices/add", data=form,
                                        headers=self._headers()) as response:
                    if response.status >= 300:
                        error_text = await response.text()
                        logger.error(f"ElevenLabs clone error: {error_text}")
                        raise ElevenLabsError(f"ElevenLabs API error ({response.status}): {error_text}")
                    voice = await response.json()
        except aiohttp.ClientError as e:
            raise ElevenLabsError(f"ElevenLabs request failed: {str(e)}", error_type=NETWORK_ERROR)

        if not voice.get('voice_id'):
            raise ElevenLabsError("ElevenLabs did not return a voice_id")
        logger.info(f"Voice cloned: {voice['voice_id']}")
        return voice


def filename_from_path(file_path: str) -> str:
    """Last segment of a storage path, accepting / and \\ as separators"""
    filename = re.split(r'[/\\]', file_path)[-1]
    if not filename:
        raise ValidationError(f"Failed to extract filename from path: {file_path}")
    return filename


class VoiceCloneService:
    def __init__(self, voice_service: VoiceService, storage_service, database):
        self.voice = voice_service
        self.storage = storage_service
        self.database = database
        self.settings = get_settings()

    async def clone_user_voice(self, user_id: str, audio_path: str, request_id: str,
                               voice_name: Optional[str] = None,
                               voice_description: Optional[str] = None) -> Dict[str, Any]:
        """Clone a voice from a stored recording and make it the user's voice preference"""
        name = voice_name or f"{user_id}_custom_voice"
        description = voice_description or DEFAULT_CLONE_DESCRIPTION

        audio = self.storage.download(self.settings.voice_recordings_bucket, audio_path)
        filename = filename_from_path(audio_path)
        log_with_context(logger, logging.INFO, 'Voice recording downloaded', request_id,
                         filename=filename, size=len(audio))

        voice = await self.voice.clone_voice(audio, filename, name, description)
        await self.database.update_profile(user_id, {'voice_preference': voice['voice_id']})
        log_with_context(logger, logging.INFO, 'Voice preference updated', request_id,
                         userId=user_id, voiceId=voice['voice_id'])

        return {'voice_id': voice['voice_id'], 'voice_name': voice.get('name', name)}
