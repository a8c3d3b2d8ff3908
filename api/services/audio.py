import logging

from lib.media import decode_data_url, encode_data_url
from lib.openai_client import OpenAIClient

logger = logging.getLogger(__name__)


class AudioService:
    def __init__(self, openai_client: OpenAIClient):
        self.client = openai_client

    async def transcribe_data_url(self, audio_data: str) -> str:
        """Transcribe a browser recording sent as a base64 data URL"""
        audio_bytes = decode_data_url(audio_data, invalid_message='Invalid audio data format')
        logger.info(f"Transcribing {len(audio_bytes)} bytes of recorded audio")

        transcription = await self.client.transcribe_audio(audio_bytes, filename='recording.webm', language='en')
        logger.info(f"Transcription complete: {transcription[:50]}...")
        return transcription

    @staticmethod
    def to_data_url(audio_bytes: bytes) -> str:
        return encode_data_url(audio_bytes, 'audio/mpeg')
