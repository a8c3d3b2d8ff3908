from typing import Optional
import base64
import logging

from openai import OpenAI, OpenAIError as OpenAISDKError
import requests

from lib.config import get_settings
from lib.error_handler import OpenAIError

logger = logging.getLogger(__name__)


class OpenAIClient:
    def __init__(self, api_key: Optional[str] = None):
        self.settings = get_settings()
        self.client = OpenAI(api_key=api_key or self.settings.openai_api_key)

    async def transcribe_audio(self, audio_bytes: bytes, filename: str = 'recording.webm',
                               language: str = 'en') -> str:
        """
        Transcribe audio using OpenAI Whisper API
        """
        try:
            transcript = self.client.audio.transcriptions.create(
                model=self.settings.openai_transcription_model,
                file=(filename, audio_bytes),
                language=language
            )
        except OpenAISDKError as e:
            raise OpenAIError(f"OpenAI Whisper API error: {str(e)}")

        text = (transcript.text or '').strip()
        if not text:
            raise OpenAIError("No transcription returned from OpenAI Whisper API")
        return text

    async def generate_response(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 200,
        temperature: float = 0.7,
        presence_penalty: float = 0.0,
        frequency_penalty: float = 0.0
    ) -> str:
        """
        Generate response using OpenAI ChatGPT API
        """
        try:
            response = self.client.chat.completions.create(
                model=self.settings.openai_chat_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt}
                ],
                max_tokens=max_tokens,
                temperature=temperature,
                presence_penalty=presence_penalty,
                frequency_penalty=frequency_penalty
            )
        except OpenAISDKError as e:
            raise OpenAIError(f"OpenAI API error: {str(e)}")

        if not response.choices:
            raise OpenAIError("No completion choices returned from OpenAI")

        message = (response.choices[0].message.content or '').strip()
        if not message:
            raise OpenAIError("Empty message returned from OpenAI")

        if response.usage:
            logger.info(f"Completion used {response.usage.total_tokens} tokens")
        return message

    async def edit_image(self, image_bytes: bytes, prompt: str, size: str = '1024x1024') -> str:
        """
        Edit a PNG with the image model and return the result as base64.
        """
        try:
            result = self.client.images.edit(
                model=self.settings.openai_image_model,
                image=('current-self.png', image_bytes, 'image/png'),
                prompt=prompt,
                size=size
            )
        except OpenAISDKError as e:
            raise OpenAIError(f"OpenAI Images Edit API error: {str(e)}")

        item = result.data[0] if result.data else None
        if item is not None and item.b64_json:
            return item.b64_json
        if item is not None and item.url:
            logger.info("Image edit returned a URL, downloading result")
            return self._download_as_base64(item.url)

        raise OpenAIError(
            "No image URL or base64 data received from OpenAI Images Edit API. "
            "Response structure may be invalid."
        )

    def _download_as_base64(self, url: str) -> str:
        try:
            response = requests.get(url, timeout=30)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise OpenAIError(f"Failed to download generated image from URL: {str(e)}")
        return base64.b64encode(response.content).decode()
