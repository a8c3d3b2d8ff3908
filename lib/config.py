from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

from lib.error_handler import AppError

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    # Supabase settings
    supabase_url: str = ''
    supabase_service_role_key: str = ''
    supabase_anon_key: str = ''

    # OpenAI settings
    openai_api_key: str = ''
    openai_chat_model: str = 'gpt-4o-mini'
    openai_transcription_model: str = 'whisper-1'
    openai_image_model: str = 'gpt-image-1'

    # ElevenLabs settings
    elevenlabs_api_key: str = ''
    elevenlabs_base_url: str = 'https://api.elevenlabs.io/v1'
    elevenlabs_model: str = 'eleven_monolingual_v1'

    # Twilio settings
    twilio_account_sid: str = ''
    twilio_auth_token: str = ''
    twilio_from_number: str = ''

    # Clerk settings
    clerk_webhook_secret: str = ''

    # Public URL Twilio calls back into, e.g. https://future-self.example.com
    public_base_url: str = ''
    cors_allow_origins: str = '*'

    # Storage buckets
    audio_cache_bucket: str = 'twilio-audio-cache'
    current_photo_bucket: str = 'current-self-images'
    future_photo_bucket: str = 'future-self-images'
    voice_recordings_bucket: str = 'voice_recordings'

    @property
    def cors_origins(self) -> List[str]:
        origins = [origin.strip() for origin in self.cors_allow_origins.split(',')]
        return [origin for origin in origins if origin]

    @property
    def webhook_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/twilio-call-handler/twiml-webhook"

    def require(self, *names: str) -> None:
        """Raise if any of the named settings are blank."""
        missing = [name.upper() for name in names if not getattr(self, name)]
        if missing:
            raise AppError(
                f"Missing required environment variables: {', '.join(missing)}",
                status_code=500,
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
