import logging
import time
from typing import Optional
from urllib.parse import urlencode

from twilio.twiml.voice_response import VoiceResponse

from lib.config import get_settings
from lib.monitoring import log_with_context, mask_phone_number

logger = logging.getLogger(__name__)

PROMPT_TEXT = "Please respond when you're ready."
NO_RESPONSE_TEXT = "I didn't hear a response. Have a great day!"

GREETING_CONTEXT = (
    "This is the beginning of a motivational call. "
    "Greet the user warmly and ask how they are doing with their goals."
)


def speech_context(speech_result: str) -> str:
    return (
        f'The user just said: "{speech_result}". '
        "Please respond appropriately and continue the conversation about their goals."
    )


def callback_url(webhook_url: str, user_id: str) -> str:
    return f"{webhook_url}?{urlencode({'user_id': user_id})}"


def build_twiml(audio_url: str, webhook_url: str, user_id: str) -> str:
    """
    Play the reply, then listen for the user's answer.

    The gather posts back to the same webhook for the same user, which keeps
    the call looping turn by turn. Silence ends the call.
    """
    response = VoiceResponse()
    response.play(audio_url)
    gather = response.gather(
        input='speech',
        timeout=10,
        speech_timeout='auto',
        action=callback_url(webhook_url, user_id),
        method='POST'
    )
    gather.say(PROMPT_TEXT, voice='alice')
    response.say(NO_RESPONSE_TEXT, voice='alice')
    response.hangup()
    return str(response)


class CallService:
    def __init__(self, twilio_client, chat_service, voice_service, storage_service, database):
        self.twilio = twilio_client
        self.chat = chat_service
        self.voice = voice_service
        self.storage = storage_service
        self.database = database
        self.settings = get_settings()

    def initiate_call(self, user_id: str, to_number: str, webhook_url: str, request_id: str) -> str:
        log_with_context(
            logger, logging.INFO, 'Initiating Twilio call', request_id,
            userId=user_id, toPhoneNumber=mask_phone_number(to_number)
        )
        call_sid = self.twilio.create_call(to_number, callback_url(webhook_url, user_id))
        log_with_context(logger, logging.INFO, 'Twilio call initiated', request_id, callSid=call_sid)
        return call_sid

    async def respond_to_turn(self, user_id: str, speech_result: Optional[str], webhook_url: str,
                              request_id: str) -> str:
        """Produce the TwiML for the next turn of a live call"""
        if speech_result:
            context = speech_context(speech_result)
            log_with_context(logger, logging.INFO, 'Processing user speech', request_id, speechResult=speech_result)
        else:
            context = GREETING_CONTEXT
            log_with_context(logger, logging.INFO, 'Starting call with greeting', request_id)

        message = await self.chat.call_message_for_user(user_id, context)
        voice_id = await self.database.get_voice_preference(user_id)
        audio = await self.voice.text_to_speech(message, voice_id)

        path = f"temp/tts-{request_id}-{int(time.time() * 1000)}.mp3"
        audio_url = self.storage.upload(self.settings.audio_cache_bucket, path, audio, 'audio/mpeg')
        log_with_context(
            logger, logging.INFO, 'Audio uploaded for playback', request_id,
            audioUrl=audio_url, voiceId=voice_id
        )

        return build_twiml(audio_url, webhook_url, user_id)
