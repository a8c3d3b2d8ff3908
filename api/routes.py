from flask import Flask, Response, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from datetime import datetime, timezone
import logging
import sys

from lib.auth import extract_user_id_from_jwt, require_matching_user
from lib.config import get_settings
from lib.database import Database
from lib.error_handler import AppError, ErrorHandler, ValidationError
from lib.monitoring import elapsed_ms, generate_request_id, log_with_context
from lib.openai_client import OpenAIClient
from lib.twilio_client import TwilioClient, reconstruct_signed_url

from .services.audio import AudioService
from .services.calls import CallService
from .services.chat import ChatService
from .services.photos import PhotoService
from .services.storage import StorageService
from .services.users import UserService
from .services.voice import VoiceCloneService, VoiceService

# Configure detailed logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
    force=True  # Ensure our config takes precedence
)

logger = logging.getLogger(__name__)

settings = get_settings()

app = Flask(__name__)
CORS(
    app,
    origins=settings.cors_origins,
    allow_headers=[
        'authorization', 'x-client-info', 'apikey', 'content-type',
        'x-twilio-signature', 'svix-id', 'svix-timestamp', 'svix-signature',
    ],
)

# Initialize clients
logger.info("Initializing vendor clients...")
database = Database()
openai_client = OpenAIClient()
twilio_client = TwilioClient()
logger.info("Vendor clients initialized successfully")

# Initialize services
storage_service = StorageService(supabase_client=database.supabase)
audio_service = AudioService(openai_client=openai_client)
voice_service = VoiceService()
chat_service = ChatService(openai_client=openai_client, database=database)
call_service = CallService(
    twilio_client=twilio_client,
    chat_service=chat_service,
    voice_service=voice_service,
    storage_service=storage_service,
    database=database
)
photo_service = PhotoService(openai_client=openai_client, storage_service=storage_service, database=database)
user_service = UserService(database=database, storage_service=storage_service)
voice_clone_service = VoiceCloneService(
    voice_service=voice_service,
    storage_service=storage_service,
    database=database
)
logger.info("All services initialized successfully")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_response(status_code: int = 200, **data):
    body = {'success': True, **data, 'timestamp': _timestamp(), 'requestId': g.request_id}
    return jsonify(body), status_code


def json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError('Invalid JSON in request body')
    return body


def require_fields(body: dict, *names: str) -> None:
    missing = [name for name in names if not body.get(name)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def authorized_user(requested_user_id: str) -> str:
    """Check the Bearer token belongs to requested_user_id"""
    jwt_user_id = extract_user_id_from_jwt(request.headers.get('Authorization'), g.request_id)
    require_matching_user(jwt_user_id, requested_user_id, g.request_id)
    return jwt_user_id


def webhook_url() -> str:
    if settings.public_base_url:
        return settings.webhook_url
    return f"https://{request.host}/twilio-call-handler/twiml-webhook"


@app.before_request
def assign_request_id():
    g.request_id = generate_request_id()
    log_with_context(logger, logging.INFO, f"{request.method} {request.path}", g.request_id)


@app.after_request
def log_completion(response):
    request_id = getattr(g, 'request_id', None)
    if request_id:
        log_with_context(
            logger, logging.INFO, 'Request completed', request_id,
            status=response.status_code, processingTimeMs=elapsed_ms(request_id)
        )
    return response


@app.errorhandler(AppError)
def handle_app_error(error: AppError):
    request_id = getattr(g, 'request_id', generate_request_id())
    log_with_context(
        logger, logging.ERROR, error.message, request_id,
        errorType=error.error_type, status=error.status_code
    )
    return jsonify(ErrorHandler.to_envelope(error, request_id)), error.status_code


@app.errorhandler(Exception)
def handle_unexpected_error(error: Exception):
    if isinstance(error, HTTPException):
        return error
    return handle_app_error(ErrorHandler.handle_unexpected_error(error))


@app.route('/', methods=['GET'])
def root():
    """Basic health check"""
    return {'status': 'healthy'}


@app.route('/twilio-call-handler/initiate-call', methods=['POST'])
async def initiate_call():
    body = json_body()
    require_fields(body, 'user_id', 'to_phone_number')
    authorized_user(body['user_id'])
    settings.require('twilio_account_sid', 'twilio_auth_token', 'twilio_from_number')

    call_sid = call_service.initiate_call(
        body['user_id'], body['to_phone_number'], webhook_url(), g.request_id
    )
    return success_response(message='Call initiated successfully', call_sid=call_sid)


@app.route('/twilio-call-handler/twiml-webhook', methods=['POST'])
async def twiml_webhook():
    # a blank token would make any empty-key signature valid
    settings.require('twilio_auth_token')

    signature = request.headers.get('X-Twilio-Signature')
    if not signature:
        log_with_context(logger, logging.ERROR, 'Missing Twilio signature', g.request_id)
        return Response('Missing Twilio signature', status=403, mimetype='text/plain')

    host = request.headers.get('Host')
    if not host:
        return Response('Missing host header', status=400, mimetype='text/plain')

    signed_url = reconstruct_signed_url(host, request.path, request.query_string.decode())
    params = request.form.to_dict()
    if not twilio_client.validate_request(signed_url, params, signature):
        log_with_context(logger, logging.ERROR, 'Invalid Twilio signature', g.request_id, url=signed_url)
        return Response('Invalid Twilio signature', status=403, mimetype='text/plain')

    user_id = request.args.get('user_id')
    if not user_id:
        return Response('Missing user_id parameter', status=400, mimetype='text/plain')

    log_with_context(
        logger, logging.INFO, 'Twilio webhook verified', g.request_id,
        userId=user_id, callSid=params.get('CallSid'), callStatus=params.get('CallStatus')
    )
    twiml = await call_service.respond_to_turn(user_id, params.get('SpeechResult'), webhook_url(), g.request_id)
    return Response(twiml, mimetype='text/xml')


@app.route('/openai-chat-completion', methods=['POST'])
async def openai_chat_completion():
    body = json_body()
    require_fields(body, 'user_id')
    authorized_user(body['user_id'])
    settings.require('openai_api_key')

    message = await chat_service.call_message_for_user(body['user_id'], body.get('context'))
    return success_response(message=message, user_id=body['user_id'])


@app.route('/in-app-voice-chat', methods=['POST'])
async def in_app_voice_chat():
    body = json_body()
    require_fields(body, 'audioData', 'userId')
    user_id = body['userId']
    authorized_user(user_id)
    settings.require('openai_api_key', 'elevenlabs_api_key')

    voice_id = await database.get_voice_preference(user_id)
    goals_text = await chat_service.get_goals_text(user_id)

    user_text = body.get('messageText') or await audio_service.transcribe_data_url(body['audioData'])
    reply = await chat_service.generate_future_self_reply(user_text, goals_text)
    audio = await voice_service.text_to_speech(reply, voice_id)

    return success_response(
        audioResponse=AudioService.to_data_url(audio),
        textResponse=reply,
        userText=user_text
    )


@app.route('/elevenlabs-proxy/voices', methods=['GET'])
async def list_voices():
    settings.require('elevenlabs_api_key')
    voices = await voice_service.list_voices()
    return jsonify({'voices': voices})


@app.route('/elevenlabs-proxy/tts', methods=['POST'])
async def text_to_speech():
    body = json_body()
    require_fields(body, 'voiceId', 'text')
    settings.require('elevenlabs_api_key')

    audio = await voice_service.text_to_speech(body['text'], body['voiceId'])
    return Response(audio, mimetype='audio/mpeg')


@app.route('/elevenlabs-voice-clone', methods=['POST'])
async def elevenlabs_voice_clone():
    body = json_body()
    require_fields(body, 'user_id', 'custom_voice_audio_path')
    authorized_user(body['user_id'])
    settings.require('elevenlabs_api_key')

    result = await voice_clone_service.clone_user_voice(
        body['user_id'],
        body['custom_voice_audio_path'],
        g.request_id,
        voice_name=body.get('voice_name'),
        voice_description=body.get('voice_description')
    )
    return success_response(**result)


@app.route('/clerk-webhook', methods=['POST'])
async def clerk_webhook():
    event = user_service.verify(request.get_data(as_text=True), request.headers, g.request_id)
    message = await user_service.handle_event(event, g.request_id)
    return success_response(message=message)


@app.route('/upload-current-photo', methods=['POST'])
async def upload_current_photo():
    body = json_body()
    require_fields(body, 'photoData', 'userId')

    result = await photo_service.upload_current_photo(body['photoData'], body['userId'], g.request_id)
    return success_response(**result)


@app.route('/ageify-user', methods=['POST'])
async def ageify_user():
    body = json_body()
    require_fields(body, 'currentPhotoData', 'userId')
    settings.require('openai_api_key')

    result = await photo_service.ageify_user(body['currentPhotoData'], body['userId'], g.request_id)
    return success_response(**result)
