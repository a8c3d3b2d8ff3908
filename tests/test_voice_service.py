import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import api.routes as routes
from api.services.voice import VoiceService
from lib.error_handler import ElevenLabsError


def fake_response(status=200, body=b'', payload=None):
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.read = AsyncMock(return_value=body)
    mock_response.text = AsyncMock(return_value=body.decode() if body else '')
    mock_response.json = AsyncMock(return_value=payload)

    class AsyncContextManager:
        async def __aenter__(self):
            return mock_response

        async def __aexit__(self, exc_type, exc_val, exc_tb):
            pass

    return AsyncContextManager()


@pytest.mark.asyncio
async def test_text_to_speech_posts_voice_settings():
    service = VoiceService(api_key='xi-test')

    with patch('aiohttp.ClientSession.post', return_value=fake_response(body=b'mp3')) as mock_post:
        audio = await service.text_to_speech('Hello', 'voice_1')

    assert audio == b'mp3'
    url = mock_post.call_args[0][0]
    kwargs = mock_post.call_args[1]
    assert url == 'https://api.elevenlabs.io/v1/text-to-speech/voice_1'
    assert kwargs['headers']['Accept'] == 'audio/mpeg'
    assert kwargs['headers']['xi-api-key'] == 'xi-test'
    assert kwargs['json'] == {
        'text': 'Hello',
        'model_id': 'eleven_monolingual_v1',
        'voice_settings': {'stability': 0.5, 'similarity_boost': 0.75},
    }


@pytest.mark.asyncio
async def test_text_to_speech_raises_on_error_status():
    service = VoiceService(api_key='xi-test')

    with patch('aiohttp.ClientSession.post', return_value=fake_response(status=401, body=b'bad key')):
        with pytest.raises(ElevenLabsError) as exc_info:
            await service.text_to_speech('Hello', 'voice_1')

    assert exc_info.value.message == 'ElevenLabs API error (401): bad key'


@pytest.mark.asyncio
async def test_clone_voice_returns_voice_id():
    service = VoiceService(api_key='xi-test')

    with patch('aiohttp.ClientSession.post',
               return_value=fake_response(payload={'voice_id': 'voice_new'})) as mock_post:
        voice = await service.clone_voice(b'audio', 'sample.webm', 'Me', 'Desc')

    assert voice['voice_id'] == 'voice_new'
    assert mock_post.call_args[0][0] == 'https://api.elevenlabs.io/v1/voices/add'


def test_voices_proxy(test_client):
    with patch.object(routes.voice_service, 'list_voices', AsyncMock(return_value=[{'voice_id': 'v1'}])):
        response = test_client.get('/elevenlabs-proxy/voices')

    assert response.status_code == 200
    assert response.get_json() == {'voices': [{'voice_id': 'v1'}]}


def test_tts_proxy_returns_audio(test_client):
    with patch.object(routes.voice_service, 'text_to_speech', AsyncMock(return_value=b'mp3')) as mock_tts:
        response = test_client.post('/elevenlabs-proxy/tts', json={'voiceId': 'v1', 'text': 'Hi'})

    assert response.status_code == 200
    assert response.mimetype == 'audio/mpeg'
    assert response.data == b'mp3'
    mock_tts.assert_awaited_once_with('Hi', 'v1')


def test_tts_proxy_requires_fields(test_client):
    response = test_client.post('/elevenlabs-proxy/tts', json={'text': 'Hi'})

    assert response.status_code == 400
