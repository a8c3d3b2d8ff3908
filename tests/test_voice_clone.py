from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import api.routes as routes
from api.services.voice import DEFAULT_CLONE_DESCRIPTION, VoiceCloneService, filename_from_path
from lib.error_handler import ValidationError


@pytest.mark.parametrize('path,filename', [
    ('user_1/sample.webm', 'sample.webm'),
    ('user_1\\nested\\sample.mp3', 'sample.mp3'),
    ('sample.wav', 'sample.wav'),
])
def test_filename_from_path(path, filename):
    assert filename_from_path(path) == filename


def test_filename_from_path_rejects_trailing_separator():
    with pytest.raises(ValidationError):
        filename_from_path('user_1/')


def make_service():
    voice = MagicMock()
    voice.clone_voice = AsyncMock(return_value={'voice_id': 'voice_xyz', 'name': 'user_1_custom_voice'})
    storage = MagicMock()
    storage.download.return_value = b'recording'
    database = MagicMock()
    database.update_profile = AsyncMock()
    return VoiceCloneService(voice, storage, database)


@pytest.mark.asyncio
async def test_clone_uses_default_name_and_description():
    service = make_service()

    result = await service.clone_user_voice('user_1', 'user_1/sample.webm', 'req_1_a')

    service.storage.download.assert_called_once_with('voice_recordings', 'user_1/sample.webm')
    service.voice.clone_voice.assert_awaited_once_with(
        b'recording', 'sample.webm', 'user_1_custom_voice', DEFAULT_CLONE_DESCRIPTION
    )
    service.database.update_profile.assert_awaited_once_with('user_1', {'voice_preference': 'voice_xyz'})
    assert result == {'voice_id': 'voice_xyz', 'voice_name': 'user_1_custom_voice'}


@pytest.mark.asyncio
async def test_clone_honours_custom_name():
    service = make_service()

    await service.clone_user_voice('user_1', 'sample.webm', 'req_1_a', voice_name='Future Me',
                                   voice_description='Calm and wise')

    args = service.voice.clone_voice.call_args[0]
    assert args[2:] == ('Future Me', 'Calm and wise')


def test_clone_route_requires_fields(test_client, auth_headers, user_id):
    response = test_client.post('/elevenlabs-voice-clone', json={'user_id': user_id}, headers=auth_headers)

    assert response.status_code == 400


def test_clone_route_returns_voice(test_client, auth_headers, user_id):
    with patch.object(routes.voice_clone_service, 'clone_user_voice',
                      AsyncMock(return_value={'voice_id': 'voice_xyz', 'voice_name': 'Me'})):
        response = test_client.post('/elevenlabs-voice-clone',
                                    json={'user_id': user_id, 'custom_voice_audio_path': 'a/b.webm'},
                                    headers=auth_headers)

    assert response.status_code == 200
    body = response.get_json()
    assert body['voice_id'] == 'voice_xyz'
    assert body['voice_name'] == 'Me'
    assert body['requestId'].startswith('req_')
