import base64

import pytest
from unittest.mock import AsyncMock, MagicMock

from api.services.audio import AudioService
from lib.error_handler import ValidationError
from lib.media import decode_data_url, extract_mime_type, get_extension_from_content_type


@pytest.mark.parametrize('content_type,extension', [
    ('image/jpeg', '.jpg'),
    ('image/png', '.png'),
    ('image/webp', '.webp'),
    ('image/gif', '.gif'),
    ('image/heic', '.png'),
])
def test_extension_from_content_type(content_type, extension):
    assert get_extension_from_content_type(content_type) == extension


def test_mime_type_defaults_to_jpeg():
    assert extract_mime_type('data:image/webp;base64,AAAA') == 'image/webp'
    assert extract_mime_type('data:image/webp,AAAA') == 'image/jpeg'


def test_decode_rejects_missing_payload():
    with pytest.raises(ValidationError) as exc_info:
        decode_data_url('data:audio/webm;base64', invalid_message='Invalid audio data format')

    assert exc_info.value.message == 'Invalid audio data format'


@pytest.mark.asyncio
async def test_transcribe_data_url_sends_decoded_bytes():
    openai_client = MagicMock()
    openai_client.transcribe_audio = AsyncMock(return_value='hello there')
    service = AudioService(openai_client)
    data_url = 'data:audio/webm;base64,' + base64.b64encode(b'webm-bytes').decode()

    assert await service.transcribe_data_url(data_url) == 'hello there'
    openai_client.transcribe_audio.assert_awaited_once_with(b'webm-bytes', filename='recording.webm', language='en')


def test_audio_data_url():
    assert AudioService.to_data_url(b'abc') == 'data:audio/mpeg;base64,YWJj'
