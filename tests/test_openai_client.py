import base64
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from lib.error_handler import OpenAIError
from lib.openai_client import OpenAIClient


def make_client():
    client = OpenAIClient(api_key='sk-test')
    client.client = MagicMock()
    return client


@pytest.mark.asyncio
async def test_generate_response_strips_content():
    client = make_client()
    client.client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content='  Keep going!  '))],
        usage=SimpleNamespace(total_tokens=42)
    )

    assert await client.generate_response('system', 'user', max_tokens=200) == 'Keep going!'
    kwargs = client.client.chat.completions.create.call_args.kwargs
    assert kwargs['model'] == 'gpt-4o-mini'
    assert kwargs['messages'][0] == {'role': 'system', 'content': 'system'}


@pytest.mark.asyncio
async def test_generate_response_rejects_empty_choices():
    client = make_client()
    client.client.chat.completions.create.return_value = SimpleNamespace(choices=[], usage=None)

    with pytest.raises(OpenAIError) as exc_info:
        await client.generate_response('system', 'user')

    assert exc_info.value.error_type == 'OPENAI_ERROR'


@pytest.mark.asyncio
async def test_edit_image_prefers_base64():
    client = make_client()
    client.client.images.edit.return_value = SimpleNamespace(
        data=[SimpleNamespace(b64_json='YWdlZA==', url='https://ignored')]
    )

    assert await client.edit_image(b'png', 'prompt') == 'YWdlZA=='


@pytest.mark.asyncio
async def test_edit_image_downloads_url_result():
    client = make_client()
    client.client.images.edit.return_value = SimpleNamespace(
        data=[SimpleNamespace(b64_json=None, url='https://images.example.com/aged.png')]
    )
    download = MagicMock(content=b'aged')

    with patch('lib.openai_client.requests.get', return_value=download) as mock_get:
        result = await client.edit_image(b'png', 'prompt')

    mock_get.assert_called_once_with('https://images.example.com/aged.png', timeout=30)
    assert result == base64.b64encode(b'aged').decode()


@pytest.mark.asyncio
async def test_edit_image_without_data_fails():
    client = make_client()
    client.client.images.edit.return_value = SimpleNamespace(data=[])

    with pytest.raises(OpenAIError):
        await client.edit_image(b'png', 'prompt')
