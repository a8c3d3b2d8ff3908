import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from jose import jwt

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
sys.path.append(project_root)

TEST_ENV = {
    'SUPABASE_URL': 'https://test-project.supabase.co',
    'SUPABASE_SERVICE_ROLE_KEY': 'test-service-role-key',
    'OPENAI_API_KEY': 'sk-test',
    'ELEVENLABS_API_KEY': 'test-elevenlabs-key',
    'TWILIO_ACCOUNT_SID': 'ACtest',
    'TWILIO_AUTH_TOKEN': 'test_auth_token',
    'TWILIO_FROM_NUMBER': '+15550001111',
    'CLERK_WEBHOOK_SECRET': 'whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw',
    'PUBLIC_BASE_URL': '',
}
for key, value in TEST_ENV.items():
    os.environ[key] = value

# Mock Supabase before importing app
import supabase


def mock_create_client(*args, **kwargs):
    mock_client = MagicMock()
    mock_client.table = MagicMock()
    mock_client.storage = MagicMock()
    return mock_client


supabase.create_client = mock_create_client

# Now we can safely import the app
from api.routes import app

TEST_USER_ID = 'user_2abc123'


def make_token(sub=TEST_USER_ID):
    claims = {'sid': 'sess_123'}
    if sub:
        claims['sub'] = sub
    return jwt.encode(claims, 'not-checked', algorithm='HS256')


@pytest.fixture
def test_client():
    app.config['TESTING'] = True
    return app.test_client()


@pytest.fixture
def user_id():
    return TEST_USER_ID


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def auth_headers():
    return {'Authorization': f'Bearer {make_token()}'}
