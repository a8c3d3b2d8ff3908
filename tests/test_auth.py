import pytest

from lib.auth import extract_user_id_from_jwt, require_matching_user
from lib.error_handler import AuthError


def test_extracts_sub_claim(token_factory):
    assert extract_user_id_from_jwt(f'Bearer {token_factory("user_42")}', 'req_1_a') == 'user_42'


@pytest.mark.parametrize('header', [None, '', 'Basic abc', 'bearer token'])
def test_rejects_missing_or_malformed_header(header):
    with pytest.raises(AuthError) as exc_info:
        extract_user_id_from_jwt(header, 'req_1_a')

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == 'Missing or invalid authorization header'


def test_rejects_garbage_token():
    with pytest.raises(AuthError) as exc_info:
        extract_user_id_from_jwt('Bearer not-a-jwt', 'req_1_a')

    assert exc_info.value.message == 'Invalid JWT token'


def test_rejects_token_without_sub(token_factory):
    with pytest.raises(AuthError):
        extract_user_id_from_jwt(f'Bearer {token_factory(sub=None)}', 'req_1_a')


def test_user_mismatch_is_forbidden():
    require_matching_user('user_1', 'user_1', 'req_1_a')

    with pytest.raises(AuthError) as exc_info:
        require_matching_user('user_1', 'user_2', 'req_1_a')

    assert exc_info.value.status_code == 403
    assert exc_info.value.error_type == 'AUTH_ERROR'
