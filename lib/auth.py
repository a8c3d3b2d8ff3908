import logging
from typing import Optional

from jose import JWTError, jwt

from lib.error_handler import AuthError
from lib.monitoring import log_with_context

logger = logging.getLogger(__name__)


def extract_user_id_from_jwt(auth_header: Optional[str], request_id: str) -> str:
    """
    Return the `sub` claim of the Clerk session token in an Authorization header.

    Only the claims are decoded; the token signature is not checked here.
    """
    if not auth_header or not auth_header.startswith('Bearer '):
        raise AuthError('Missing or invalid authorization header')

    token = auth_header[len('Bearer '):]
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        log_with_context(logger, logging.ERROR, 'Failed to extract user ID from JWT', request_id, error=str(e))
        raise AuthError('Invalid JWT token')

    user_id = claims.get('sub')
    if not user_id:
        log_with_context(logger, logging.ERROR, 'No user ID found in JWT', request_id)
        raise AuthError('Invalid JWT token')

    log_with_context(logger, logging.INFO, 'User ID extracted from JWT', request_id, userId=user_id)
    return user_id


def require_matching_user(jwt_user_id: str, requested_user_id: str, request_id: str) -> None:
    if jwt_user_id != requested_user_id:
        log_with_context(
            logger, logging.ERROR, 'User ID mismatch', request_id,
            jwtUserId=jwt_user_id, requestUserId=requested_user_id
        )
        raise AuthError('Unauthorized: User ID mismatch', status_code=403)
