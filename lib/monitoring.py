import json
import logging
import random
import string
import time
from typing import Any, Optional

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_request_id() -> str:
    """Unique id used to correlate every log line of one request"""
    suffix = ''.join(random.choices(_ID_ALPHABET, k=9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


def elapsed_ms(request_id: str) -> Optional[int]:
    """Milliseconds since the request id was issued"""
    try:
        started = int(request_id.split('_')[1])
    except (IndexError, ValueError):
        return None
    return int(time.time() * 1000) - started


def mask_phone_number(phone_number: str) -> str:
    return phone_number[:6] + '***'


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    request_id: str,
    **data: Any
) -> None:
    if data:
        logger.log(level, f"[{request_id}] {message} {json.dumps(data, default=str)}")
    else:
        logger.log(level, f"[{request_id}] {message}")
