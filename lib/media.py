import base64
import binascii
import logging
import re

from lib.error_handler import ValidationError

logger = logging.getLogger(__name__)

_DATA_URL_MIME = re.compile(r'^data:([^;]+);base64,')

IMAGE_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/webp': '.webp',
    'image/gif': '.gif',
}


def extract_mime_type(data_url: str, default: str = 'image/jpeg') -> str:
    match = _DATA_URL_MIME.match(data_url)
    if not match:
        logger.warning(f"Could not extract MIME type from data URL, defaulting to {default}")
        return default
    return match.group(1)


def get_extension_from_content_type(content_type: str) -> str:
    """Convert an image content type to a file extension"""
    extension = IMAGE_EXTENSIONS.get(content_type)
    if not extension:
        logger.warning(f"Unknown content type: {content_type}, defaulting to .png")
        return '.png'
    return extension


def decode_data_url(data_url: str, invalid_message: str = 'Invalid base64 data format') -> bytes:
    """Return the bytes after the comma of a base64 data URL"""
    parts = data_url.split(',', 1)
    if len(parts) < 2 or not parts[1]:
        raise ValidationError(invalid_message)
    try:
        return base64.b64decode(parts[1], validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError('Failed to decode base64 data')


def encode_data_url(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode()}"
