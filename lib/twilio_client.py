from typing import Dict, Optional
import logging

from twilio.base.exceptions import TwilioRestException
from twilio.request_validator import RequestValidator
from twilio.rest import Client

from lib.config import get_settings
from lib.error_handler import TwilioError

logger = logging.getLogger(__name__)


class TwilioClient:
    def __init__(self, account_sid: Optional[str] = None, auth_token: Optional[str] = None,
                 from_number: Optional[str] = None):
        settings = get_settings()
        self.account_sid = account_sid or settings.twilio_account_sid
        self.auth_token = auth_token or settings.twilio_auth_token
        self.from_number = from_number or settings.twilio_from_number
        self.client = Client(self.account_sid, self.auth_token)
        self.validator = RequestValidator(self.auth_token)

    def create_call(self, to_number: str, callback_url: str) -> str:
        """Place an outbound call whose TwiML is served by callback_url. Returns the call SID."""
        try:
            call = self.client.calls.create(
                to=to_number,
                from_=self.from_number,
                url=callback_url,
                method='POST'
            )
            logger.info(f"Call created: {call.sid} (status: {call.status})")
            return call.sid
        except TwilioRestException as e:
            logger.error(f"Twilio error creating call: {str(e)}")
            if e.code == 21211:  # Invalid 'To' phone number
                raise TwilioError("Invalid phone number format.", status_code=400)
            elif e.code == 21219:  # Unverified number on a trial account
                raise TwilioError("This phone number is not verified with our test account.", status_code=400)
            else:
                raise TwilioError(f"Twilio API error ({e.status}): {e.msg}")

    def validate_request(self, url: str, params: Dict[str, str], signature: str) -> bool:
        """Check an X-Twilio-Signature header against the URL Twilio called and its form body"""
        if not self.auth_token:
            logger.error("Refusing to validate Twilio signature without an auth token")
            return False
        return self.validator.validate(url, params, signature)


def reconstruct_signed_url(host: str, path: str, query_string: str = '') -> str:
    """Rebuild the exact HTTPS URL Twilio signed, from the proxied request parts."""
    url = f"https://{host}{path}"
    if query_string:
        url += f"?{query_string}"
    return url
