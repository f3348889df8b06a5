"""SMS delivery via the Twilio REST API.

Endpoint used:
- POST /2010-04-01/Accounts/{sid}/Messages.json (form-encoded, Basic Auth)

Sends are not retried: a failed send surfaces to the caller, which decides
whether to report it.
"""

import logging

import httpx

from houses_bc.app.config import get_settings
from houses_bc.services.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


class SMSService:
    """Send SMS messages through Twilio."""

    def __init__(self):
        self.settings = get_settings()
        self.base_url = "https://api.twilio.com/2010-04-01"

    @property
    def configured(self) -> bool:
        return self.settings.twilio_configured

    async def send_sms(self, to_number: str, message: str) -> dict:
        """Send one message. Returns Twilio's JSON body.

        When Twilio is not configured in debug mode the message is logged
        and ``{"ok": False, "error": "twilio_not_configured"}`` is returned.

        Raises:
            UpstreamServiceError: on timeout, transport error, non-2xx, or
                missing configuration outside debug mode.
        """
        if not self.configured:
            if self.settings.debug:
                logger.warning(
                    "Twilio not configured; SMS to %s not sent: %s", to_number, message
                )
                return {"ok": False, "error": "twilio_not_configured"}
            raise UpstreamServiceError("sms", "SMS provider is not configured")

        url = f"{self.base_url}/Accounts/{self.settings.twilio_account_sid}/Messages.json"
        payload = {
            "To": to_number,
            "From": self.settings.twilio_phone_number,
            "Body": message,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.upstream_timeout_seconds
            ) as client:
                resp = await client.post(
                    url,
                    data=payload,
                    auth=(
                        self.settings.twilio_account_sid,
                        self.settings.twilio_auth_token,
                    ),
                )
        except httpx.TimeoutException as exc:
            logger.error("Twilio timed out sending to %s", to_number)
            raise UpstreamServiceError("sms", "timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Twilio transport error for %s: %s", to_number, exc)
            raise UpstreamServiceError("sms", str(exc)) from exc

        if not 200 <= resp.status_code < 300:
            logger.error("Twilio SMS failed (%d): %s", resp.status_code, resp.text[:300])
            raise UpstreamServiceError("sms", f"http_{resp.status_code}")

        data = resp.json()
        logger.info("SMS sent to %s via Twilio (sid=%s)", to_number, data.get("sid"))
        return data
