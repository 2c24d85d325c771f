"""reCAPTCHA verification for user-submitted forms."""

import logging
from typing import Iterable, Optional

import httpx

logger = logging.getLogger(__name__)


class CaptchaVerifier:
    """Verify reCAPTCHA responses for the forms that require it.

    Attributes:
        enabled_forms: Form names protected by captcha
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        secret: str,
        verify_url: str,
        enabled_forms: Iterable[str] = (),
    ):
        self._client = http_client
        self.secret = secret
        self.verify_url = verify_url
        self.enabled_forms = set(enabled_forms)

    def active(self, form: str) -> bool:
        return form in self.enabled_forms

    async def verify(
        self, form: str, response_token: Optional[str], remote_ip: Optional[str] = None
    ) -> bool:
        """Check a captcha answer.

        Forms without captcha always pass. Network failures count as failed
        verification.
        """
        if not self.active(form):
            return True
        if not response_token:
            return False

        data = {"secret": self.secret, "response": response_token}
        if remote_ip:
            data["remoteip"] = remote_ip
        try:
            response = await self._client.post(self.verify_url, data=data)
            response.raise_for_status()
            return bool(response.json().get("success"))
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"reCAPTCHA verification failed: {e}", exc_info=True)
            return False
