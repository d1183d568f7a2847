"""
This module defines the SessionService that seeds the council site's address session.
"""
import logging
import time
from typing import Dict

import requests

from ..config import SESSION_BOOTSTRAP_PATH, SESSION_COOKIE_NAME, Settings
from ..context import ScrapeContext
from ..exceptions import SessionError

# Get a logger instance for this module
logger = logging.getLogger(__name__)


class SessionService:
    """Performs the SaveAddress handshake that makes the schedule page fetchable."""

    def __init__(self, settings: Settings, cookie_name: str = SESSION_COOKIE_NAME):
        self.settings = settings
        self.cookie_name = cookie_name

    def acquire(self, ctx: ScrapeContext, session: requests.Session) -> None:
        """
        Saves the configured address to the remote session.

        The handshake counts as successful when the session cookie is present,
        either on this response or already in the session's cookie jar. The
        status code is only consulted once the cookie is known to be missing,
        because the site sometimes sets the cookie while returning an error.

        Args:
            ctx: The scrape context bounding the request.
            session: The HTTP session whose cookie jar carries the address.

        Raises:
            SessionError: If the cookie could not be found or the request failed.
        """
        endpoint = f"{self.settings.base_url}{SESSION_BOOTSTRAP_PATH}"
        timeout = ctx.timeout_for(self.settings.request_timeout)
        try:
            response = session.get(
                endpoint,
                params=self._address_params(),
                headers={"User-Agent": self.settings.user_agent},
                timeout=timeout,
            )
        except requests.exceptions.RequestException as e:
            ctx.check()
            raise SessionError(f"save address: {e}") from e
        ctx.check()

        has_cookie = self.cookie_name in response.cookies
        if not has_cookie:
            # If the cookie is already stored, the response may omit it.
            has_cookie = any(c.name == self.cookie_name for c in session.cookies)

        if not has_cookie:
            if response.status_code >= 400:
                raise SessionError(
                    f"failed to seed address cookie: status {response.status_code}"
                )
            raise SessionError("failed to seed address cookie")

        if response.status_code >= 400:
            logger.warning(
                f"Address handshake returned status {response.status_code} but set the session cookie; continuing."
            )
        else:
            logger.debug("Address session established.")

    def _address_params(self) -> Dict[str, str]:
        params = {"uprn": self.settings.uprn}
        optional = {
            "address": self.settings.address_line,
            "postcode": self.settings.postcode,
            "latitude": self.settings.latitude,
            "longitude": self.settings.longitude,
        }
        params.update({key: value for key, value in optional.items() if value})
        params["_"] = str(int(time.time() * 1000))
        return params
