"""
This module defines the ScheduleService for downloading the collection schedule page.
"""
import logging

import requests

from ..config import COURTESY_PAUSE_SECONDS, Settings
from ..context import ScrapeContext
from ..exceptions import ContextCancelledError, DeadlineExceededError, FetchError

# Get a logger instance for this module
logger = logging.getLogger(__name__)


class ScheduleService:
    """Handles downloading of the schedule document once a session is established."""

    def __init__(self, settings: Settings, pause_seconds: float = COURTESY_PAUSE_SECONDS):
        self.settings = settings
        self.pause_seconds = pause_seconds

    def courtesy_pause(self, ctx: ScrapeContext) -> None:
        """Waits briefly after the handshake; ends early if the context does."""
        ctx.sleep(self.pause_seconds)

    def fetch(self, ctx: ScrapeContext, session: requests.Session) -> bytes:
        """
        Downloads the schedule page using the address session.

        Args:
            ctx: The scrape context bounding the request.
            session: The HTTP session holding the address cookie.

        Returns:
            The raw body of the schedule page.

        Raises:
            FetchError: If the request fails, the server answers with an error
                status, or the context is cancelled or runs out of time. A
                context error is kept as the cause.
        """
        url = self.settings.schedule_url
        try:
            timeout = ctx.timeout_for(self.settings.request_timeout)
        except (ContextCancelledError, DeadlineExceededError) as e:
            raise FetchError(f"fetch schedule: {e}") from e

        try:
            response = session.get(
                url,
                headers={"User-Agent": self.settings.user_agent},
                timeout=timeout,
            )
        except requests.exceptions.RequestException as e:
            self._check_context(ctx)
            raise FetchError(f"fetch schedule: {e}") from e
        self._check_context(ctx)

        if response.status_code >= 400:
            raise FetchError(f"fetch schedule: unexpected status {response.status_code}")

        logger.info(f"Downloaded schedule page ({len(response.content)} bytes).")
        return response.content

    @staticmethod
    def _check_context(ctx: ScrapeContext) -> None:
        try:
            ctx.check()
        except (ContextCancelledError, DeadlineExceededError) as e:
            raise FetchError(f"fetch schedule: {e}") from e
