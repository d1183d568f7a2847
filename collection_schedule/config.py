"""
This module contains configuration settings for the application.

Values are read from environment variables; the defaults below mirror a
single-address Redbridge deployment.
"""
import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import ConfigError

DEFAULT_LISTEN_ADDR = ":8080"
DEFAULT_BASE_URL = "https://my.redbridge.gov.uk"
DEFAULT_SCHEDULE_PATH = "/RecycleRefuse"
DEFAULT_USER_AGENT = "redbridge-council-rubbish-scraper/1.0"
DEFAULT_CACHE_TTL = "168h"
DEFAULT_SCRAPE_TIMEOUT = "15s"
DEFAULT_START_HOUR = 6
DEFAULT_TIMEZONE = "Europe/London"
DEFAULT_CALENDAR_NAME = "Redbridge Collections"
DEFAULT_CALENDAR_DESCRIPTION = "Household waste & recycling (scraped)"
DEFAULT_LOG_LEVEL = "INFO"

# Cookie the council site sets once an address has been saved to the session.
SESSION_COOKIE_NAME = "RedbridgeIV3LivePref"
SESSION_BOOTSTRAP_PATH = "/Shared/SaveAddress"

# Pause between the address handshake and the schedule request, in seconds.
COURTESY_PAUSE_SECONDS = 0.15

_duration_part = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_duration_units = {"ms": 0.001, "s": 1, "m": 60, "h": 3600}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the scraper and the HTTP layer."""

    listen_addr: str
    base_url: str
    schedule_path: str
    uprn: str
    address_line: str
    postcode: str
    latitude: str
    longitude: str
    cache_ttl: float
    request_timeout: float
    start_hour: int
    user_agent: str
    timezone: str
    calendar_name: str
    calendar_description: str
    log_level: int

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def schedule_url(self) -> str:
        return f"{self.base_url}{self.schedule_path}"

    @property
    def scrape_budget(self) -> float:
        """Overall time allowed for one scrape: two requests plus the pause."""
        return 2 * self.request_timeout + COURTESY_PAUSE_SECONDS

    @property
    def listen_host_port(self):
        host, _, port = self.listen_addr.rpartition(":")
        return host or "0.0.0.0", int(port)


def parse_duration(value: str) -> float:
    """
    Parses a duration such as "168h", "1h30m", "15s" or "500ms" into seconds.

    A bare number is taken as seconds.

    Raises:
        ValueError: If the value is not a recognised duration.
    """
    text = value.strip().lower()
    if not text:
        raise ValueError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass

    total = 0.0
    position = 0
    for match in _duration_part.finditer(text):
        if match.start() != position:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _duration_units[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


def _ensure_path(path: str) -> str:
    if not path or path.startswith("/"):
        return path
    return "/" + path


def _read_duration(environ: Mapping[str, str], key: str, default: str) -> float:
    raw = environ.get(key) or default
    try:
        return parse_duration(raw)
    except ValueError as e:
        raise ConfigError(f"invalid duration for {key}: {e}") from e


def _read_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"invalid integer for {key}: {raw!r}") from e


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Builds the Settings from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        A validated Settings instance.

    Raises:
        ConfigError: If a required value is missing or a value is invalid.
    """
    env = os.environ if environ is None else environ

    cache_ttl = _read_duration(env, "CACHE_TTL", DEFAULT_CACHE_TTL)
    request_timeout = _read_duration(env, "SCRAPE_TIMEOUT", DEFAULT_SCRAPE_TIMEOUT)

    start_hour = _read_int(env, "START_HOUR", DEFAULT_START_HOUR)
    if not 0 <= start_hour <= 23:
        raise ConfigError("START_HOUR must be between 0 and 23")

    uprn = env.get("UPRN", "").strip()
    if not uprn:
        raise ConfigError("UPRN is required")

    timezone = env.get("TIMEZONE") or DEFAULT_TIMEZONE
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown TIMEZONE {timezone!r}") from e

    level_name = (env.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        raise ConfigError(f"unknown LOG_LEVEL {level_name!r}")

    listen_addr = env.get("LISTEN_ADDR") or DEFAULT_LISTEN_ADDR
    port = listen_addr.rpartition(":")[2]
    if not port.isdigit():
        raise ConfigError(f"LISTEN_ADDR must end with a port: {listen_addr!r}")

    return Settings(
        listen_addr=listen_addr,
        base_url=(env.get("BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
        schedule_path=_ensure_path(env.get("SCHEDULE_PATH") or DEFAULT_SCHEDULE_PATH),
        uprn=uprn,
        address_line=env.get("ADDRESS_LINE", ""),
        postcode=env.get("POSTCODE", ""),
        latitude=env.get("LATITUDE", ""),
        longitude=env.get("LONGITUDE", ""),
        cache_ttl=cache_ttl,
        request_timeout=request_timeout,
        start_hour=start_hour,
        user_agent=env.get("USER_AGENT") or DEFAULT_USER_AGENT,
        timezone=timezone,
        calendar_name=env.get("CALENDAR_NAME") or DEFAULT_CALENDAR_NAME,
        calendar_description=env.get("CALENDAR_DESCRIPTION") or DEFAULT_CALENDAR_DESCRIPTION,
        log_level=log_level,
    )
