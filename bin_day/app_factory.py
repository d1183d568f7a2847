"""
This module provides a factory for creating and configuring the application's core components.
"""
from typing import Optional

from collection_schedule.calendar_builder import CalendarBuilder
from collection_schedule.config import Settings, load_settings
from collection_schedule.facade import CollectionsFacade
from collection_schedule.services.schedule_service import ScheduleService
from collection_schedule.services.session_service import SessionService

from .logging_config import setup_logging


def initialize_app(settings: Optional[Settings] = None) -> Settings:
    """
    Loads the settings and sets up logging.

    Raises:
        ConfigError: If the environment holds invalid settings.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    return settings


def create_facade(settings: Settings) -> CollectionsFacade:
    """
    Initializes and returns the CollectionsFacade with all its dependencies.
    """
    session_service = SessionService(settings)
    schedule_service = ScheduleService(settings)
    calendar_builder = CalendarBuilder(
        name=settings.calendar_name,
        description=settings.calendar_description,
        timezone_name=settings.timezone,
    )

    facade = CollectionsFacade(
        settings=settings,
        session_service=session_service,
        schedule_service=schedule_service,
        calendar_builder=calendar_builder,
    )
    return facade
