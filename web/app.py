"""
This module contains the Flask application serving the calendar feed and JSON lookups.

The facade is looked up from app.config["FACADE"]; bin_day.app_factory sets it.
"""

import logging

from flask import Flask, Response, current_app, jsonify, request

from collection_schedule.exceptions import (
    InvalidTimeError,
    NoCollectionsError,
    ScheduleError,
    SessionError,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)

CACHE_CONTROL_ICS = "public, max-age=300"


def get_facade():
    return current_app.config["FACADE"]


def _resolve_now():
    """Returns (now, None) or (None, error response) for the ?now= override."""
    try:
        return get_facade().resolve_now(request.args.get("now")), None
    except InvalidTimeError:
        return None, (jsonify(error="invalid_now"), 400)


def _unavailable(error: Exception):
    logger.error(f"Collections unavailable: {error}")
    return jsonify(error="unavailable"), 503


@app.route("/healthz")
def healthz():
    return jsonify(status="ok")


@app.route("/calendar.ics")
def calendar():
    """Serves the iCalendar feed; ?refresh=1 bypasses the cache."""
    force_refresh = request.args.get("refresh", "").lower() in ("1", "true", "yes")
    try:
        payload = get_facade().calendar(force_refresh=force_refresh)
    except ScheduleError as e:
        logger.error(f"Scrape failed: {e}")
        detail = "scrape_failed"
        if isinstance(e, NoCollectionsError):
            detail = "failed_to_parse_schedule"
        elif isinstance(e, SessionError):
            detail = "address_setup_failed"
        return jsonify(error=detail), 502
    except Exception:
        logger.exception("Calendar build failed.")
        return jsonify(error="calendar_failed"), 500

    response = Response(payload, status=200, mimetype="text/calendar")
    response.headers["Content-Type"] = "text/calendar; charset=utf-8"
    response.headers["Cache-Control"] = CACHE_CONTROL_ICS
    return response


@app.route("/api/next")
def next_collection():
    now, error = _resolve_now()
    if error:
        return error
    try:
        payload = get_facade().next_collection(now)
    except ScheduleError as e:
        return _unavailable(e)
    if payload is None:
        return jsonify(error="no_upcoming_collections"), 404
    return jsonify(payload)


@app.route("/api/types")
def collection_types():
    now, error = _resolve_now()
    if error:
        return error
    try:
        return jsonify(get_facade().collection_types(now))
    except ScheduleError as e:
        return _unavailable(e)


@app.route("/api/is-today")
def is_today():
    now, error = _resolve_now()
    if error:
        return error
    try:
        return jsonify(get_facade().is_today(now))
    except ScheduleError as e:
        return _unavailable(e)


@app.route("/api/is-tomorrow")
def is_tomorrow():
    now, error = _resolve_now()
    if error:
        return error
    try:
        return jsonify(get_facade().is_tomorrow(now))
    except ScheduleError as e:
        return _unavailable(e)


def run_server(facade, host: str = "0.0.0.0", port: int = 8080) -> None:
    """Runs the Flask server; each request is handled on its own thread."""
    app.config["FACADE"] = facade
    logger.info(f"Listening on {host}:{port}")
    app.run(host=host, port=port, threaded=True)
