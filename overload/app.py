from flask import Flask, jsonify
import os
import logging
import atexit
import redis
from redis import Redis
from werkzeug.exceptions import HTTPException
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from overload.constants import UNITS

app = Flask(__name__)

# --- Rate Limiter Configuration ---
# In production point this at Redis (e.g. redis://localhost:6379/1); memory:// is per process.
RATELIMIT_STORAGE_URL = os.getenv("RATELIMIT_STORAGE_URL", "memory://")
app.config['RATELIMIT_ENABLED'] = os.getenv("RATELIMIT_ENABLED", "true").lower() not in ("0", "false", "no")
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"],
    storage_uri=RATELIMIT_STORAGE_URL,
    strategy="fixed-window",
)
limiter.init_app(app)


# --- General Configuration ---
DEFAULT_UNIT = os.getenv("DEFAULT_UNIT", "lbs").lower()
if DEFAULT_UNIT not in UNITS:
    DEFAULT_UNIT = "lbs"
app.config['DEFAULT_UNIT'] = DEFAULT_UNIT

# Configure logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=LOG_LEVEL)
# Use app.logger directly as it's configured by Flask
logger = app.logger


# --- Redis Connection (per-user plate config and deload state) ---
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
redis_client = None


def get_redis():
    """Returns the shared Redis client, creating it on first use."""
    global redis_client
    if redis_client is None:
        logger.info("Connecting to Redis state store.")
        redis_client = Redis.from_url(REDIS_URL, decode_responses=True)
    return redis_client


# Register a function to close the Redis connection pool when the application exits
@atexit.register
def close_redis():
    global redis_client
    if redis_client is not None:
        logger.info("Closing Redis connection pool.")
        redis_client.close()
        redis_client = None


@app.errorhandler(Exception)
def handle_exception(e):
    """Generic exception handler."""
    if isinstance(e, HTTPException):
        return jsonify(error=e.description), e.code
    app.logger.error(f"Unhandled exception: {e}", exc_info=True)
    if isinstance(e, redis.exceptions.RedisError):
        return jsonify(error="State store unavailable"), 503
    return jsonify(error="An internal server error occurred"), 500


@app.route('/health', methods=['GET'])
@limiter.exempt
def health():
    return jsonify(status="ok"), 200


# Import blueprints after the app, limiter and logger exist
from .blueprints.targets import targets_bp  # noqa: E402
from .blueprints.feedback import feedback_bp  # noqa: E402
from .blueprints.plates import plates_bp  # noqa: E402
from .blueprints.records import records_bp  # noqa: E402
from .blueprints.deload import deload_bp  # noqa: E402

app.register_blueprint(targets_bp)
app.register_blueprint(feedback_bp)
app.register_blueprint(plates_bp)
app.register_blueprint(records_bp)
app.register_blueprint(deload_bp)
