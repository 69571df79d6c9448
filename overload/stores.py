import json
import logging
from datetime import date, timedelta

from overload.deload import BANNER_SNOOZE_DAYS, as_date
from overload.plates import DEFAULT_UNIT, normalize_plate_config

logger = logging.getLogger(__name__)


def _load_json(raw, key):
    """Decode a stored JSON record; corrupt records read as missing."""
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Discarding malformed JSON stored under %s", key)
        return None
    return value if isinstance(value, dict) else None


class PlateConfigStore:
    """Per-user bar weight and plate inventory."""

    KEY_PREFIX = "plate_config"

    def __init__(self, redis_conn):
        self.redis = redis_conn

    def _key(self, user_id):
        return f"{self.KEY_PREFIX}:{user_id}"

    def get(self, user_id, unit=DEFAULT_UNIT):
        key = self._key(user_id)
        stored = _load_json(self.redis.get(key), key)
        return normalize_plate_config(stored, unit)

    def save(self, user_id, config):
        normalized = normalize_plate_config(config, config.get('unit', DEFAULT_UNIT))
        self.redis.set(self._key(user_id), json.dumps(normalized))
        logger.info("Saved plate config for user %s (%s)", user_id, normalized['unit'])
        return normalized


class DeloadStateStore:
    """Active deload week and the dismissed state of the deload banner."""

    WEEK_KEY_PREFIX = "deload_week"
    BANNER_KEY_PREFIX = "deload_banner_dismissed"

    def __init__(self, redis_conn):
        self.redis = redis_conn

    def _week_key(self, user_id):
        return f"{self.WEEK_KEY_PREFIX}:{user_id}"

    def _banner_key(self, user_id):
        return f"{self.BANNER_KEY_PREFIX}:{user_id}"

    def get_active_until(self, user_id):
        key = self._week_key(user_id)
        stored = _load_json(self.redis.get(key), key)
        if not stored or not stored.get('active_until'):
            return None
        try:
            return as_date(stored['active_until'])
        except ValueError:
            logger.warning("Discarding invalid deload date stored under %s", key)
            return None

    def start(self, user_id, until):
        until = as_date(until)
        self.redis.set(self._week_key(user_id), json.dumps({'active_until': until.isoformat()}))
        logger.info("Deload week started for user %s, active until %s", user_id, until)
        return until

    def clear(self, user_id):
        self.redis.delete(self._week_key(user_id))

    def dismiss_banner(self, user_id, day=None):
        day = as_date(day or date.today())
        self.redis.set(
            self._banner_key(user_id),
            json.dumps({'date': day.isoformat()}),
            ex=timedelta(days=BANNER_SNOOZE_DAYS),
        )
        return day

    def get_banner_dismissed(self, user_id):
        key = self._banner_key(user_id)
        stored = _load_json(self.redis.get(key), key)
        if not stored or not stored.get('date'):
            return None
        try:
            return as_date(stored['date'])
        except ValueError:
            return None
