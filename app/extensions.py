from flask_sqlalchemy import SQLAlchemy
from flask_marshmallow import Marshmallow
from flask_migrate import Migrate
from app.core.logger import logger
import redis
import os

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
ma = Marshmallow()
migrate = Migrate()
try:
    redis_client = redis.StrictRedis(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", 6379)),
        db=int(os.getenv("REDIS_DB", 0)),
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
        retry_on_timeout=True,
    )
    redis_client.ping()
    logger.info("Redis connection established successfully")
except redis.RedisError as e:
    logger.error(f"Failed to connect to Redis: {str(e)}")
    # Other code checks for None before using Redis
    redis_client = None
    logger.warning("Rate limiter will fall back to in-memory storage")

# Create the limiter instance without initializing it; storage comes from app config
limiter = Limiter(
    key_func=get_remote_address,
    strategy=os.getenv("LIMITER_STRATEGY", "moving-window"),
    default_limits=[],
)


def init_limiter(app):
    """Initialize the limiter with the Flask app"""
    storage_uri = app.config.get("RATELIMIT_STORAGE_URL")
    if not storage_uri and redis_client is not None:
        kwargs = redis_client.connection_pool.connection_kwargs
        storage_uri = f"redis://{kwargs.get('host')}:{kwargs.get('port')}/{kwargs.get('db')}"
    if storage_uri:
        logger.info(f"Rate limiter using storage {storage_uri.split(':')[0]}")
    else:
        storage_uri = "memory://"
        logger.warning("Rate limiter using in-memory storage")
    app.config.setdefault("RATELIMIT_STORAGE_URI", storage_uri)
    app.config.setdefault("RATELIMIT_HEADERS_ENABLED", True)
    app.config.setdefault("RATELIMIT_IN_MEMORY_FALLBACK_ENABLED", True)
    limiter.init_app(app)
    logger.info(f"Flask-Limiter initialized (enabled={app.config.get('RATELIMIT_ENABLED', True)})")
