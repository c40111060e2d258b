import os
import asyncio
from prometheus_client import start_http_server
import logging

logger = logging.getLogger(__name__)

REDIS = None

def init_metrics(port: int = None):
    """Initialize Prometheus metrics server"""
    port = port or int(os.getenv('METRICS_PORT', '8001'))
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except Exception as e:
        logger.warning(f'Prometheus start failed: {e}')

async def redis_startup():
    """Connect to Redis with retries; leaves REDIS as None when unreachable"""
    global REDIS

    try:
        import redis.asyncio as aioredis
    except ImportError as e:
        logger.warning(f'Redis import failed: {e}')
        REDIS = None
        return

    redis_url = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    max_retries = int(os.getenv('REDIS_CONNECT_RETRIES', '3'))
    retry_delay = 3  # seconds

    for attempt in range(max_retries):
        client = None
        try:
            logger.info(f"Attempting to connect to Redis: {redis_url} (attempt {attempt + 1}/{max_retries})")

            client = aioredis.from_url(
                redis_url,
                decode_responses=True,
                max_connections=20,
                health_check_interval=30,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            await client.ping()
            REDIS = client

            logger.info("Redis connected successfully")
            break

        except Exception as e:
            logger.warning(f'Redis startup attempt {attempt + 1} failed: {e}')
            if client is not None:
                try:
                    await client.aclose()
                except Exception as close_error:
                    logger.debug(f'Redis close after failed attempt raised: {close_error}')
            REDIS = None

            if attempt < max_retries - 1:
                logger.info(f"Retrying Redis connection in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error("Failed to connect to Redis after all retries")

def get_redis():
    return REDIS

async def shutdown_connections():
    """Gracefully shutdown all connections"""
    global REDIS
    logger.info("Shutting down connections...")

    if REDIS:
        try:
            await REDIS.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")
        REDIS = None
