import os
import asyncio
from prometheus_client import start_http_server
import logging

logger = logging.getLogger(__name__)

MONGO_URL = os.getenv('MONGO_URL', 'mongodb://mongo:27017')
MONGO_DB = os.getenv('MONGO_DB', 'revjobs')
MESSAGES_COLLECTION = os.getenv('MESSAGES_COLLECTION', 'messages')
REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
METRICS_PORT = int(os.getenv('METRICS_PORT', '8001'))

REDIS = None
MONGO = None

def init_metrics(port: int = METRICS_PORT):
    """Initialize Prometheus metrics server"""
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except Exception as e:
        logger.warning(f'Prometheus start failed: {e}')

async def redis_startup():
    """Connect to Redis, used for session fan-out between instances and presence"""
    global REDIS

    from redis import asyncio as aioredis

    max_retries = 3
    retry_delay = 3  # seconds

    for attempt in range(max_retries):
        try:
            logger.info(f"Attempting to connect to Redis: {REDIS_URL} (attempt {attempt + 1}/{max_retries})")

            REDIS = aioredis.from_url(
                REDIS_URL,
                decode_responses=True,
                max_connections=20,
                retry_on_timeout=True,
                health_check_interval=30,
                socket_connect_timeout=5,
            )

            await REDIS.ping()

            logger.info("Redis connected successfully")
            break

        except Exception as e:
            logger.warning(f'Redis startup attempt {attempt + 1} failed: {e}')
            if REDIS:
                try:
                    await REDIS.aclose()
                except Exception as close_error:
                    logger.debug(f'Redis close after failed startup: {close_error}')
                REDIS = None

            if attempt < max_retries - 1:
                logger.info(f"Retrying Redis connection in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error("Failed to connect to Redis after all retries")

async def mongo_startup():
    """Connect to MongoDB, the message store"""
    global MONGO

    from motor.motor_asyncio import AsyncIOMotorClient

    max_retries = 3
    retry_delay = 3  # seconds

    for attempt in range(max_retries):
        try:
            logger.info(f"Attempting to connect to MongoDB: {MONGO_URL} (attempt {attempt + 1}/{max_retries})")

            MONGO = AsyncIOMotorClient(
                MONGO_URL,
                tz_aware=True,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=5000,
                socketTimeoutMS=5000,
                maxPoolSize=50,
                minPoolSize=5,
                retryWrites=True,
                retryReads=True
            )

            await MONGO.admin.command('ping')

            logger.info("MongoDB connected successfully")
            break

        except Exception as e:
            logger.warning(f'MongoDB startup attempt {attempt + 1} failed: {e}')
            if MONGO:
                MONGO.close()
                MONGO = None

            if attempt < max_retries - 1:
                logger.info(f"Retrying MongoDB connection in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error("Failed to connect to MongoDB after all retries")

def messages_collection():
    if MONGO is None:
        raise RuntimeError('MongoDB client not started')
    return MONGO[MONGO_DB][MESSAGES_COLLECTION]

async def shutdown_connections():
    """Gracefully shutdown all connections"""
    global REDIS, MONGO
    logger.info("Shutting down connections...")

    if REDIS:
        try:
            await REDIS.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")
        REDIS = None

    if MONGO:
        MONGO.close()
        logger.info("MongoDB connection closed")
        MONGO = None
