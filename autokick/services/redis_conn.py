from redis.asyncio import Redis
import logging

from autokick.config import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD

logger = logging.getLogger(__name__)

try:
    redis = Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, db=0, decode_responses=True)
except Exception as e:
    logger.error(f"❌ Критическая ошибка Redis при инициализации: {e}")
    redis = None


async def test_connection():
    """Проверяет соединение с Redis. Бросает исключение, если Redis недоступен."""
    if redis is None:
        raise ConnectionError("Redis клиент не инициализирован")
    try:
        await redis.ping()
        logger.info(f"✅ Соединение с Redis ({REDIS_HOST}:{REDIS_PORT}) установлено")
    except Exception as e:
        logger.error(f"❌ Ошибка подключения к Redis ({REDIS_HOST}:{REDIS_PORT}): {e}")
        raise
