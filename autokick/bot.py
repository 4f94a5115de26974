import asyncio
import logging
import os
import sys

# Настройка путей для запуска из любой директории
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.fsm.storage.redis import RedisStorage
from aiogram.client.session.aiohttp import AiohttpSession

# ВАЖНО: сначала загружаем конфиг (.env), потом инициализируем Redis
from autokick.config import BOT_TOKEN, USE_WEBHOOK, REDIS_URL, LOG_LEVEL, PROMPT_TTL
from autokick.services.redis_conn import redis, test_connection

from autokick.database.session import async_session, init_db
from autokick.middleware.db_session import DbSessionMiddleware
from autokick.middleware.structured_logging import StructuredLoggingMiddleware
from autokick.handlers import handlers_router
from autokick.services.eviction_sweeper import EvictionSweeper
from autokick.services.menu_cache import MenuCache
from autokick.services.menu_presenter import MenuPresenter
from autokick.utils.logger import TelegramLogHandler
from autokick.webhook import ALLOWED_UPDATES, run_webhook


def setup_logging():
    logger = logging.getLogger()
    logger.setLevel(LOG_LEVEL)

    # Обработчик для консоли
    console_handler = logging.StreamHandler()
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    logger.addHandler(console_handler)

    # Обработчик для Telegram (только WARNING и выше)
    telegram_handler = TelegramLogHandler(level=logging.WARNING)
    telegram_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    logger.addHandler(telegram_handler)

    # Отключаем встроенное логирование aiogram для апдейтов
    for logger_name in ("aiogram", "aiogram.dispatcher", "aiogram.event"):
        log = logging.getLogger(logger_name)
        log.addHandler(console_handler)
        log.setLevel(logging.ERROR)
        log.propagate = False


async def create_storage():
    """Отказоустойчивое хранилище FSM: если Redis недоступен, используем MemoryStorage"""
    try:
        await test_connection()
        # Незавершённый запрос ввода живёт не дольше PROMPT_TTL
        return RedisStorage.from_url(REDIS_URL, state_ttl=PROMPT_TTL, data_ttl=PROMPT_TTL), redis
    except Exception as e:
        logging.warning(f"⚠️ Ошибка подключения к Redis: {e}")
        logging.info("ℹ️ Используется MemoryStorage (состояния и кэш меню будут утеряны при перезапуске)")
        return MemoryStorage(), None


# главная асинхронная функция, запускающая бота
async def main():
    setup_logging()

    storage, menu_redis = await create_storage()

    # Создаём таблицы в БД на основе моделей (если они не существуют)
    await init_db()

    session = AiohttpSession(timeout=60.0)
    bot = Bot(token=BOT_TOKEN, session=session)

    # menu_presenter прокидывается во все хендлеры через workflow data
    dp = Dispatcher(storage=storage, menu_presenter=MenuPresenter(MenuCache(menu_redis)))

    # Сессия БД в каждый хендлер
    dp.update.middleware(DbSessionMiddleware(async_session))
    # middleware выполняется в обратном порядке регистрации - логирование снаружи
    dp.update.middleware(StructuredLoggingMiddleware())

    dp.include_router(handlers_router)

    sweeper = EvictionSweeper(bot)
    sweeper.start()
    logging.info("🤖 Бот успешно запущен и готов к работе.")

    try:
        if USE_WEBHOOK:
            logging.info("🌐 Запуск в режиме webhook...")
            await run_webhook(bot=bot, dp=dp)
        else:
            logging.info("🔄 Запуск в режиме polling...")
            await bot.delete_webhook(drop_pending_updates=True)
            await dp.start_polling(bot, allowed_updates=ALLOWED_UPDATES)
    finally:
        await sweeper.stop()
        await bot.session.close()
        await storage.close()


if __name__ == "__main__":
    asyncio.run(main())
