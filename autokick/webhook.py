"""
Webhook система для Telegram бота
"""
import asyncio
import logging
from aiohttp import web
from aiogram import Bot, Dispatcher
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiogram.exceptions import TelegramRetryAfter

from autokick.config import WEBHOOK_URL, WEBHOOK_PATH, WEBHOOK_PORT, SSL_CERT_PATH, SSL_KEY_PATH

logger = logging.getLogger(__name__)

ALLOWED_UPDATES = ["message", "callback_query", "chat_join_request"]


async def health_check(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "service": "autokick_bot"})


def create_app(bot: Bot, dp: Dispatcher) -> web.Application:
    """Создание веб-приложения для webhook (dispatcher уже настроен в bot.py)"""
    app = web.Application()

    webhook_requests_handler = SimpleRequestHandler(dispatcher=dp, bot=bot)
    webhook_requests_handler.register(app, path=WEBHOOK_PATH)
    setup_application(app, dp, bot=bot)

    app.router.add_get("/health", health_check)
    return app


async def setup_webhook(bot: Bot, max_attempts: int = 5):
    """Настройка webhook для бота с повтором при Flood control"""
    if not WEBHOOK_URL:
        logger.error("❌ WEBHOOK_URL не установлен в конфигурации! Проверьте .env файл.")
        raise ValueError("WEBHOOK_URL не установлен")

    for attempt in range(1, max_attempts + 1):
        try:
            logger.info("🔄 Удаление старого webhook...")
            await bot.delete_webhook(drop_pending_updates=True)
            await asyncio.sleep(1)

            logger.info(f"🔧 Установка webhook: {WEBHOOK_URL}")
            await bot.set_webhook(
                url=WEBHOOK_URL,
                drop_pending_updates=True,
                allowed_updates=ALLOWED_UPDATES,
            )

            webhook_info = await bot.get_webhook_info()
            if webhook_info.url == WEBHOOK_URL:
                logger.info(f"✅ Webhook успешно установлен и проверен: {WEBHOOK_URL}")
            else:
                logger.warning(f"⚠️ Webhook установлен, но URL не совпадает: {webhook_info.url}")

            if webhook_info.last_error_date:
                logger.warning(f"⚠️ Последняя ошибка webhook: {webhook_info.last_error_message}")
            return

        except TelegramRetryAfter as e:
            wait_seconds = max(int(getattr(e, "retry_after", 1)), 1)
            logger.warning(
                f"⚠️ Попытка {attempt}/{max_attempts}: Flood control на set_webhook. "
                f"Повтор через {wait_seconds} сек."
            )
            if attempt == max_attempts:
                logger.error("❌ Достигнут лимит попыток установки webhook")
                raise
            await asyncio.sleep(wait_seconds)


def _ssl_context():
    # Обычно SSL завершается на nginx, бот работает по HTTP внутри сети
    if not (SSL_CERT_PATH and SSL_KEY_PATH):
        return None
    import ssl
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    context.load_cert_chain(SSL_CERT_PATH, SSL_KEY_PATH)
    logger.info("✅ SSL контекст загружен")
    return context


async def run_webhook(bot: Bot, dp: Dispatcher):
    """Запуск webhook сервера до отмены задачи"""
    await setup_webhook(bot)
    app = create_app(bot, dp)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host='0.0.0.0', port=WEBHOOK_PORT, ssl_context=_ssl_context())
    await site.start()
    logger.info(f"🚀 Webhook сервер запущен на порту {WEBHOOK_PORT}")

    try:
        await asyncio.Future()  # Бесконечный цикл
    finally:
        await runner.cleanup()
