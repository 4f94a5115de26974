import os
import html
import asyncio
import logging

import aiohttp

BOT_TOKEN = os.getenv("BOT_TOKEN")
LOG_CHANNEL_ID = os.getenv("LOG_CHANNEL_ID")


# ==== СПЕЦИАЛЬНЫЕ ФОРМАТИРОВАННЫЕ ЛОГИ ДЛЯ TELEGRAM ====

async def send_formatted_log(message):
    """Отправляет отформатированное сообщение в канал логов в Telegram"""
    if not BOT_TOKEN or not LOG_CHANNEL_ID:
        return

    url = f"https://api.telegram.org/bot{BOT_TOKEN}/sendMessage"
    payload = {
        "chat_id": LOG_CHANNEL_ID,
        "text": message,
        "parse_mode": "HTML",
        "disable_web_page_preview": True
    }

    async with aiohttp.ClientSession() as session:
        try:
            resp = await session.post(url, data=payload)
            if resp.status != 200:
                text = await resp.text()
                print(f"❌ Telegram API Error: {resp.status} — {text}")
        except Exception as e:
            print(f"❌ Ошибка при отправке лога в Telegram: {e}")


def _schedule(message):
    """Планирует отправку лога, если есть работающий event loop."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return
    loop.create_task(send_formatted_log(message))


def _user_link(user_id):
    return f"<a href='tg://user?id={user_id}'>id{user_id}</a>"


def log_join_request(user_id, chat_id, approved):
    """Отправляет лог о заявке на вступление"""
    status = "одобрена 🟢" if approved else "бот не активирован ⚪"
    msg = (
        f"📬 #ЗАПРОС_НА_ВСТУПЛЕНИЕ\n"
        f"• Кто: {_user_link(user_id)} [{user_id}]\n"
        f"• Группа: [{chat_id}]\n"
        f"• Статус: {status}\n"
        f"#id{user_id}"
    )
    _schedule(msg)


def log_member_tracked(user_id, chat_id, kick_date):
    """Отправляет лог о постановке участника на автокик"""
    msg = (
        f"⏳ #АВТОКИК_ЗАПЛАНИРОВАН 🟡\n"
        f"• Кто: {_user_link(user_id)} [{user_id}]\n"
        f"• Группа: [{chat_id}]\n"
        f"• Кик после: {kick_date:%Y-%m-%d %H:%M} UTC\n"
        f"#id{user_id}"
    )
    _schedule(msg)


def log_member_evicted(user_id, chat_id, mode="ban"):
    """Отправляет лог о кике участника по истечении срока"""
    action = "забанен" if mode == "ban" else "кикнут"
    msg = (
        f"🚪 #АВТОКИК 🔴\n"
        f"• Кто: {_user_link(user_id)} [{user_id}]\n"
        f"• Группа: [{chat_id}]\n"
        f"• Действие: {action}\n"
        f"#id{user_id}"
    )
    _schedule(msg)


class TelegramLogHandler(logging.Handler):
    """
    Пересылает записи логов уровня WARNING и выше в канал логов.

    Записи самого aiohttp/aiogram не пересылаются, чтобы ошибка
    отправки не порождала новую запись и бесконечный цикл.
    """

    IGNORED_PREFIXES = ("aiohttp", "aiogram", "asyncio")

    def __init__(self, level=logging.WARNING):
        super().__init__(level=level)

    def emit(self, record):
        if record.name.startswith(self.IGNORED_PREFIXES):
            return
        try:
            text = self.format(record)
        except Exception:
            self.handleError(record)
            return
        _schedule(f"⚠️ #ЛОГ_{record.levelname}\n<code>{html.escape(text)[:3500]}</code>")