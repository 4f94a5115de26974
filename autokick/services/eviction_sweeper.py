# ═══════════════════════════════════════════════════════════════════════════
# ФОНОВЫЙ АВТОКИК
# ═══════════════════════════════════════════════════════════════════════════
# Раз в SWEEP_INTERVAL_SECONDS выбирает из kick_members записи с
# kick_date <= now и для каждой:
# 1. Проверяет что пользователь не админ (админов НИКОГДА не кикаем,
#    запись остаётся и проверяется на следующем проходе)
# 2. Отправляет кастомное сообщение в ЛС (ошибка не мешает кику)
# 3. Банит (или кикает) пользователя и удаляет запись
#
# Ошибка на одной записи не прерывает обработку остальных.
# Неудачный кик повторяется на следующем проходе без ограничения попыток.
# SWEEP_BATCH_SIZE ограничивает число киков за проход, а не число записей.
# Проходы не пересекаются: если предыдущий ещё идёт - новый пропускается.
# ═══════════════════════════════════════════════════════════════════════════

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Set, Tuple

from aiogram import Bot
from sqlalchemy.ext.asyncio import AsyncSession

from autokick.config import SWEEP_INTERVAL_SECONDS, SWEEP_BATCH_SIZE, EVICTION_MODE
from autokick.database.models import utcnow
from autokick.database import session as db_session_module
from autokick.services.admin_gate import fetch_admin_ids
from autokick.services.group_config_service import get_group_state
from autokick.services.membership_service import get_due_records, delete_record
from autokick.utils.logger import log_member_evicted


logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# DATACLASS ДЛЯ РЕЗУЛЬТАТА ПРОХОДА
# ═══════════════════════════════════════════════════════════════════════════
@dataclass
class SweepReport:
    """
    Итог одного прохода.

    Attributes:
        due: Сколько просроченных записей выбрано
        evicted: Сколько пользователей кикнуто (записи удалены)
        skipped_admin: Сколько записей пропущено, т.к. пользователь админ
        failed: Сколько записей не обработано из-за ошибок
        notified: Сколько кастомных сообщений доставлено
    """
    due: int = 0
    evicted: int = 0
    skipped_admin: int = 0
    failed: int = 0
    notified: int = 0


class EvictionSweeper:
    """
    Периодическая задача автокика.

    Один экземпляр на процесс. Запускается через start(),
    останавливается через stop() - текущая запись дорабатывается,
    после чего цикл завершается.
    """

    def __init__(
        self,
        bot: Bot,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        interval: float = SWEEP_INTERVAL_SECONDS,
        batch_size: int = SWEEP_BATCH_SIZE,
        eviction_mode: str = EVICTION_MODE,
    ):
        self.bot = bot
        self.interval = interval
        self.batch_size = batch_size
        self.eviction_mode = eviction_mode
        self._session_factory = session_factory
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _new_session(self) -> AsyncSession:
        # Фабрика читается в момент прохода, чтобы тесты могли её подменить
        factory = self._session_factory or db_session_module.async_session
        return factory()

    # ─────────────────────────────────────────────────────────────────────
    # ЗАПУСК / ОСТАНОВКА
    # ─────────────────────────────────────────────────────────────────────
    def start(self) -> None:
        """Запускает фоновый цикл в текущем event loop."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_forever(), name="eviction_sweeper")
        logger.info(f"🧹 [SWEEP] Автокик запущен: interval={self.interval}s, mode={self.eviction_mode}")

    async def stop(self) -> None:
        """Останавливает цикл, дождавшись окончания текущей записи."""
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("🛑 [SWEEP] Автокик остановлен")

    async def _run_forever(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.sweep_once()
            except Exception as e:
                logger.exception(f"❌ [SWEEP] Необработанная ошибка прохода: {e}")

            # Ждём следующий проход или сигнал остановки
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    # ─────────────────────────────────────────────────────────────────────
    # ОДИН ПРОХОД
    # ─────────────────────────────────────────────────────────────────────
    async def sweep_once(self, now: Optional[datetime] = None) -> Optional[SweepReport]:
        """
        Выполняет один проход по просроченным записям.

        Args:
            now: Момент проверки (UTC, naive); по умолчанию текущее время

        Returns:
            SweepReport или None, если предыдущий проход ещё выполняется
        """
        if self._lock.locked():
            logger.warning("⏭ [SWEEP] Предыдущий проход ещё выполняется - пропускаем")
            return None

        async with self._lock:
            report = SweepReport()
            check_at = now or utcnow()
            try:
                async with self._new_session() as session:
                    # Список админов запрашиваем один раз на группу за проход
                    admin_cache: Dict[int, Set[int]] = {}
                    cursor: Optional[Tuple[datetime, int]] = None

                    while not self._stop_event.is_set():
                        limit = self.batch_size - report.evicted if self.batch_size > 0 else 0
                        records = await get_due_records(session, now=check_at, limit=limit, after=cursor)
                        # Копируем поля заранее: после rollback ORM объекты протухают
                        page = [(r.id, r.user_id, r.chat_id, r.kick_date) for r in records]
                        if not page:
                            break
                        report.due += len(page)
                        cursor = (page[-1][3], page[-1][0])

                        for record_id, user_id, chat_id, _ in page:
                            if self._stop_event.is_set():
                                logger.info("🛑 [SWEEP] Получен сигнал остановки - проход прерван")
                                break
                            await self._process_record(session, record_id, user_id, chat_id, admin_cache, report)

                        if self.batch_size <= 0 or report.evicted >= self.batch_size:
                            break
            except Exception as e:
                logger.exception(f"❌ [SWEEP] Ошибка прохода: {e}")

            if report.due:
                logger.info(
                    f"🧹 [SWEEP] Проход завершён: due={report.due}, evicted={report.evicted}, "
                    f"admins={report.skipped_admin}, failed={report.failed}, notified={report.notified}"
                )
            return report

    async def _process_record(
        self,
        session: AsyncSession,
        record_id: int,
        user_id: int,
        chat_id: int,
        admin_cache: Dict[int, Set[int]],
        report: SweepReport,
    ) -> None:
        try:
            # ─── Шаг 1: админов не трогаем ───
            admins = admin_cache.get(chat_id)
            if admins is None:
                admins = await fetch_admin_ids(self.bot, chat_id)
                admin_cache[chat_id] = admins

            if user_id in admins:
                report.skipped_admin += 1
                logger.debug(f"[SWEEP] user_id={user_id} админ в chat_id={chat_id} - пропуск")
                return

            # ─── Шаг 2: кастомное сообщение ───
            group = await get_group_state(session, chat_id)
            message = group.departure_message if group.is_active else None
            if message:
                try:
                    await self.bot.send_message(chat_id=user_id, text=message)
                    report.notified += 1
                except Exception as e:
                    # Пользователь мог закрыть ЛС - кикаем всё равно
                    logger.warning(f"⚠️ [SWEEP] Не удалось отправить сообщение user_id={user_id}: {e}")

            # ─── Шаг 3: кик и удаление записи ───
            try:
                await self._evict(chat_id, user_id)
            except Exception as e:
                report.failed += 1
                logger.error(f"❌ [SWEEP] Не удалось кикнуть user_id={user_id} из chat_id={chat_id}: {e}")
                return

            await delete_record(session, record_id)
            report.evicted += 1
            logger.info(f"🚪 [SWEEP] Кикнут user_id={user_id} из chat_id={chat_id}")
            log_member_evicted(user_id, chat_id, mode=self.eviction_mode)

        except Exception as e:
            report.failed += 1
            logger.error(f"❌ [SWEEP] Ошибка обработки user_id={user_id}, chat_id={chat_id}: {e}")
            try:
                await session.rollback()
            except Exception as rollback_error:
                logger.error(f"❌ [SWEEP] Ошибка rollback: {rollback_error}")

    async def _evict(self, chat_id: int, user_id: int) -> None:
        """
        Удаляет пользователя из группы.

        ban  - бан навсегда (вернуться нельзя)
        kick - бан + разбан (пользователь может подать заявку снова)
        """
        await self.bot.ban_chat_member(chat_id=chat_id, user_id=user_id)
        if self.eviction_mode == "kick":
            await self.bot.unban_chat_member(chat_id=chat_id, user_id=user_id, only_if_banned=True)
