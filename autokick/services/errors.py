# autokick/services/errors.py
"""
Исключения бизнес-логики автокика.

Классификация ошибок:
- TransientIO: SQLAlchemyError / TelegramAPIError - логируем, операцию прерываем,
  пользователю отвечаем общим сообщением об ошибке
- AuthorizationDenied: не админ - молча игнорируем (см. AdminGateMiddleware)
- PreconditionUnmet: группа не активирована - no-op с записью в лог
- InvalidInput: неверный ввод админа - показываем причину отказа
"""

from sqlalchemy.exc import SQLAlchemyError
from aiogram.exceptions import TelegramAPIError


# Ошибки ввода-вывода, которые не должны ронять процесс
TRANSIENT_IO_ERRORS = (SQLAlchemyError, TelegramAPIError)


class AutokickError(Exception):
    """Базовое исключение модуля автокика."""
    pass


class InvalidKickDaysError(AutokickError):
    """
    Админ ввёл некорректное количество дней.

    Текст исключения показывается пользователю как есть.
    """
    pass
