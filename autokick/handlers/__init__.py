# Импорт всех роутеров для удобного подключения
from .settings_input import input_router
from .membership import membership_router
from .menu import menu_router

# Объединяем все роутеры в один
from aiogram import Router

handlers_router = Router()
# Ответы на запросы ввода ПЕРВЫМИ: до меню, пока админ в состоянии FSM
handlers_router.include_router(input_router)
handlers_router.include_router(membership_router)
handlers_router.include_router(menu_router)

__all__ = ['handlers_router']
