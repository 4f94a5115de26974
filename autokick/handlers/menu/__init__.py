from autokick.handlers.menu.menu_handlers import menu_router

__all__ = ['menu_router']
