from autokick.handlers.membership.membership_handlers import membership_router

__all__ = ['membership_router']
