from autokick.handlers.settings_input.input_handlers import input_router
from autokick.handlers.settings_input.prompts import SettingsInput

__all__ = ['input_router', 'SettingsInput']
