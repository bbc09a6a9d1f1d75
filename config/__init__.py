import importlib
import os
from types import ModuleType

_ENV_ALIASES = {
    "prod": "production",
    "production": "production",
    "test": "testing",
    "testing": "testing",
    "dev": "development",
    "development": "development",
}


def get_settings_module() -> str:
    """Dotted path of the settings module chosen by APP_ENV.

    Unrecognised values fall back to development.
    """
    env = os.getenv("APP_ENV", "development").strip().lower()
    return f"config.{_ENV_ALIASES.get(env, 'development')}"


def load_settings() -> ModuleType:
    return importlib.import_module(get_settings_module())
