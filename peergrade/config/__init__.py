from .settings import Settings, get_bool_env

__all__ = ["Settings", "get_bool_env"]
