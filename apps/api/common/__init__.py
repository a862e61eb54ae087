from .errors import register_api_error_handlers

__all__ = [
    "register_api_error_handlers",
]
