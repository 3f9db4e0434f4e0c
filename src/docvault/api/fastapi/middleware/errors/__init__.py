from .catchall import CatchAllExceptionMiddleware
from .handlers import problem_response, register_error_handlers

__all__ = ["CatchAllExceptionMiddleware", "problem_response", "register_error_handlers"]
