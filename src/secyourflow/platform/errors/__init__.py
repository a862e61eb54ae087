from .secyourflow_error import SecYourFlowError

__all__ = [
    "SecYourFlowError",
]
