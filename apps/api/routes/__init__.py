from .identity import SessionResponse, build_identity_router

__all__ = [
    "SessionResponse",
    "build_identity_router",
]
