from .hs256_session_codec import Hs256SessionCodec

__all__ = [
    "Hs256SessionCodec",
]
