from .auth import SIGNED_IN, SIGNED_OUT, SupabaseAuth
from .base import AuthError, Session, SupabaseError
from .storage import ImageStorage, build_image_path, resolve_image_urls

__all__ = [
    "AuthError",
    "ImageStorage",
    "SIGNED_IN",
    "SIGNED_OUT",
    "Session",
    "SupabaseAuth",
    "SupabaseError",
    "build_image_path",
    "resolve_image_urls",
]
