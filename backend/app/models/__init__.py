from .trade import Trade

__all__ = [
    "Trade",
]
