from .client import RelaisClient

__all__ = ["RelaisClient"]
