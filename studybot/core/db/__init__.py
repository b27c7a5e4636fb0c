from .base import Base, engine, async_session_maker, get_session, utcnow

__all__ = ["Base", "engine", "async_session_maker", "get_session", "utcnow"]
