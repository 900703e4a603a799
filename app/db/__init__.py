"""Database package: engine, session factory, base."""

from app.db.session import async_session_maker, engine

__all__ = ["async_session_maker", "engine"]
