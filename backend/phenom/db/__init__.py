"""Remote learner store: stats documents and the session log."""

from .session import dispose_engine, get_engine, session_scope

__all__ = ["dispose_engine", "get_engine", "session_scope"]
