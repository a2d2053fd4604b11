"""FastAPI server adapter for IssueCrush.

Design goals:
- Keep GitHub, session and AI logic in their own packages
- Keep server-specific concerns (routing, CORS, error translation) here
"""

from issuecrush.server.app import create_app

__all__ = ["create_app"]
