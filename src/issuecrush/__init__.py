"""IssueCrush backend.

A thin server that sits between the swipe-to-triage client and GitHub:
- OAuth code exchange into server-held sessions (the client never sees the token)
- proxied issue listing and open/close updates
- short AI summaries per issue, with a deterministic fallback
"""

__version__ = "0.1.0"

from issuecrush.config import Settings

__all__ = ["__version__", "Settings"]
