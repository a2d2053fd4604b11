"""OAuth authorization-code exchange."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class OAuthExchangeError(Exception):
    def __init__(
        self,
        error: str,
        *,
        description: str | None = None,
        status_code: int = 400,
    ) -> None:
        super().__init__(error)
        self.error = error
        self.description = description
        self.status_code = status_code


async def exchange_code(
    code: str,
    *,
    client_id: str,
    client_secret: str,
    oauth_url: str = "https://github.com/login/oauth/access_token",
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = 30.0,
) -> str:
    """Exchange an OAuth ``code`` for a GitHub access token."""

    if not code:
        raise ValueError("code is required")

    payload = {"client_id": client_id, "client_secret": client_secret, "code": code}
    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            resp = await client.post(oauth_url, json=payload, headers={"Accept": "application/json"})
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("OAuth exchange request failed", extra={"error": str(e)})
        raise OAuthExchangeError(f"OAuth exchange failed: {e}", status_code=502) from e

    if not isinstance(data, dict):
        raise OAuthExchangeError("Unexpected OAuth response", status_code=502)

    error = data.get("error")
    if error:
        logger.warning("OAuth exchange rejected", extra={"error": error})
        raise OAuthExchangeError(str(error), description=data.get("error_description"))

    token = data.get("access_token")
    if not isinstance(token, str) or not token:
        raise OAuthExchangeError("No access token received")
    return token
