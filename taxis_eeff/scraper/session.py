"""HTTP session for the Taxis portal.

Wraps ``httpx.Client`` in a context manager that carries the session cookie
on every request, and maps httpx failures onto the pipeline's error types.

Notes
-----
Redirects are not followed: the portal answers an expired or invalid session
with a redirect to its login page, which is reported as ``AuthError``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import httpx

from taxis_eeff.config import DEFAULT_BASE_URL, setup_logging
from taxis_eeff.errors import AuthError, TransportError

if TYPE_CHECKING:
    from collections.abc import Generator

logger = setup_logging(__name__)

AUTH_STATUS_CODES = frozenset({401, 403})


def create_portal_client(
    session_cookie: str,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = 60.0,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create a blocking client for portal calls.

    Parameters
    ----------
    session_cookie : str
        Raw ``Cookie`` header value (e.g., ``"taxisSession=abc123"``).
    base_url : str, optional
        Prefix for relative endpoint paths.
    timeout : float, optional
        Request timeout in seconds. Default 60.0.
    transport : httpx.BaseTransport | None, optional
        Custom transport (tests pass ``httpx.MockTransport``).

    Returns
    -------
    httpx.Client
        Client with the cookie header set; redirects are not followed.
    """
    return httpx.Client(
        base_url=base_url.rstrip("/") + "/",
        headers={"Cookie": session_cookie},
        timeout=timeout,
        follow_redirects=False,
        transport=transport,
    )


@contextmanager
def portal_session(
    session_cookie: str,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = 60.0,
    transport: httpx.BaseTransport | None = None,
) -> Generator[httpx.Client, None, None]:
    """Context manager for a portal client.

    Yields
    ------
    httpx.Client
        Client configured by :func:`create_portal_client`.

    Notes
    -----
    The connection pool is closed even when the harvest aborts.
    """
    client = create_portal_client(session_cookie, base_url=base_url, timeout=timeout, transport=transport)
    logger.info("HTTP client initialized for %s", base_url)
    try:
        yield client
    finally:
        client.close()


def portal_request(client: httpx.Client, method: str, url: str, **kwargs: Any) -> httpx.Response:
    """Send one request and return a successful response.

    Parameters
    ----------
    client : httpx.Client
        Portal client.
    method : str
        HTTP method (``"GET"`` or ``"POST"``).
    url : str
        Path relative to the client's base URL.
    **kwargs
        Passed through to ``httpx.Client.request``.

    Returns
    -------
    httpx.Response
        Response with a 2xx status.

    Raises
    ------
    AuthError
        On 401/403 or any redirect (session rejected).
    TransportError
        On connection errors, timeouts and other non-2xx statuses.
    """
    try:
        response = client.request(method, url, **kwargs)
    except httpx.TimeoutException as err:
        msg = f"Timeout calling {url}: {err}"
        raise TransportError(msg) from err
    except httpx.HTTPError as err:
        msg = f"Request to {url} failed: {err}"
        raise TransportError(msg) from err

    status = response.status_code
    if status in AUTH_STATUS_CODES or response.is_redirect:
        msg = f"Session rejected by portal ({status}) for {url}; refresh TAXIS_SESSION_COOKIE"
        raise AuthError(msg, status_code=status)
    if not response.is_success:
        msg = f"Portal returned {status} for {url}"
        raise TransportError(msg, status_code=status)

    return response
