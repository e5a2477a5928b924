"""
Network retrieval of tile payloads.
"""

import logging
import threading
from typing import Dict, List, Optional

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# 429 is rate limiting; retrying later is expected to succeed.
_TRANSIENT_STATUS = frozenset({408, 429})


def _is_transient_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in _TRANSIENT_STATUS


class TileFetcher:
    """Fetches raw tile bytes over HTTP.

    The fetcher performs a single attempt per call and never caches; retry
    policy belongs to the caller, guided by ``FetchError.transient``.

    ``requests.Session`` is not thread-safe, so each calling thread gets its
    own session. A session passed in explicitly is used by every thread and
    its thread safety is the caller's responsibility.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.headers = dict(headers or {})
        self._shared_session = session
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """Session used by the calling thread."""
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def fetch(self, address: str) -> bytes:
        """
        Retrieve the full payload at ``address``.

        Args:
            address: Tile URL produced by a request builder

        Returns:
            Tile bytes

        Raises:
            FetchError: ``transient`` for timeouts, connection failures and 5xx;
                permanent for other 4xx responses and malformed requests
        """
        if not address:
            raise FetchError("Tile address is empty", transient=False)

        logger.debug(f"Fetching tile: {address}")
        try:
            response = self.session.get(address, headers=self.headers, timeout=self.timeout)
        except (requests.Timeout, requests.ConnectionError) as e:
            raise FetchError(f"Network error for {address}: {e}", transient=True, cause=e) from e
        except requests.RequestException as e:
            raise FetchError(f"Invalid tile request {address}: {e}", transient=False, cause=e) from e

        if response.status_code != 200:
            error_msg = f"HTTP {response.status_code} for {address}"
            raise FetchError(
                error_msg,
                transient=_is_transient_status(response.status_code),
                status_code=response.status_code,
            )

        data = response.content
        if not data:
            raise FetchError(f"Empty tile payload from {address}", transient=False, status_code=200)
        return data

    def close(self) -> None:
        """Close the injected session, or every per-thread session opened so far."""
        if self._shared_session is not None:
            self._shared_session.close()
        with self._lock:
            sessions, self._sessions = self._sessions, []
            self._local = threading.local()
        for session in sessions:
            session.close()

    def __enter__(self) -> "TileFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def fetch_tile(address: str, timeout: float = DEFAULT_TIMEOUT, headers: Optional[Dict[str, str]] = None) -> bytes:
    """One-off fetch of a single tile using a short-lived session."""
    with TileFetcher(timeout=timeout, headers=headers) as fetcher:
        return fetcher.fetch(address)
