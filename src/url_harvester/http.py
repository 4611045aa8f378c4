"""HTTP session factory."""

from __future__ import annotations

from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


def make_session(user_agent: str, *, pool_size: int = 32) -> Session:
    """Create the requests session shared by every source.

    The adapter never retries or sleeps on its own: server errors and quota
    answers reach the sources, which retry them through the run context so a
    deadline or cancellation is honoured while waiting.
    """
    session = Session()
    session.headers.update({"User-Agent": user_agent})
    retry = Retry(total=0, read=False, respect_retry_after_header=False, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry, pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session
