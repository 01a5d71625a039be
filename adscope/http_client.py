"""Pooled HTTP session for the copy generation API."""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from adscope.config import get_settings

# 529 is Anthropic's "overloaded" status
RETRY_STATUSES = (429, 500, 502, 503, 504, 529)

_session: requests.Session | None = None


def _retry_policy(max_retries: int) -> Retry:
    # Backoff doubles from 1s; Retry-After from a 429 takes precedence
    return Retry(
        total=max_retries,
        backoff_factor=1,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=["POST"],
        respect_retry_after_header=True,
        raise_on_status=False,
    )


def get_session() -> requests.Session:
    """Return the shared session used for copy generation calls."""
    global _session
    if _session is None:
        _session = requests.Session()
        _session.mount("https://", HTTPAdapter(max_retries=_retry_policy(get_settings().copy_max_retries)))
    return _session
