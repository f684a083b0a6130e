"""HTTP retrieval of router text dumps."""

import logging
from typing import Optional

import httpx

from routerstats.config import settings

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a configured URL cannot be fetched."""


def fetch_text(
    url: str,
    timeout: Optional[float] = None,
    client: Optional[httpx.Client] = None,
) -> Optional[str]:
    """Fetch the body of ``url`` as text.

    Args:
        url: Endpoint to fetch. An empty URL means the signal is not
             configured for this router.
        timeout: Request timeout in seconds (default: FETCH_TIMEOUT_SECONDS).
        client: Optional client to reuse; a short-lived one is created
                otherwise.

    Returns:
        The response body, or None when ``url`` is empty.

    Raises:
        FetchError: On timeout, connection failure or a non-200 response.
    """
    if not url:
        return None

    if timeout is None:
        timeout = settings.FETCH_TIMEOUT_SECONDS

    try:
        if client is None:
            with httpx.Client(timeout=timeout) as own_client:
                response = own_client.get(url)
        else:
            response = client.get(url, timeout=timeout)
    except httpx.TimeoutException as e:
        raise FetchError(f"Timeout fetching data from {url}: {e}") from e
    except httpx.HTTPError as e:
        raise FetchError(f"Error fetching data from {url}: {e}") from e

    if response.status_code != 200:
        raise FetchError(
            f"HTTP error fetching data from {url}: "
            f"{response.status_code} - {response.reason_phrase}"
        )

    logger.debug("Fetched %d bytes from %s", len(response.content), url)
    return response.text
