"""
Document Fetcher

Downloads the documents attached to a filing (abstract, claims,
description, diagrams) by URL.
"""

import logging

import requests

from priorart import config
from priorart.exceptions import FetchError

logger = logging.getLogger(__name__)


class DocumentFetcher:
    """
    Downloads raw document bytes.

    Usage:
        fetcher = DocumentFetcher()
        raw_bytes = fetcher.fetch("https://.../claims.pdf")
    """

    TIMEOUT = config.FETCH_TIMEOUT  # seconds

    def __init__(self, session: requests.Session = None):
        self.session = session or requests.Session()

    def fetch(self, url: str) -> bytes:
        """
        Fetch a document.

        Raises:
            FetchError: On network errors or non-2xx responses
        """
        if not url:
            raise FetchError("No URL to fetch")

        try:
            response = self.session.get(url, timeout=self.TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch {url}: {e}") from e

        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return response.content
