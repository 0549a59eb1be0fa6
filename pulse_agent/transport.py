"""
HTTP transport from agent to hub.
"""

from typing import Any, Dict

import requests


class TransportError(Exception):
    """The hub could not be reached or did not accept the snapshot"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class HttpSender:
    """POSTs snapshots as JSON to the hub's /metrics endpoint"""

    def __init__(self, manager_url: str, timeout: float = 10, session: requests.Session = None):
        self.manager_url = manager_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, payload: Dict[str, Any]) -> None:
        """
        Deliver one snapshot. No retry: a failed snapshot is lost.

        Raises:
            TransportError: network failure, timeout or non-2xx response
        """
        try:
            response = self.session.post(self.manager_url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise TransportError(f"Timeout after {self.timeout}s sending to {self.manager_url}")
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Could not reach {self.manager_url}: {e}")

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"HTTP error: {response.status_code} - {response.text.strip()[:200]}",
                status_code=response.status_code
            )

    def close(self) -> None:
        self.session.close()
