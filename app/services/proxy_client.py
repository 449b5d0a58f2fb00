"""
HTTP client used by the front-end to reach the analysis proxy.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from app.core.exceptions import TransportError

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/api/v1/analyze"


class ProxyClient:
    """Posts analysis requests to the proxy and returns the raw model text."""

    def __init__(self, base_url: str, timeout: float = 120.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "SentimentAnalyzer/1.0"
        })

    def _post(self, body: Dict[str, Any]) -> str:
        url = f"{self.base_url}{ANALYZE_PATH}"
        try:
            response = self.session.post(url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Request to proxy failed: {e}")
            raise TransportError(f"Could not reach the analysis service: {e}") from e

        if not response.ok:
            detail = self._error_detail(response)
            logger.error(f"Proxy responded with status {response.status_code}: {detail}")
            raise TransportError(
                f"Server responded with status {response.status_code}. {detail}".strip(),
                status_code=response.status_code,
            )
        return response.text

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return ""
        if isinstance(data, dict) and isinstance(data.get("error"), str):
            return data["error"]
        return ""

    def analyze_batch(self, posts: List[str]) -> str:
        return self._post({"posts": posts})

    def analyze_post(self, post: str) -> str:
        return self._post({"task": "analyze_post", "post": post})

    def generate_report(self, report_data: Dict[str, Any]) -> str:
        return self._post({"task": "generate_report", "reportData": report_data})

    def health(self) -> bool:
        try:
            return self.session.get(f"{self.base_url}/health", timeout=5).ok
        except requests.RequestException:
            return False
