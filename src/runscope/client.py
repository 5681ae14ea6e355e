"""
Runscope HTTP client
Used by agents to push run traces and by the CLI to read them back.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class RunscopeAPIError(Exception):
    """Non-2xx response from the Runscope API"""

    def __init__(self, status_code: int, message: str, details: Optional[List[Dict[str, Any]]] = None):
        self.status_code = status_code
        self.message = message
        self.details = details or []
        super().__init__(f"[{status_code}] {message}")


class RunscopeClient:
    """
    Thin synchronous client for the Runscope API.

    Pass `http_client` to reuse an existing httpx.Client (its base_url is used as is).
    """

    def __init__(
        self,
        api_url: str = "http://localhost:8080",
        timeout: float = 10.0,
        http_client: Optional[httpx.Client] = None
    ):
        self.api_url = api_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(base_url=self.api_url, timeout=timeout)

    def __enter__(self) -> "RunscopeClient":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._owns_client:
            self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self._client.request(method, path, **kwargs)
        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("error") or response.reason_phrase or "request failed"
        logger.debug(f"{method} {path} -> {response.status_code}: {message}")
        raise RunscopeAPIError(response.status_code, message, body.get("details"))

    def send_trace(self, payload: Dict[str, Any]) -> str:
        """Submit a run trace; returns the new run id"""
        return self._request("POST", "/api/ingest", json=payload)["id"]

    def list_runs(
        self,
        status: Optional[str] = None,
        framework: Optional[str] = None,
        q: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        params = {"status": status, "framework": framework, "q": q, "limit": limit}
        params = {k: v for k, v in params.items() if v is not None}
        return self._request("GET", "/api/runs", params=params)["runs"]

    def get_run(self, run_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/runs/{run_id}")

    def get_analytics(self, run_id: str) -> Dict[str, Any]:
        """Run plus analytics: {"run": ..., "analytics": ...}"""
        return self._request("GET", f"/api/runs/{run_id}/analytics")

    def delete_run(self, run_id: str):
        self._request("DELETE", f"/api/runs/{run_id}")

    def get_schema(self) -> Dict[str, Any]:
        return self._request("GET", "/api/schema")
