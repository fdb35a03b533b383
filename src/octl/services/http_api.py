"""Minimal JSON-over-HTTP helper shared by the provider adapters."""

from typing import Any, Dict, Optional

import requests

from octl.errors import ProviderError


class JsonApiClient:
    """Bearer-token JSON client bound to one provider base URL."""

    def __init__(
        self,
        base_url: str,
        token: str,
        requests_module=requests,
        timeout_seconds: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.requests = requests_module
        self.timeout_seconds = timeout_seconds

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def send(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ):
        """Issue a request and return the raw response, whatever its status."""
        request_exception = getattr(self.requests, "RequestException", Exception)
        try:
            return self.requests.request(
                method,
                self.url(path),
                headers=self.headers,
                params=params,
                json=payload,
                timeout=self.timeout_seconds,
            )
        except request_exception as exc:
            raise ProviderError(operation, body=str(exc)) from exc

    def request(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Issue a request and decode its JSON body; non-2xx raises ProviderError."""
        response = self.send(method, path, operation, params=params, payload=payload)
        if not self.is_ok(response):
            raise ProviderError(operation, response.status_code, self.body_text(response))
        return self.decode(response)

    def get(self, path: str, operation: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", path, operation, params=params)

    def post(
        self,
        path: str,
        operation: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return self.request("POST", path, operation, params=params, payload=payload)

    @staticmethod
    def is_ok(response) -> bool:
        return 200 <= response.status_code < 300

    @staticmethod
    def body_text(response) -> str:
        return (getattr(response, "text", "") or "").strip()

    @staticmethod
    def decode(response) -> Dict[str, Any]:
        if response.status_code == 204 or not JsonApiClient.body_text(response):
            return {}
        try:
            data = response.json()
        except ValueError:
            return {}
        if isinstance(data, dict):
            return data
        return {"data": data}
