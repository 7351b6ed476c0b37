"""
httpx-backed transport exposing one awaitable method per endpoint name.

    api = ApiProxy(config.api)
    result = await api.tasks({"page": 1, "page_size": 30})
"""

from __future__ import annotations

import functools
import logging
import string
from typing import Any, Dict, Optional, Tuple

import httpx

from datamanager.shared.core.configuration import ApiConfig, EndpointConfig
from datamanager.shared.infrastructure.api.models import ApiResult

logger = logging.getLogger(__name__)


def _split_path_params(path: str, params: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Fill {placeholders} in path from params, return the rest as query params."""
    names = {field for _, field, _, _ in string.Formatter().parse(path) if field}
    missing = names - params.keys()
    if missing:
        raise KeyError(f"Missing path parameter(s): {', '.join(sorted(missing))}")

    filled = path.format(**{name: params[name] for name in names})
    query = {key: value for key, value in params.items() if key not in names and value is not None}
    return filled, query


class ApiProxy:
    """Backend transport. Never raises for request failures."""

    def __init__(self, config: ApiConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        self._config = config
        self._endpoints: Dict[str, EndpointConfig] = dict(config.endpoints)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
        )

    def __getattr__(self, name: str):
        endpoints = self.__dict__.get("_endpoints", {})
        if name in endpoints:
            return functools.partial(self.request, name)
        raise AttributeError(f"{type(self).__name__} has no endpoint '{name}'")

    def has_endpoint(self, name: str) -> bool:
        return name in self._endpoints

    async def request(
        self,
        name: str,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> ApiResult:
        endpoint = self._endpoints.get(name)
        if endpoint is None:
            return ApiResult(error=f"Unknown endpoint '{name}'", status=0)

        try:
            path, query = _split_path_params(endpoint.path, dict(params or {}))
        except KeyError as e:
            return ApiResult(error=str(e), status=0)

        logger.debug(f"{endpoint.method} {path} params={query}")
        try:
            response = await self._client.request(
                endpoint.method,
                path,
                params=query,
                json=body,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Request to '{name}' failed: {e}")
            return ApiResult(error=str(e) or type(e).__name__, status=0)

        return self._to_result(response)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {"detail": response.text}

    def _to_result(self, response: httpx.Response) -> ApiResult:
        payload = self._decode(response)

        if response.is_success:
            return ApiResult(data=payload, status=response.status_code)

        return ApiResult(
            error=f"HTTP {response.status_code}",
            status=response.status_code,
            response=payload,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ApiProxy":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
