"""Result type returned by every backend call."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiResult(BaseModel):
    """Result-or-error of one endpoint call.

    Successful calls carry ``data``. Failed calls carry ``error`` and the
    HTTP ``status`` (0 when the request never reached the server), plus the
    decoded error ``response`` body when the server sent one.
    """
    model_config = ConfigDict(extra='forbid')

    data: Any = None
    error: Optional[str] = None
    status: int = Field(default=200, ge=0)
    response: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def should_reload(self) -> bool:
        """Server asked the whole application to reload."""
        return bool(self.get("reload"))

    @property
    def detail(self) -> Any:
        if isinstance(self.response, dict) and "detail" in self.response:
            return self.response["detail"]
        return self.error

    def get(self, key: str, default: Any = None) -> Any:
        if isinstance(self.data, dict):
            return self.data.get(key, default)
        return default
