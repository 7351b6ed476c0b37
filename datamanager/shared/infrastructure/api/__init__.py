from datamanager.shared.infrastructure.api.models import ApiResult
from datamanager.shared.infrastructure.api.api_proxy import ApiProxy

__all__ = ["ApiResult", "ApiProxy"]
