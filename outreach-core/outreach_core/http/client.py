import time
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Type, TypeVar, Any, Dict, Union

import httpx
import structlog
from pydantic import BaseModel

from outreach_core.errors import (
    DependencyError,
    RateLimitedError,
    ServerError,
    DependencyTimeoutError,
    ConnectionFailedError,
    TransientOverloadError,
    AuthenticationError,
    NotFoundError,
    ValidationError,
)
from outreach_core.invoker import ResilientInvoker

# Generic type for Pydantic models
T = TypeVar("T", bound=BaseModel)

logger = structlog.get_logger(__name__)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a Retry-After header (delta-seconds or HTTP date)."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        # "-0000" dates parse as naive but are still UTC
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, when.timestamp() - time.time())


class GuardedClient:
    """
    Async HTTP client for third-party APIs, guarded by a ResilientInvoker.

    Features:
    - Every request runs through the dependency's rate limit, breaker and retry policy.
    - Connection pooling (via httpx.AsyncClient).
    - Pydantic model deserialization.
    - Responses and transport failures mapped to tagged dependency errors.
    """

    def __init__(
        self,
        base_url: str,
        service_name: str,
        invoker: ResilientInvoker,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_name = service_name
        self.invoker = invoker
        self.timeout = timeout

        default_headers = {
            "User-Agent": f"Outreach-Client/{service_name}",
            "Accept": "application/json",
        }
        if api_key:
            default_headers["Authorization"] = f"Bearer {api_key}"
        default_headers.update(headers or {})

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=default_headers,
            transport=transport,
        )

    async def aclose(self):
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "GuardedClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False

    def _map_response(self, response: httpx.Response) -> DependencyError:
        """Map an error response to a dependency error."""
        status = response.status_code
        text = response.text
        if status == 429:
            return RateLimitedError(
                "Rate limited",
                service=self.service_name,
                status_code=status,
                details=text,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        if status == 529 or (status >= 500 and "overloaded" in text.lower()):
            return TransientOverloadError("Provider overloaded", service=self.service_name, status_code=status, details=text)
        if status >= 500:
            return ServerError("Server error", service=self.service_name, status_code=status, details=text)
        if status == 401:
            return AuthenticationError("Unauthorized", service=self.service_name, status_code=status)
        if status == 403:
            return AuthenticationError("Forbidden", service=self.service_name, status_code=status)
        if status == 404:
            return NotFoundError("Resource not found", service=self.service_name, status_code=status)
        if status in (400, 422):
            return ValidationError("Validation error", service=self.service_name, status_code=status, details=text)

        return DependencyError(f"HTTP {status} Error", service=self.service_name, status_code=status, details=text)

    def _map_exception(self, exc: httpx.HTTPError) -> DependencyError:
        """Map httpx transport exceptions to dependency errors."""
        if isinstance(exc, httpx.TimeoutException):
            return DependencyTimeoutError("Request timed out", service=self.service_name)
        if isinstance(exc, httpx.TransportError):
            return ConnectionFailedError(f"Failed to connect: {exc}", service=self.service_name)
        return DependencyError(f"Unexpected error: {exc}", service=self.service_name)

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        """One network request. Raises a tagged error on failure."""
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise self._map_exception(e) from e

        if response.is_error:
            raise self._map_response(response)
        return response

    async def request(
        self,
        method: str,
        path: str,
        cost: int = 0,
        response_model: Optional[Type[T]] = None,
        **kwargs,
    ) -> Union[T, Dict[str, Any], None]:
        """Execute a guarded request and decode the JSON body."""
        response = await self.invoker.run_guarded(
            self.service_name,
            cost,
            lambda: self._send(method, path, **kwargs),
        )

        if response.status_code == 204 or not response.content:
            return None

        if response_model:
            return response_model.model_validate(response.json())

        return response.json()

    async def get(self, path: str, params: Optional[Dict] = None, response_model: Optional[Type[T]] = None, cost: int = 0) -> Union[T, Dict, None]:
        return await self.request("GET", path, cost=cost, params=params, response_model=response_model)

    async def post(self, path: str, json: Any = None, response_model: Optional[Type[T]] = None, cost: int = 0) -> Union[T, Dict, None]:
        return await self.request("POST", path, cost=cost, json=json, response_model=response_model)

    async def put(self, path: str, json: Any = None, response_model: Optional[Type[T]] = None, cost: int = 0) -> Union[T, Dict, None]:
        return await self.request("PUT", path, cost=cost, json=json, response_model=response_model)

    async def delete(self, path: str, response_model: Optional[Type[T]] = None, cost: int = 0) -> Union[T, Dict, None]:
        return await self.request("DELETE", path, cost=cost, response_model=response_model)
