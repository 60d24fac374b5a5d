"""Provider adapter contract."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar, Union

import httpx

from ..models.result import Unavailable, UnavailableReason
from ..utils.errors import BedrockAPIError, ParseError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 8.0


class MissingAPIKey(Exception):
    """The provider needs a credential that is not configured."""


class NoResult(Exception):
    """The provider answered but holds no record for the input."""


class ProviderAdapter(ABC, Generic[T]):
    """
    Wraps one external call and maps its outcome to ``T | Unavailable``.

    Subclasses implement ``_fetch`` and signal routine failures by raising;
    ``call`` converts those into ``Unavailable`` values so nothing escapes
    to the resolver except cancellation. There are no retries here.

    Attributes:
        name: Provider name used for provenance
        timeout: Hard limit for one call, in seconds
    """

    name: str = "provider"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, name: Optional[str] = None):
        self.timeout = timeout
        if name:
            self.name = name

    async def call(self, request: Any) -> Union[T, Unavailable]:
        """
        Invoke the provider once.

        Args:
            request: Capability-specific input (address, Location, ...)

        Returns:
            The provider's record, or Unavailable with a reason code
        """
        try:
            return await asyncio.wait_for(self._fetch(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            return self._unavailable(UnavailableReason.TIMEOUT, f"no answer within {self.timeout}s")
        except httpx.TimeoutException as e:
            return self._unavailable(UnavailableReason.TIMEOUT, str(e) or type(e).__name__)
        except httpx.HTTPStatusError as e:
            return self._unavailable(
                UnavailableReason.HTTP_ERROR,
                f"{e.response.status_code} from {e.request.url.host}",
                status=e.response.status_code,
            )
        except httpx.RequestError as e:
            return self._unavailable(UnavailableReason.HTTP_ERROR, f"{type(e).__name__}: {e}")
        except MissingAPIKey as e:
            return self._unavailable(UnavailableReason.MISSING_KEY, str(e))
        except NoResult as e:
            return self._unavailable(UnavailableReason.NOT_FOUND, str(e))
        except BedrockAPIError as e:
            reason = UnavailableReason.TIMEOUT if e.is_timeout else UnavailableReason.HTTP_ERROR
            return self._unavailable(reason, str(e))
        except (ParseError, ValueError, KeyError, TypeError, IndexError) as e:
            return self._unavailable(
                UnavailableReason.MALFORMED_RESPONSE, f"{type(e).__name__}: {e}"
            )

    @abstractmethod
    async def _fetch(self, request: Any) -> T:
        """Perform the call and return the record, raising on failure."""

    def _unavailable(
        self,
        reason: UnavailableReason,
        detail: str = "",
        status: Optional[int] = None
    ) -> Unavailable:
        result = Unavailable(provider=self.name, reason=reason, detail=detail, status=status)
        logger.warning(f"Provider {self.name} unavailable: {result.describe()} ({detail})")
        return result


class HttpProvider(ProviderAdapter[T]):
    """
    Adapter backed by an HTTP API reached through httpx.

    A client is opened per call. ``transport`` lets tests substitute an
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        name: Optional[str] = None
    ):
        super().__init__(timeout=timeout, name=name)
        self.api_key = api_key
        self.transport = transport

    def require_key(self) -> str:
        if not self.api_key:
            raise MissingAPIKey(f"{self.name} API key not configured")
        return self.api_key

    def client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport, **kwargs)

    async def get_json(self, url: str, params: Optional[dict] = None, **client_kwargs: Any) -> Any:
        async with self.client(**client_kwargs) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()

    async def get_bytes(self, url: str, params: Optional[dict] = None) -> bytes:
        async with self.client() as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.content
