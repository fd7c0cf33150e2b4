import json
import logging
from typing import Any, Dict, Optional

from aiohttp import ClientSession
from aiohttp.client import ClientTimeout

from kubemap.async_loop import AsyncLoop, launch_in_background_thread
from kubemap.auth import AuthProvider
from kubemap.config import Context


class ApiError(Exception):
    def __init__(self, code: int, reason: str, message: str) -> None:
        super().__init__()

        self.code = code
        self.reason = reason
        self.message = message

    def __repr__(self) -> str:
        return "%s(code=%r, reason=%r, message=%r)" % (
            self.__class__.__name__,
            self.code,
            self.reason,
            self.message,
        )

    def __str__(self) -> str:
        return self.__repr__()

    @classmethod
    def from_response(cls, status: int, reason: Optional[str], body: str) -> "ApiError":
        """
        The api server reports failures as a Status object:

        {
          "kind": "Status",
          "status": "Failure",
          "message": "the server could not find the requested resource",
          "reason": "NotFound",
          "code": 404
        }
        """

        dct: Dict[str, Any] = {}
        try:
            parsed = json.loads(body) if body else {}
            if isinstance(parsed, dict):
                dct = parsed
        except ValueError:
            pass

        return cls(
            code=status,
            reason=dct.get("reason") or reason or "",
            message=dct.get("message") or body,
        )


class HttpClient:
    """Fetches a url and returns the response body as text."""

    def get(self, url: str, timeout: float) -> str:
        raise NotImplementedError

    def close(self) -> None:
        pass


class AsyncClient:
    def __init__(self, *, context: Optional[Context] = None, logger=None) -> None:
        self.context = context
        self.logger = logger or logging.getLogger("client")

        self.ssl_context = None
        self.auth_provider = None
        if context is not None:
            self.ssl_context = context.create_ssl_context()
            self.auth_provider = AuthProvider(context)

        self.session: Optional[ClientSession] = None  # lazy attribute

    async def get_session(self) -> ClientSession:
        # the session binds to the running loop so it is created on first use
        if self.session is None:
            self.session = ClientSession()

        return self.session

    async def get_text(self, url: str, timeout: float) -> str:
        session = await self.get_session()

        kwargs: Dict[str, Any] = dict(
            timeout=ClientTimeout(sock_connect=3, sock_read=timeout),
        )
        if self.ssl_context is not None:
            kwargs["ssl"] = self.ssl_context
        if self.auth_provider is not None:
            kwargs["auth"] = self.auth_provider.get_auth()

        self.logger.debug("GET %s", url)
        async with session.get(url, allow_redirects=True, **kwargs) as response:
            body = await response.text()

            if response.status >= 400:
                raise ApiError.from_response(response.status, response.reason, body)

            return body

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None


class SyncHttpClient(HttpClient):
    """Blocking facade over AsyncClient, which runs on a background loop."""

    def __init__(self, *, async_loop: AsyncLoop, client: AsyncClient) -> None:
        self.async_loop = async_loop
        self.client = client

    @classmethod
    def create(cls, *, context: Optional[Context] = None, logger=None) -> "SyncHttpClient":
        async_loop = launch_in_background_thread()
        client = AsyncClient(context=context, logger=logger)
        return cls(async_loop=async_loop, client=client)

    def get(self, url: str, timeout: float) -> str:
        return self.async_loop.run_coro_until_completion(self.client.get_text(url, timeout))

    def close(self) -> None:
        self.async_loop.run_coro_until_completion(self.client.close())
        self.async_loop.stop()
