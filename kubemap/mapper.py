import asyncio
import logging
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urljoin, urlparse

from kubemap.client import ApiError, HttpClient, SyncHttpClient
from kubemap.config import Context
from kubemap.errors import (
    EndpointNotFoundError,
    MalformedEndpointError,
    MappingError,
    NotFoundError,
)
from kubemap.model.api_group import LEGACY_PREFERRED_VERSION
from kubemap.model.api_resource import VersionedApiResource
from kubemap.registry import (
    API_GROUPS_API,
    KUBE_API,
    LEGACY_PREFIXES,
    OS_API,
    Registry,
    RegistryBuilder,
)
from kubemap.tools.logs import CtxLogger
from kubemap.tools.plural import pluralize

DEFAULT_READ_TIMEOUT = 15


class TypeMapper:
    """
    Resolves (apiVersion, kind) pairs to the endpoints a server exposes them
    on. Discovery runs on first use and its result is kept for the lifetime
    of the mapper.
    """

    def __init__(
        self,
        *,
        base_url: str,
        client: HttpClient,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        logger=None,
    ) -> None:
        self.base_url = base_url
        self.client = client
        self.read_timeout = read_timeout
        self.logger = CtxLogger(
            logger=logger or logging.getLogger("mapper"),
            extra={"server": base_url},
            prefix="[%(server)s] ",
        )

        self.preferred_versions: Dict[str, str] = {
            KUBE_API: LEGACY_PREFERRED_VERSION,
            OS_API: LEGACY_PREFERRED_VERSION,
        }

        self.init_lock = Lock()
        self.registry: Optional[Registry] = None  # lazy attribute

    @classmethod
    def for_context(
        cls, context: Context, *, read_timeout: float = DEFAULT_READ_TIMEOUT, logger=None
    ) -> "TypeMapper":
        client = SyncHttpClient.create(context=context)
        return cls(
            base_url=context.cluster.server,
            client=client,
            read_timeout=read_timeout,
            logger=logger,
        )

    def __repr__(self) -> str:
        return "<%s base_url=%r, initialized=%r>" % (
            self.__class__.__name__,
            self.base_url,
            self.registry is not None,
        )

    def close(self) -> None:
        self.client.close()

    # Discovery

    def url_for(self, endpoint: str) -> str:
        parsed = urlparse(self.base_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise MalformedEndpointError(self.base_url, endpoint)

        url = urljoin(self.base_url, endpoint)
        if urlparse(url).netloc != parsed.netloc:
            raise MalformedEndpointError(self.base_url, endpoint)

        return url

    def read_endpoint(self, endpoint: str) -> str:
        url = self.url_for(endpoint)

        try:
            self.logger.debug("Reading %s", url)
            body = self.client.get(url, timeout=self.read_timeout)
            self.logger.debug("Response from %s: %s", url, body)
            return body

        except (asyncio.TimeoutError, TimeoutError) as exc:
            raise MappingError("Timed out reading %s" % url) from exc

        except ApiError as exc:
            if exc.code == 404:
                raise NotFoundError(url) from exc

            self.logger.error(
                "Request to %s failed: %r - can system:anonymous get the api "
                "endpoint?",
                url,
                exc,
            )
            raise

    def init(self) -> Registry:
        registry = self.registry
        if registry is not None:
            return registry

        with self.init_lock:
            if self.registry is None:
                self.logger.info("Discovering api endpoints")
                builder = RegistryBuilder(fetch=self.read_endpoint, logger=self.logger)
                self.registry = builder.build()

            return self.registry

    def list_endpoints(self) -> List[VersionedApiResource]:
        return list(self.init())

    # Resolution

    def tokenize(self, version: Optional[str]) -> List[str]:
        if not version or not version.strip():
            return []

        # v1/ -> [v1]
        tokens = version.strip().split("/")
        while tokens and not tokens[-1]:
            tokens.pop()

        return tokens

    def find_endpoint(
        self, version: Optional[str], kind: str
    ) -> Optional[VersionedApiResource]:
        registry = self.init()
        tokens = self.tokenize(version)
        name = pluralize(kind)

        if len(tokens) <= 1:
            for prefix in LEGACY_PREFIXES:
                legacy_version = tokens[0] if tokens else self.preferred_versions[prefix]
                candidate = VersionedApiResource.lookup_key(prefix, legacy_version, name)

                match = registry.get(candidate)
                if match is not None:
                    return match

            return None

        group_version = "/".join(tokens)
        candidate = VersionedApiResource.lookup_key(API_GROUPS_API, group_version, name)
        return registry.get(candidate)

    def get_endpoint_for(self, version: Optional[str], kind: str) -> VersionedApiResource:
        endpoint = self.find_endpoint(version, kind)
        if endpoint is None:
            raise EndpointNotFoundError(kind=kind, version=version)

        return endpoint

    def is_supported(self, version: Optional[str], kind: str) -> bool:
        return self.find_endpoint(version, kind) is not None

    def is_kind_supported(self, kind: str) -> bool:
        return self.is_supported(None, kind)

    def is_resource_supported(self, obj: Mapping[str, Any]) -> bool:
        kind = obj.get("kind")
        if not kind:
            return False

        return self.is_supported(obj.get("apiVersion"), kind)
