from typing import Optional


class MappingError(Exception):
    """Base class for failures raised while mapping kinds to endpoints."""


class MalformedEndpointError(MappingError):
    def __init__(self, base_url: str, endpoint: str) -> None:
        super().__init__(
            "Cannot compose url from base %r and endpoint %r" % (base_url, endpoint)
        )

        self.base_url = base_url
        self.endpoint = endpoint


class NotFoundError(MappingError):
    """The server answered 404 for a discovery endpoint."""

    def __init__(self, url: str) -> None:
        super().__init__("Not found: %s" % url)

        self.url = url


class EndpointNotFoundError(MappingError):
    def __init__(self, kind: str, version: Optional[str]) -> None:
        super().__init__("No endpoint found for %s, version %s" % (kind, version))

        self.kind = kind
        self.version = version
