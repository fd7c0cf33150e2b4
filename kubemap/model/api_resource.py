from typing import Iterable, Optional, Tuple

from kubemap.model.api_group import ApiGroup

ResourceKey = Tuple[str, Optional[str], str, str]


class VersionedApiResource:
    """
    A resource collection at one api version, ie. what you would address with
    /apis/apps/v1/deployments.

    Two resources are equal when prefix, group, name and version match, so a
    bare lookup key finds the discovered entry with the same coordinates.
    """

    def __init__(
        self,
        *,
        prefix: str,
        version: str,
        name: str,
        api_group_name: Optional[str] = None,
        kind: Optional[str] = None,
        namespaced: bool = False,
        capabilities: Iterable[str] = (),
    ) -> None:
        if version is None:
            raise ValueError(
                "version can not be None when creating a VersionedApiResource"
            )

        self.prefix = prefix
        self.api_group_name = api_group_name
        self.version = version
        self.name = name
        self.kind = kind
        self.namespaced = namespaced
        self.capabilities = frozenset(capabilities)

    @classmethod
    def lookup_key(cls, prefix: str, version: str, name: str) -> "VersionedApiResource":
        # apps/v1 -> group: apps, version: v1
        api_group_name = None
        if version is not None and "/" in version:
            api_group_name, version = version.rsplit("/", 1)

        return cls(
            prefix=prefix, api_group_name=api_group_name, version=version, name=name
        )

    @classmethod
    def key_for(cls, group: ApiGroup, version: str, name: str) -> ResourceKey:
        return (group.prefix, group.name, name, version)

    @property
    def key(self) -> ResourceKey:
        return (self.prefix, self.api_group_name, self.name, self.version)

    @property
    def api_version(self) -> str:
        if self.api_group_name:
            return f"{self.api_group_name}/{self.version}"

        return self.version

    def is_supported(self, capability: str) -> bool:
        return capability in self.capabilities

    def url_path(
        self,
        *,
        namespace: Optional[str] = None,
        name: Optional[str] = None,
        capability: Optional[str] = None,
    ) -> str:
        """
        Builds the request path for this resource, eg.

            /api/v1/namespaces/default/pods/web-0/log
        """

        if capability and not name:
            raise ValueError("a capability can only be addressed on a named object")

        segments = [self.prefix]
        if self.api_group_name:
            segments.append(self.api_group_name)
        segments.append(self.version)

        if namespace and self.namespaced:
            segments.extend(["namespaces", namespace])

        segments.append(self.name)

        if name:
            segments.append(name)
        if capability:
            segments.append(capability)

        return "/" + "/".join(segments)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionedApiResource):
            return NotImplemented

        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.url_path().lstrip("/")

    def __repr__(self) -> str:
        return (
            "<%s prefix=%r, api_group_name=%r, version=%r, name=%r, kind=%r, "
            "namespaced=%r, capabilities=%r>"
        ) % (
            self.__class__.__name__,
            self.prefix,
            self.api_group_name,
            self.version,
            self.name,
            self.kind,
            self.namespaced,
            sorted(self.capabilities),
        )
