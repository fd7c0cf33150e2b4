import json
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Set

from kubemap.errors import MappingError, NotFoundError
from kubemap.model.api_group import ApiDoc, ApiGroup
from kubemap.model.api_resource import ResourceKey, VersionedApiResource

KUBE_API = "api"
OS_API = "oapi"
API_GROUPS_API = "apis"

# Order matters: a bare version matching a kind in both legacy families
# resolves to the first prefix listed here.
LEGACY_PREFIXES = (KUBE_API, OS_API)

Fetcher = Callable[[str], str]


def parse_document(body: Optional[str], endpoint: str) -> Optional[ApiDoc]:
    if body is None or not body.strip():
        return None

    try:
        return json.loads(body)
    except ValueError as exc:
        raise MappingError("Response from %s is not valid json" % endpoint) from exc


class Registry:
    """The read-only set of resource endpoints discovered on a server."""

    def __init__(self, resources: List[VersionedApiResource]) -> None:
        self.index: Dict[ResourceKey, VersionedApiResource] = {}

        for resource in resources:
            self.index.setdefault(resource.key, resource)

    def __contains__(self, resource: object) -> bool:
        if not isinstance(resource, VersionedApiResource):
            return False

        return resource.key in self.index

    def __iter__(self) -> Iterator[VersionedApiResource]:
        return iter(self.index.values())

    def __len__(self) -> int:
        return len(self.index)

    def get(self, resource: VersionedApiResource) -> Optional[VersionedApiResource]:
        return self.index.get(resource.key)


class RegistryBuilder:
    """
    Walks the discovery endpoints of a server and flattens every group,
    version and resource into a Registry.

    Sub-resources like pods/log are folded into their parent resource as
    capabilities.
    """

    def __init__(self, *, fetch: Fetcher, logger=None) -> None:
        self.fetch = fetch
        self.logger = logger or logging.getLogger("registry")

        # key -> attributes of the plain (non sub-resource) entry for it
        self.pending: Dict[ResourceKey, Dict[str, Any]] = {}
        self.capabilities: Dict[ResourceKey, Set[str]] = {}

    def read_document(self, endpoint: str) -> Optional[ApiDoc]:
        return parse_document(self.fetch(endpoint), endpoint)

    def read_root(self, endpoint: str) -> Optional[ApiDoc]:
        # a server without oapi (or without apis) answers 404 on the root
        try:
            return self.read_document(endpoint)
        except NotFoundError:
            self.logger.info("Server has no %s endpoint - skipping", endpoint)
            return None

    def list_legacy_groups(self) -> List[ApiGroup]:
        groups = []

        for prefix in LEGACY_PREFIXES:
            doc = self.read_root(prefix)
            if doc is None:
                continue

            groups.append(ApiGroup.legacy(prefix, doc))

        return groups

    def list_api_groups(self) -> List[ApiGroup]:
        doc = self.read_root(API_GROUPS_API)
        if doc is None:
            return []

        items = doc.get("groups") or []
        return [ApiGroup.named(API_GROUPS_API, item) for item in items]

    def list_api_resources(self, group: ApiGroup, version: str) -> List[ApiDoc]:
        endpoint = group.path_for(version)
        doc = self.read_document(endpoint)

        # a version can be registered with nothing served under it
        if doc is None:
            self.logger.debug("Empty resource list on %s", endpoint)
            return []

        return doc.get("resources") or []

    def add_resources(self, group: ApiGroup, version: str, items: List[ApiDoc]) -> None:
        for item in items:
            name = item["name"]
            capability = None

            # pods/log -> (pods, log)
            if "/" in name:
                name, capability = name.split("/", 1)

            key = VersionedApiResource.key_for(group, version, name)
            attrs = dict(
                prefix=group.prefix,
                api_group_name=group.name,
                version=version,
                name=name,
                kind=item.get("kind"),
                namespaced=bool(item.get("namespaced", False)),
            )

            if key not in self.pending:
                self.pending[key] = attrs
                self.capabilities[key] = set()

            # deployments/scale has kind Scale, the plain entry has the real kind
            elif capability is None:
                self.pending[key] = attrs

            if capability:
                self.capabilities[key].add(capability)

    def build(self) -> Registry:
        groups = self.list_legacy_groups()
        groups.extend(self.list_api_groups())

        self.logger.info("Discovered %s api groups", len(groups))

        for group in groups:
            for version in group.versions:
                items = self.list_api_resources(group, version)
                self.add_resources(group, version, items)

        resources = [
            VersionedApiResource(capabilities=self.capabilities[key], **attrs)
            for key, attrs in self.pending.items()
        ]

        self.logger.info("Discovered %s resource endpoints", len(resources))
        return Registry(resources)
