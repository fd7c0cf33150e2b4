import pytest

from kubemap.model.api_resource import VersionedApiResource


def make(**kwargs) -> VersionedApiResource:
    attrs = dict(prefix="apis", api_group_name="apps", version="v1", name="deployments")
    attrs.update(kwargs)
    return VersionedApiResource(**attrs)


def test_version_is_required():
    with pytest.raises(ValueError):
        make(version=None)

    with pytest.raises(ValueError):
        VersionedApiResource.lookup_key("api", None, "pods")


def test_identity_ignores_kind_namespaced_and_capabilities():
    rich = make(kind="Deployment", namespaced=True, capabilities=["scale"])
    bare = make()

    assert rich == bare
    assert hash(rich) == hash(bare)
    assert len({rich, bare}) == 1


@pytest.mark.parametrize(
    "field, value",
    [
        ("prefix", "api"),
        ("api_group_name", "extensions"),
        ("version", "v2"),
        ("name", "replicasets"),
    ],
)
def test_identity_fields(field, value):
    assert make() != make(**{field: value})


def test_lookup_key_splits_group_version():
    key = VersionedApiResource.lookup_key("apis", "apps/v1", "deployments")

    assert key.api_group_name == "apps"
    assert key.version == "v1"
    assert key.kind is None
    assert key.namespaced is False
    assert key == make(kind="Deployment")


def test_lookup_key_splits_at_last_slash():
    key = VersionedApiResource.lookup_key("apis", "a/b/v1", "things")

    assert key.api_group_name == "a/b"
    assert key.version == "v1"


def test_lookup_key_bare_version():
    key = VersionedApiResource.lookup_key("api", "v1", "pods")

    assert key.api_group_name is None
    assert key.api_version == "v1"


def test_capabilities():
    res = make(capabilities=["scale", "status"])

    assert res.is_supported("scale")
    assert res.is_supported("status")
    assert not res.is_supported("log")
    assert isinstance(res.capabilities, frozenset)


def test_url_path():
    deployments = make(namespaced=True)
    assert deployments.url_path() == "/apis/apps/v1/deployments"
    assert (
        deployments.url_path(namespace="prod", name="web", capability="scale")
        == "/apis/apps/v1/namespaces/prod/deployments/web/scale"
    )

    pods = VersionedApiResource(prefix="api", version="v1", name="pods", namespaced=True)
    assert pods.url_path(namespace="default", name="web-0", capability="log") == (
        "/api/v1/namespaces/default/pods/web-0/log"
    )


def test_url_path_ignores_namespace_for_cluster_resources():
    nodes = VersionedApiResource(prefix="api", version="v1", name="nodes")

    assert nodes.url_path(namespace="default", name="node-1") == "/api/v1/nodes/node-1"


def test_url_path_capability_needs_name():
    with pytest.raises(ValueError):
        make().url_path(capability="scale")


def test_str():
    assert str(make()) == "apis/apps/v1/deployments"
    assert str(VersionedApiResource(prefix="api", version="v1", name="pods")) == (
        "api/v1/pods"
    )
