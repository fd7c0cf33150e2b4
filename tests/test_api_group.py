from conftest import named_group

from kubemap.model.api_group import LEGACY_PREFERRED_VERSION, ApiGroup, GroupFlavor


def test_legacy_group():
    group = ApiGroup.legacy("api", {"kind": "APIVersions", "versions": ["v1", "v2"]})

    assert group.flavor is GroupFlavor.LEGACY
    assert group.is_legacy
    assert group.name is None
    assert group.versions == ["v1", "v2"]
    assert group.preferred_version == LEGACY_PREFERRED_VERSION
    assert group.path_for("v1") == "api/v1"


def test_legacy_group_ignores_name_in_document():
    group = ApiGroup.legacy("oapi", {"name": "openshift", "versions": ["v1"]})

    assert group.name is None
    assert group.path_for("v1") == "oapi/v1"


def test_legacy_group_without_document():
    group = ApiGroup.legacy("oapi", None)

    assert group.versions == []
    assert group.preferred_version == "v1"


def test_named_group():
    group = ApiGroup.named("apis", named_group("batch", "v1", "v1beta1", preferred="v1"))

    assert group.flavor is GroupFlavor.NAMED
    assert not group.is_legacy
    assert group.name == "batch"
    assert group.versions == ["v1", "v1beta1"]
    assert group.preferred_version == "v1"
    assert group.path_for("v1beta1") == "apis/batch/v1beta1"


def test_named_group_without_preferred_version():
    group = ApiGroup.named("apis", named_group("apps", "v1"))

    assert group.preferred_version is None
    assert group.versions == ["v1"]


def test_path_for_does_not_validate_version():
    group = ApiGroup.named("apis", named_group("apps", "v1"))

    assert group.path_for("v9") == "apis/apps/v9"
