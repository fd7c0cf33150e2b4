import enum
from typing import Any, Dict, List, Optional

ApiDoc = Dict[str, Any]

# the version legacy api families fall back on, they do not advertise one
LEGACY_PREFERRED_VERSION = "v1"


class GroupFlavor(enum.Enum):
    LEGACY = "legacy"
    NAMED = "named"


class ApiGroup:
    """
    An api group as advertised by the discovery endpoints. Legacy groups
    (/api, /oapi) answer with:

    {
      "kind": "APIVersions",
      "versions": ["v1"]
    }

    Named groups are entries in the /apis group list:

    {
      "name": "apps",
      "versions": [
        {
          "groupVersion": "apps/v1",
          "version": "v1"
        }
      ],
      "preferredVersion": {
        "groupVersion": "apps/v1",
        "version": "v1"
      }
    }
    """

    def __init__(self, *, flavor: GroupFlavor, prefix: str, doc: ApiDoc) -> None:
        self.flavor = flavor
        self.prefix = prefix
        self.doc = doc

    @classmethod
    def legacy(cls, prefix: str, doc: Optional[ApiDoc]) -> "ApiGroup":
        return cls(flavor=GroupFlavor.LEGACY, prefix=prefix, doc=doc or {})

    @classmethod
    def named(cls, prefix: str, doc: ApiDoc) -> "ApiGroup":
        return cls(flavor=GroupFlavor.NAMED, prefix=prefix, doc=doc)

    def __repr__(self) -> str:
        return "<%s flavor=%s, prefix=%r, name=%r, versions=%r>" % (
            self.__class__.__name__,
            self.flavor.value,
            self.prefix,
            self.name,
            self.versions,
        )

    @property
    def is_legacy(self) -> bool:
        return self.flavor is GroupFlavor.LEGACY

    @property
    def name(self) -> Optional[str]:
        if self.flavor is GroupFlavor.LEGACY:
            return None

        return self.doc.get("name")

    @property
    def versions(self) -> List[str]:
        entries = self.doc.get("versions") or []

        if self.flavor is GroupFlavor.LEGACY:
            return [str(entry) for entry in entries]

        return [entry["version"] for entry in entries if entry.get("version")]

    @property
    def preferred_version(self) -> Optional[str]:
        if self.flavor is GroupFlavor.LEGACY:
            return LEGACY_PREFERRED_VERSION

        preferred = self.doc.get("preferredVersion") or {}
        return preferred.get("version")

    @property
    def path(self) -> str:
        # api, oapi -> api, oapi
        # apis + apps -> apis/apps
        if self.name is None:
            return self.prefix

        return f"{self.prefix}/{self.name}"

    def path_for(self, version: str) -> str:
        return f"{self.path}/{version}"
