import json
import time
from collections import Counter
from threading import Lock
from typing import Any, Dict, Optional, Union

import pytest

from kubemap.client import ApiError, HttpClient
from kubemap.mapper import TypeMapper

SERVER = "https://cluster.example.com:6443"

Response = Union[str, Dict[str, Any], Exception]


class FakeHttpClient(HttpClient):
    """Serves canned discovery documents keyed by path, 404 for the rest."""

    def __init__(self, responses: Dict[str, Response], delay: float = 0) -> None:
        self.responses = responses
        self.delay = delay

        self.lock = Lock()
        self.requests: Counter = Counter()
        self.timeouts = []
        self.closed = False

    def get(self, url: str, timeout: float) -> str:
        path = url[len(SERVER) + 1 :]

        with self.lock:
            self.requests[path] += 1
            self.timeouts.append(timeout)

        if self.delay:
            time.sleep(self.delay)

        response = self.responses.get(path)
        if response is None:
            raise ApiError(code=404, reason="NotFound", message="404 page not found")
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)

        return response

    def close(self) -> None:
        self.closed = True


def legacy_root(*versions: str) -> Dict[str, Any]:
    return {"kind": "APIVersions", "versions": list(versions)}


def group_list(*groups: Dict[str, Any]) -> Dict[str, Any]:
    return {"kind": "APIGroupList", "groups": list(groups)}


def named_group(name: str, *versions: str, preferred: Optional[str] = None):
    dct: Dict[str, Any] = {
        "name": name,
        "versions": [
            {"groupVersion": f"{name}/{version}", "version": version}
            for version in versions
        ],
    }
    if preferred:
        dct["preferredVersion"] = {
            "groupVersion": f"{name}/{preferred}",
            "version": preferred,
        }
    return dct


def resource(name: str, kind: str, namespaced: bool = True) -> Dict[str, Any]:
    return {"name": name, "kind": kind, "namespaced": namespaced, "verbs": ["get"]}


def resource_list(*resources: Dict[str, Any]) -> Dict[str, Any]:
    return {"kind": "APIResourceList", "resources": list(resources)}


@pytest.fixture
def discovery() -> Dict[str, Response]:
    """A cluster serving kube and openshift legacy apis plus apps/v1."""

    return {
        "api": legacy_root("v1"),
        "api/v1": resource_list(
            resource("pods", "Pod"),
            resource("pods/log", "Pod"),
            resource("pods/exec", "Pod"),
            resource("namespaces", "Namespace", namespaced=False),
            resource("services", "Service"),
            resource("endpoints", "Endpoints"),
        ),
        "oapi": legacy_root("v1"),
        "oapi/v1": resource_list(
            resource("builds", "Build"),
            resource("builds/log", "Build"),
            resource("deploymentconfigs", "DeploymentConfig"),
            resource("deploymentconfigs/scale", "Scale"),
            resource("services", "Service"),
        ),
        "apis": group_list(
            named_group("apps", "v1", preferred="v1"),
            named_group("batch", "v1", "v1beta1", preferred="v1"),
        ),
        "apis/apps/v1": resource_list(
            resource("deployments", "Deployment"),
            resource("deployments/scale", "Scale"),
            resource("deployments/status", "Deployment"),
            resource("pods", "Pod"),
        ),
        "apis/batch/v1": resource_list(resource("jobs", "Job")),
        "apis/batch/v1beta1": resource_list(resource("cronjobs", "CronJob")),
    }


@pytest.fixture
def http_client(discovery) -> FakeHttpClient:
    return FakeHttpClient(discovery)


@pytest.fixture
def mapper(http_client) -> TypeMapper:
    return TypeMapper(base_url=SERVER, client=http_client)
