import base64
import fnmatch
import logging
import os
import ssl
import tempfile
from typing import Any, Dict, List, Optional, Sequence

import yaml


def disp_secret(value: Optional[str]) -> str:
    if value is None:
        return "UNSET"

    return "[%s bytes]" % len(value)


class ExecCommand:
    """A client-go credential plugin, eg. aws eks get-token."""

    def __init__(
        self, *, command: str, args: Sequence[str], env: Dict[str, str]
    ) -> None:
        self.command = command
        self.args = list(args)
        self.env = env

    def __repr__(self) -> str:
        return "<%s command=%r, args=%r>" % (
            self.__class__.__name__,
            self.command,
            self.args,
        )


class User:
    def __init__(
        self,
        *,
        name: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        token: Optional[str] = None,
        client_cert_path: Optional[str] = None,
        client_key_path: Optional[str] = None,
        client_cert_data: Optional[str] = None,
        client_key_data: Optional[str] = None,
        exec: Optional[ExecCommand] = None,
    ) -> None:
        self.name = name
        self.username = username
        self.password = password
        self.token = token
        self.client_cert_path = client_cert_path
        self.client_key_path = client_key_path
        self.client_cert_data = client_cert_data
        self.client_key_data = client_key_data
        self.exec = exec

    def __repr__(self) -> str:
        return (
            "<%s name=%r, username=%r, password=%s, token=%s, "
            "client_cert_path=%r, client_cert_data=%s, exec=%r>"
        ) % (
            self.__class__.__name__,
            self.name,
            self.username,
            disp_secret(self.password),
            disp_secret(self.token),
            self.client_cert_path,
            disp_secret(self.client_cert_data),
            self.exec,
        )


class Cluster:
    def __init__(
        self,
        *,
        name: str,
        server: str,
        ca_cert_path: Optional[str] = None,
        ca_cert_data: Optional[str] = None,
        insecure: bool = False,
    ) -> None:
        self.name = name
        self.server = server
        self.ca_cert_path = ca_cert_path
        self.ca_cert_data = ca_cert_data
        self.insecure = insecure

    def __repr__(self) -> str:
        return "<%s name=%r, server=%r, ca_cert_path=%r, ca_cert_data=%s>" % (
            self.__class__.__name__,
            self.name,
            self.server,
            self.ca_cert_path,
            disp_secret(self.ca_cert_data),
        )


class Context:
    def __init__(
        self,
        *,
        name: str,
        user: User,
        cluster: Cluster,
        namespace: Optional[str] = None,
        filepath: Optional[str] = None,
    ) -> None:
        self.name = name
        self.user = user
        self.cluster = cluster
        self.namespace = namespace
        self.filepath = filepath

        # host.company.com -> host
        self.short_name = name.split(".")[0]

    def __repr__(self) -> str:
        return "<%s name=%r, cluster=%r, user=%r, namespace=%r>" % (
            self.__class__.__name__,
            self.name,
            self.cluster,
            self.user,
            self.namespace,
        )

    def create_ssl_context(self) -> ssl.SSLContext:
        kwargs = {}

        if self.cluster.ca_cert_path:
            kwargs["cafile"] = self.cluster.ca_cert_path
        elif self.cluster.ca_cert_data:
            kwargs["cadata"] = base64.b64decode(self.cluster.ca_cert_data).decode()

        ssl_context = ssl.create_default_context(**kwargs)

        if self.cluster.insecure:
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE

        # The ssl module only loads certs from files, so inline cert data is
        # written to a private tempdir that is removed once loaded.
        if self.user.client_cert_data and self.user.client_key_data:
            with tempfile.TemporaryDirectory(prefix="kubemap.") as tempdir:
                certfile = os.path.join(tempdir, "client.crt")
                keyfile = os.path.join(tempdir, "client.key")

                with open(certfile, "wb") as fl:
                    fl.write(base64.b64decode(self.user.client_cert_data))
                with open(keyfile, "wb") as fl:
                    fl.write(base64.b64decode(self.user.client_key_data))

                ssl_context.load_cert_chain(certfile=certfile, keyfile=keyfile)

        elif self.user.client_cert_path and self.user.client_key_path:
            ssl_context.load_cert_chain(
                certfile=self.user.client_cert_path,
                keyfile=self.user.client_key_path,
            )

        return ssl_context


class KubeConfigCollection:
    def __init__(self) -> None:
        self.contexts: Dict[str, Context] = {}

    def add_contexts(self, contexts: Sequence[Context]) -> None:
        # NOTE: the first file to define a context name wins, like kubectl
        for context in contexts:
            self.contexts.setdefault(context.name, context)

    def get_context_names(self) -> List[str]:
        return sorted(self.contexts.keys())

    def get_context(self, name: str) -> Optional[Context]:
        return self.contexts.get(name)


class KubeConfigSelector:
    def __init__(self, *, collection: KubeConfigCollection) -> None:
        self.collection = collection

    def fnmatch_context(self, pattern: str) -> List[Context]:
        names = fnmatch.filter(self.collection.get_context_names(), pattern)
        contexts = [self.collection.get_context(name) for name in names]
        return [ctx for ctx in contexts if ctx]


class KubeConfigLoader:
    def __init__(
        self, *, config_dir="$HOME/.kube", config_var="KUBECONFIG", logger=None
    ) -> None:
        self.config_dir = config_dir
        self.config_var = config_var
        self.logger = logger or logging.getLogger("config-loader")

    def get_candidate_files(self) -> List[str]:
        # use config_var if set
        env_var = os.getenv(self.config_var)
        if env_var:
            filepaths = [fp.strip() for fp in env_var.split(os.pathsep)]
            return [fp for fp in filepaths if fp]

        # fall back on config_dir
        path = os.path.expandvars(self.config_dir)
        if not os.path.isdir(path):
            return []

        filepaths = [os.path.join(path, fn) for fn in sorted(os.listdir(path))]
        return [fp for fp in filepaths if os.path.isfile(fp)]

    def parse_exec(self, dct: Optional[Dict[str, Any]]) -> Optional[ExecCommand]:
        if not dct or not dct.get("command"):
            return None

        env = {item["name"]: item["value"] for item in dct.get("env") or []}
        return ExecCommand(command=dct["command"], args=dct.get("args") or [], env=env)

    def parse_user(self, dct: Dict[str, Any]) -> Optional[User]:
        name = dct.get("name")
        obj = dct.get("user") or {}

        # 'name' is the only required attribute
        if not name:
            return None

        return User(
            name=name,
            username=obj.get("username"),
            password=obj.get("password"),
            token=obj.get("token"),
            client_cert_path=obj.get("client-certificate"),
            client_key_path=obj.get("client-key"),
            client_cert_data=obj.get("client-certificate-data"),
            client_key_data=obj.get("client-key-data"),
            exec=self.parse_exec(obj.get("exec")),
        )

    def parse_cluster(self, dct: Dict[str, Any]) -> Optional[Cluster]:
        name = dct.get("name")
        obj = dct.get("cluster") or {}
        server = obj.get("server")

        # 'name' and 'server' are required attributes
        if not (name and server):
            return None

        return Cluster(
            name=name,
            server=server,
            ca_cert_path=obj.get("certificate-authority"),
            ca_cert_data=obj.get("certificate-authority-data"),
            insecure=bool(obj.get("insecure-skip-tls-verify", False)),
        )

    def parse_context(
        self,
        clusters: Dict[str, Cluster],
        users: Dict[str, User],
        dct: Dict[str, Any],
        filepath: str,
    ) -> Optional[Context]:
        name = dct.get("name")
        obj = dct.get("context") or {}
        cluster_id = obj.get("cluster")
        user_id = obj.get("user")

        if not all((name, cluster_id, user_id)):
            return None

        cluster = clusters.get(cluster_id)
        if cluster is None:
            self.logger.warning(
                "When parsing context %r could not find matching cluster %r",
                name,
                cluster_id,
            )
            return None

        user = users.get(user_id)
        if user is None:
            self.logger.warning(
                "When parsing context %r could not find matching user %r",
                name,
                user_id,
            )
            return None

        return Context(
            name=name,
            user=user,
            cluster=cluster,
            namespace=obj.get("namespace"),
            filepath=filepath,
        )

    def load_file(self, filepath: str) -> List[Context]:
        with open(filepath, "rb") as fl:
            try:
                dct = yaml.load(fl, Loader=yaml.SafeLoader)
            except yaml.YAMLError:
                self.logger.warning("Failed to parse kube config as yaml: %s", filepath)
                return []

        if not isinstance(dct, dict) or dct.get("kind") != "Config":
            self.logger.warning("Kube config does not have kind: Config: %s", filepath)
            return []

        clusters = [self.parse_cluster(item) for item in dct.get("clusters") or []]
        cluster_index = {cluster.name: cluster for cluster in clusters if cluster}

        users = [self.parse_user(item) for item in dct.get("users") or []]
        user_index = {user.name: user for user in users if user}

        contexts = [
            self.parse_context(cluster_index, user_index, item, filepath)
            for item in dct.get("contexts") or []
        ]
        return [ctx for ctx in contexts if ctx]

    def create_collection(self) -> KubeConfigCollection:
        collection = KubeConfigCollection()

        for filepath in self.get_candidate_files():
            collection.add_contexts(self.load_file(filepath))

        return collection


def get_selector() -> KubeConfigSelector:
    loader = KubeConfigLoader()
    collection = loader.create_collection()
    return KubeConfigSelector(collection=collection)
