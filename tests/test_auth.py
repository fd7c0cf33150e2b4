import json
import sys
from datetime import timedelta

from aiohttp import BasicAuth

from kubemap.auth import AuthProvider, BearerAuth, Credentials
from kubemap.config import Cluster, Context, ExecCommand, User
from kubemap.tools.timekeeping import date_now


def make_context(user: User) -> Context:
    cluster = Cluster(name="c", server="https://c.example.com")
    return Context(name="c", user=user, cluster=cluster)


def exec_printing(doc) -> ExecCommand:
    code = "print(%r)" % json.dumps(doc)
    return ExecCommand(command=sys.executable, args=["-c", code], env={})


def test_basic_auth():
    provider = AuthProvider(make_context(User(name="u", username="me", password="pw")))
    auth = provider.get_auth()

    assert isinstance(auth, BasicAuth)
    assert auth.login == "me"


def test_token_auth():
    provider = AuthProvider(make_context(User(name="u", token="abc123")))

    assert provider.get_auth().encode() == "Bearer abc123"


def test_anonymous():
    assert AuthProvider(make_context(User(name="u"))).get_auth() is None


def test_exec_plugin():
    expiry = (date_now() + timedelta(hours=1)).isoformat()
    doc = {"status": {"token": "t0ken", "expirationTimestamp": expiry}}
    provider = AuthProvider(make_context(User(name="u", exec=exec_printing(doc))))

    auth = provider.get_auth()
    assert isinstance(auth, BearerAuth)
    assert auth.encode() == "Bearer t0ken"
    assert not provider.credentials.is_stale()

    # cached until it expires
    assert provider.get_auth() is auth


def test_exec_plugin_failure():
    cmd = ExecCommand(command=sys.executable, args=["-c", "raise SystemExit(3)"], env={})
    provider = AuthProvider(make_context(User(name="u", exec=cmd)))

    assert provider.get_auth() is None


def test_container_expiry_allows_for_skew():
    soon = Credentials(auth=None, expires_at=date_now() + timedelta(minutes=2))
    later = Credentials(auth=None, expires_at=date_now() + timedelta(minutes=30))

    assert soon.is_stale()
    assert not later.is_stale()
    assert not Credentials(auth=None).is_stale()
