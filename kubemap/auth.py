import json
import logging
import os
import subprocess
from datetime import datetime, timedelta
from typing import Optional, Union

import humanize
from aiohttp import BasicAuth
from dateutil.parser import parse as parse_date

from kubemap.config import Context, ExecCommand
from kubemap.tools.timekeeping import date_now

# refresh exec credentials this long before they expire to allow for clock skew
EXPIRY_MARGIN = timedelta(minutes=5)


class BearerAuth(BasicAuth):
    """
    aiohttp only accepts BasicAuth instances for `auth=` and sends whatever
    `encode()` returns as the Authorization header, so a token rides along as
    a BasicAuth subclass.
    """

    def __new__(cls, token: str) -> "BearerAuth":
        return super().__new__(cls, token)  # type: ignore

    def __init__(self, token: str) -> None:
        self.token = token

    def encode(self) -> str:
        return f"Bearer {self.token}"


AuthBase = Union[BasicAuth, BearerAuth]


class Credentials:
    def __init__(
        self, *, auth: Optional[AuthBase], expires_at: Optional[datetime] = None
    ) -> None:
        self.auth = auth
        self.expires_at = expires_at

    def is_stale(self) -> bool:
        if self.expires_at is None:
            return False

        return date_now() >= self.expires_at - EXPIRY_MARGIN


class AuthProvider:
    """Produces the auth to send for a context, refreshing it when stale."""

    def __init__(self, context: Context, logger=None) -> None:
        self.context = context
        self.logger = logger or logging.getLogger("auth")

        self.credentials: Optional[Credentials] = None  # lazy attribute

    def run_exec_plugin(self, cmd: ExecCommand) -> Credentials:
        env = dict(os.environ, **cmd.env)
        proc = subprocess.run(
            [cmd.command, *cmd.args],
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )

        if proc.returncode != 0:
            self.logger.error(
                "[%s] Exec credential plugin %r exited with %s: %s",
                self.context.short_name,
                cmd.command,
                proc.returncode,
                proc.stderr.decode().strip(),
            )
            return Credentials(auth=None)

        # an ExecCredential object, we only need its status
        status = json.loads(proc.stdout.decode()).get("status") or {}
        token = status.get("token")
        if not token:
            self.logger.error(
                "[%s] Exec credential plugin returned no token", self.context.short_name
            )
            return Credentials(auth=None)

        expires_at = None
        if status.get("expirationTimestamp"):
            expires_at = parse_date(status["expirationTimestamp"])
            self.logger.info(
                "[%s] Obtained exec credentials, will expire in: %s",
                self.context.short_name,
                humanize.naturaldelta(expires_at - date_now()),
            )

        return Credentials(auth=BearerAuth(token=token), expires_at=expires_at)

    def load_credentials(self) -> Credentials:
        user = self.context.user

        if user.username and user.password:
            return Credentials(auth=BasicAuth(login=user.username, password=user.password))

        if user.token:
            return Credentials(auth=BearerAuth(token=user.token))

        if user.exec:
            return self.run_exec_plugin(user.exec)

        return Credentials(auth=None)

    def get_auth(self) -> Optional[AuthBase]:
        if self.credentials is None or self.credentials.is_stale():
            self.credentials = self.load_credentials()

        return self.credentials.auth
