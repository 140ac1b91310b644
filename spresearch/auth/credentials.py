from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import CredentialError


class CredentialCell:
    """
    Guarda o access token atual. set() é uma única atribuição, por isso o
    refresher pode trocar o valor sem locks; quem usa lê sempre get() antes do pedido.
    """
    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> str:
        token = self._token
        if not token:
            raise CredentialError("No access token available (refresh has not succeeded yet)")
        return token

    def set(self, token: str) -> None:
        self._token = token


class LwaTokenClient:
    """Troca o refresh token LWA por um access token."""
    def __init__(
        self,
        *,
        refresh_token: str,
        client_id: str,
        client_secret: str,
        token_url: str = "https://api.amazon.com/auth/o2/token",
        timeout_s: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.refresh_token = refresh_token
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.timeout_s = timeout_s
        self.session = session or requests.Session()

    def fetch_access_token(self) -> str:
        try:
            r = self.session.post(
                self.token_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": self.refresh_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded;charset=UTF-8"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            raise CredentialError(f"Token request failed: {e}") from e

        if r.status_code != 200:
            raise CredentialError(f"Token endpoint returned HTTP {r.status_code}: {r.text[:300]}")
        try:
            token = r.json().get("access_token")
        except ValueError as e:
            raise CredentialError("Token endpoint returned invalid JSON") from e
        if not token:
            raise CredentialError("Token endpoint response has no access_token")
        return str(token)


def refresh_access_token(
    client: Any,
    cell: CredentialCell,
    *,
    max_tries: int = 3,
    delay_s: float = 10.0,
    sleep: Callable[[float], None] = time.sleep,
    logger: Any = None,
) -> str:
    last_err: Optional[Exception] = None
    for attempt in range(1, max_tries + 1):
        try:
            token = client.fetch_access_token()
        except CredentialError as e:
            last_err = e
            if logger is not None:
                logger.log("token.refresh.error", attempt=attempt, error=str(e))
            if attempt < max_tries:
                sleep(delay_s)
            continue
        cell.set(token)
        if logger is not None:
            logger.log("token.refreshed", attempt=attempt)
        return token
    raise CredentialError(f"Failed to refresh access token after {max_tries} attempts") from last_err


class TokenRefresher:
    """
    Refresh inicial síncrono (falha = fatal) e depois, numa thread daemon,
    a cada interval_s até stop().
    """
    def __init__(
        self,
        client: Any,
        cell: CredentialCell,
        *,
        interval_s: float = 58 * 60,
        max_tries: int = 3,
        delay_s: float = 10.0,
        logger: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.cell = cell
        self.interval_s = interval_s
        self.max_tries = max_tries
        self.delay_s = delay_s
        self.logger = logger
        self.sleep = sleep
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def refresh(self) -> str:
        return refresh_access_token(
            self.client,
            self.cell,
            max_tries=self.max_tries,
            delay_s=self.delay_s,
            sleep=self.sleep,
            logger=self.logger,
        )

    def start(self) -> None:
        self.refresh()
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="token-refresher", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_s):
            try:
                self.refresh()
            except CredentialError as e:
                # o token anterior fica na célula; o próximo tick tenta de novo
                if self.logger is not None:
                    self.logger.log("token.refresh.failed", error=str(e))

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def __enter__(self) -> "TokenRefresher":
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()


@dataclass(frozen=True)
class RoleCredentials:
    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: Optional[str] = None


def assume_role(
    *,
    aws_access_key_id: str,
    aws_secret_access_key: str,
    role_arn: str,
    role_session_name: str,
    region: str = "us-east-1",
    sts_client: Any = None,
) -> RoleCredentials:
    client = sts_client or boto3.client(
        "sts",
        region_name=region,
        aws_access_key_id=aws_access_key_id,
        aws_secret_access_key=aws_secret_access_key,
    )
    try:
        resp = client.assume_role(RoleArn=role_arn, RoleSessionName=role_session_name)
    except (BotoCoreError, ClientError) as e:
        raise CredentialError(f"AssumeRole failed for {role_arn}: {e}") from e

    c = resp.get("Credentials") or {}
    if not c.get("AccessKeyId") or not c.get("SecretAccessKey"):
        raise CredentialError(f"AssumeRole returned no credentials for {role_arn}")
    exp = c.get("Expiration")
    return RoleCredentials(
        access_key_id=c["AccessKeyId"],
        secret_access_key=c["SecretAccessKey"],
        session_token=c.get("SessionToken", ""),
        expiration=exp.isoformat() if hasattr(exp, "isoformat") else (str(exp) if exp else None),
    )
