from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, cast

import boto3
from botocore.config import Config

from .catalog import DEFAULT_SPARSENESS_THRESHOLD
from .errors import ValidationError


@dataclass(frozen=True)
class AwsCallMetric:
    service: str
    operation: str
    seconds: float
    ok: bool


def is_lambda_environment(environ: Mapping[str, str] = os.environ) -> bool:
    return bool(
        environ.get("AWS_LAMBDA_FUNCTION_NAME") or "AWS_Lambda" in (environ.get("AWS_EXECUTION_ENV") or "")
    )


@dataclass(frozen=True)
class ClientSettings:
    sparseness_threshold: float = DEFAULT_SPARSENESS_THRESHOLD
    region: str | None = None
    endpoint_url: str | None = None
    connect_timeout: float | None = None
    read_timeout: float | None = None
    max_attempts: int | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> ClientSettings:
        """Read settings from ``AUTOQUERY_*`` and the standard AWS region variables.

        Inside Lambda, unset timeouts default to short values so a slow call
        fails well before the function's own deadline.
        """
        in_lambda = is_lambda_environment(environ)
        return cls(
            sparseness_threshold=_env_float(
                environ, "AUTOQUERY_SPARSENESS_THRESHOLD", DEFAULT_SPARSENESS_THRESHOLD
            ),
            region=environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or None,
            endpoint_url=environ.get("AUTOQUERY_ENDPOINT_URL") or None,
            connect_timeout=_env_float(environ, "AUTOQUERY_CONNECT_TIMEOUT", 1.0 if in_lambda else None),
            read_timeout=_env_float(environ, "AUTOQUERY_READ_TIMEOUT", 3.0 if in_lambda else None),
            max_attempts=_env_int(environ, "AUTOQUERY_MAX_ATTEMPTS", None),
        )

    def boto3_config(self) -> Config | None:
        if self.connect_timeout is None and self.read_timeout is None and self.max_attempts is None:
            return None
        return create_boto3_config(
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
            max_attempts=self.max_attempts,
        )


def _env_float[D](environ: Mapping[str, str], name: str, default: D) -> float | D:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as err:
        raise ValidationError(f"{name} must be a number (got {raw!r})") from err


def _env_int[D](environ: Mapping[str, str], name: str, default: D) -> int | D:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as err:
        raise ValidationError(f"{name} must be an integer (got {raw!r})") from err
    if value <= 0:
        raise ValidationError(f"{name} must be > 0")
    return value


def create_boto3_config(
    *,
    connect_timeout: float | None = None,
    read_timeout: float | None = None,
    max_attempts: int | None = None,
) -> Config:
    kwargs: dict[str, Any] = {}
    if connect_timeout is not None:
        kwargs["connect_timeout"] = connect_timeout
    if read_timeout is not None:
        kwargs["read_timeout"] = read_timeout
    if max_attempts is not None:
        kwargs["retries"] = {"max_attempts": max_attempts, "mode": "standard"}
    return Config(**kwargs)


class _InstrumentedClient:
    def __init__(self, client: Any, service: str, on_call: Callable[[AwsCallMetric], None]) -> None:
        self._client = client
        self._service = service
        self._on_call = on_call

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._client, name)
        if name.startswith("_") or not callable(attr):
            return attr

        def wrapped(*args: Any, **kwargs: Any) -> Any:
            start = time.monotonic()
            try:
                out = attr(*args, **kwargs)
            except Exception:
                self._on_call(
                    AwsCallMetric(
                        service=self._service,
                        operation=name,
                        seconds=time.monotonic() - start,
                        ok=False,
                    )
                )
                raise

            self._on_call(
                AwsCallMetric(
                    service=self._service,
                    operation=name,
                    seconds=time.monotonic() - start,
                    ok=True,
                )
            )
            return out

        return wrapped


def instrument_boto3_client(
    client: Any,
    *,
    service: str,
    on_call: Callable[[AwsCallMetric], None],
) -> Any:
    return _InstrumentedClient(client, service, on_call)


_clients: dict[tuple[str | None, str | None], Any] = {}
_clients_lock = threading.Lock()


def get_dynamodb_client(
    settings: ClientSettings | None = None,
    *,
    session: Any | None = None,
    metrics: Callable[[AwsCallMetric], None] | None = None,
) -> Any:
    """Return a DynamoDB client for ``settings``, cached per region and endpoint."""
    settings = settings or ClientSettings()
    key = (settings.region, settings.endpoint_url)
    with _clients_lock:
        existing = _clients.get(key)
    if existing is not None:
        return existing

    sess = session or boto3.session.Session(region_name=settings.region)
    client = cast(Any, sess).client(
        "dynamodb",
        region_name=settings.region,
        endpoint_url=settings.endpoint_url,
        config=settings.boto3_config(),
    )
    if metrics is not None:
        client = instrument_boto3_client(client, service="dynamodb", on_call=metrics)

    with _clients_lock:
        return _clients.setdefault(key, client)


def _reset_clients_for_tests() -> None:
    with _clients_lock:
        _clients.clear()
