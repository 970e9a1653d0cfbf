"""
Configuration for the Cachet integration.

IntegrationConfig is an immutable value assembled by ConfigBuilder:
required fields (API URL plus an access token or username/password)
first, optional overrides afterwards, validated at build().

load_config() reads the same settings from config.yaml, and
load_iteration() reads a batch of check outcomes for the CLI.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import yaml

from cachet_sync.errors import ValidationError
from cachet_sync.models import CheckOutcome, IterationResult, ReconcileOptions

ACCESS_TOKEN_HEADER = "X-Cachet-Token"
ACCESS_TOKEN_ENV = "CACHET_ACCESS_TOKEN"

# Default path: config.yaml next to the project root
_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class IntegrationConfig:
    """
    Immutable integration settings.

    Attributes:
        api_url: Base URL of the Cachet API, without trailing slash.
        access_token: Sent as the X-Cachet-Token header when set.
        username / password: HTTP basic credentials, used when no token.
        headers: Extra headers sent with every request.
        timeout: Per-request timeout in seconds (None = aiohttp default).
        fail_fast: Strict mode; transport failures raise TransportError.
        group_id: Default component group id (0 = no group).
        groups: Watcher group name -> Cachet group id overrides.
        clock: Returns the current time; its date drives incident bucketing.
        service_factory: Builds the CachetService from this config;
            None means the aiohttp CachetClient.
    """

    api_url: str
    access_token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    timeout: Optional[float] = None
    fail_fast: bool = False
    group_id: int = 0
    groups: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    clock: Clock = datetime.now
    service_factory: Optional[Callable[["IntegrationConfig"], Any]] = None

    @property
    def uses_basic_auth(self) -> bool:
        return not self.access_token and bool(self.username)


class ConfigBuilder:
    """
    Staged construction of an IntegrationConfig.

        config = (
            ConfigBuilder("https://status.example.com/api/v1", access_token="...")
            .with_timeout(10)
            .with_groups({"web": 2})
            .fail_fast()
            .build()
        )
    """

    def __init__(
        self,
        api_url: str,
        access_token: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        self._api_url = api_url
        self._access_token = access_token
        self._username = username
        self._password = password
        self._basic = access_token is None and (username is not None or password is not None)
        self._headers: Dict[str, str] = {}
        self._timeout: Optional[float] = None
        self._fail_fast = False
        self._group_id = 0
        self._groups: Dict[str, int] = {}
        self._clock: Clock = datetime.now
        self._service_factory = None

    def with_timeout(self, timeout: float) -> "ConfigBuilder":
        if timeout is None:
            raise ValidationError("Timeout can not be null.")
        if timeout <= 0:
            raise ValidationError("Timeout can not be equal to zero.")
        self._timeout = float(timeout)
        return self

    def with_headers(self, headers: Mapping[str, str]) -> "ConfigBuilder":
        if not headers:
            raise ValidationError("Request headers can not be empty.")
        self._headers = dict(headers)
        return self

    def fail_fast(self, enabled: bool = True) -> "ConfigBuilder":
        self._fail_fast = enabled
        return self

    def with_group_id(self, group_id: int) -> "ConfigBuilder":
        self._group_id = int(group_id)
        return self

    def with_groups(self, groups: Mapping[str, int]) -> "ConfigBuilder":
        if groups is None:
            raise ValidationError("Watcher groups can not be null.")
        self._groups = {str(k): int(v) for k, v in groups.items()}
        return self

    def with_clock(self, clock: Clock) -> "ConfigBuilder":
        if clock is None:
            raise ValidationError("Clock can not be null.")
        self._clock = clock
        return self

    def with_service_factory(self, factory: Callable[[IntegrationConfig], Any]) -> "ConfigBuilder":
        if factory is None:
            raise ValidationError("Cachet service provider can not be null.")
        self._service_factory = factory
        return self

    def build(self) -> IntegrationConfig:
        if not self._api_url:
            raise ValidationError("API URL can not be empty.")
        if self._basic:
            if not self._username or not self._username.strip():
                raise ValidationError("Username can not be empty.")
            if not self._password or not self._password.strip():
                raise ValidationError("Password can not be empty.")
        elif not self._access_token or not self._access_token.strip():
            raise ValidationError("Access token can not be empty.")

        return IntegrationConfig(
            api_url=self._api_url.rstrip("/"),
            access_token=None if self._basic else self._access_token,
            username=self._username if self._basic else None,
            password=self._password if self._basic else None,
            headers=MappingProxyType(dict(self._headers)),
            timeout=self._timeout,
            fail_fast=self._fail_fast,
            group_id=self._group_id,
            groups=MappingProxyType(dict(self._groups)),
            clock=self._clock,
            service_factory=self._service_factory,
        )


@dataclass
class RunSettings:
    """CLI run settings."""

    log_level: str = "INFO"
    notify: bool = False
    save_valid_incidents: bool = False
    update_if_statuses_are_the_same: bool = False
    deadline: Optional[float] = None

    @property
    def options(self) -> ReconcileOptions:
        return ReconcileOptions(
            notify=self.notify,
            save_valid_incidents=self.save_valid_incidents,
            update_if_statuses_are_the_same=self.update_if_statuses_are_the_same,
        )


def load_config(
    path: str | Path | None = None,
) -> Tuple[IntegrationConfig, RunSettings]:
    """
    Load and parse the YAML configuration file.

    Returns:
        A tuple of (IntegrationConfig, RunSettings).
    """
    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise ValidationError(f"Config file not found at {config_path}")

    with open(config_path, "r") as fh:
        raw = yaml.safe_load(fh) or {}

    cachet = raw.get("cachet", {})
    username = cachet.get("username")
    token = cachet.get("access_token")
    if token is None and username is None:
        token = os.environ.get(ACCESS_TOKEN_ENV)

    builder = ConfigBuilder(
        cachet.get("api_url", ""),
        access_token=token,
        username=username,
        password=cachet.get("password"),
    )
    if cachet.get("timeout") is not None:
        builder.with_timeout(cachet["timeout"])
    if cachet.get("headers"):
        builder.with_headers(cachet["headers"])
    if cachet.get("fail_fast"):
        builder.fail_fast()
    builder.with_group_id(cachet.get("group_id", 0))
    builder.with_groups(cachet.get("groups") or {})

    raw_settings = raw.get("settings", {})
    settings = RunSettings(
        log_level=raw_settings.get("log_level", "INFO"),
        notify=raw_settings.get("notify", False),
        save_valid_incidents=raw_settings.get("save_valid_incidents", False),
        update_if_statuses_are_the_same=raw_settings.get("update_if_statuses_are_the_same", False),
        deadline=raw_settings.get("deadline"),
    )

    return builder.build(), settings


def load_iteration(path: str | Path) -> IterationResult:
    """
    Read a batch of check outcomes from a YAML or JSON file.

    The file holds a list of mappings with ``name``, ``valid`` and the
    optional ``group`` and ``description`` keys, or a mapping with that
    list under ``results``.
    """
    results_path = Path(path)
    with open(results_path, "r") as fh:
        if results_path.suffix.lower() == ".json":
            raw = json.load(fh)
        else:
            raw = yaml.safe_load(fh)

    if isinstance(raw, dict):
        raw = raw.get("results", [])

    if raw is None:
        raw = []
    if not isinstance(raw, list):
        raise ValidationError("Check results must be a list.")

    outcomes = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValidationError(f"Check result must be a mapping, got {entry!r}.")
        if not entry.get("name"):
            raise ValidationError("Check result name can not be empty.")
        outcomes.append(
            CheckOutcome(
                name=entry["name"],
                valid=bool(entry.get("valid", False)),
                description=entry.get("description", ""),
                group=entry.get("group"),
            )
        )
    return IterationResult(tuple(outcomes))
