"""Integration Settings - runtime toggles for PubChem, Palantir and Teams

The admin-editable ``system_settings`` document overrides the environment
defaults from :mod:`settings`. Reads are cached for a fixed TTL; the clock is
injected so tests can expire the cache without sleeping.
"""
import time
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field

from .settings import Settings, get_settings


class PubChemConfig(BaseModel):
    enabled: bool = True
    auto_population: bool = True
    timeout_seconds: float = 10.0


class PalantirConfig(BaseModel):
    enabled: bool = False
    token: str = ""
    dataset_rid: str = ""
    hostname: str = "merckgroup.palantirfoundry.com"
    timeout_seconds: float = 30.0

    @property
    def is_configured(self) -> bool:
        """Enabled with both a token and a dataset to query"""
        return self.enabled and bool(self.token) and bool(self.dataset_rid)


class TeamsConfig(BaseModel):
    enabled: bool = False
    webhook_url: str = ""
    notify_on_status_change: bool = True
    notify_on_ticket_created: bool = False
    notify_on_comment_added: bool = False


class IntegrationSettings(BaseModel):
    """Snapshot of all integration toggles"""
    pubchem: PubChemConfig = Field(default_factory=PubChemConfig)
    palantir: PalantirConfig = Field(default_factory=PalantirConfig)
    teams: TeamsConfig = Field(default_factory=TeamsConfig)


SettingsLoader = Callable[[], Optional[Dict[str, Any]]]


def defaults_from_env(env: Settings) -> IntegrationSettings:
    """Build integration settings from environment configuration only"""
    return IntegrationSettings(
        pubchem=PubChemConfig(
            enabled=env.pubchem_enabled,
            auto_population=env.pubchem_enabled,
            timeout_seconds=env.pubchem_timeout_seconds,
        ),
        palantir=PalantirConfig(
            enabled=env.palantir_enabled,
            token=env.palantir_token,
            dataset_rid=env.palantir_dataset_rid,
            hostname=env.palantir_hostname,
            timeout_seconds=env.palantir_timeout_seconds,
        ),
        teams=TeamsConfig(
            enabled=env.teams_enabled,
            webhook_url=env.teams_webhook_url,
        ),
    )


def merge_settings_document(base: IntegrationSettings, doc: Optional[Dict[str, Any]]) -> IntegrationSettings:
    """Overlay the camelCase ``integrations`` section of a settings document"""
    if not doc:
        return base
    integrations = doc.get("integrations") or {}

    pubchem = integrations.get("pubchem") or {}
    palantir = integrations.get("palantir") or {}
    teams = integrations.get("teams") or {}

    merged = base.model_copy(deep=True)
    if "enabled" in pubchem:
        merged.pubchem.enabled = bool(pubchem["enabled"])
    if "autoPopulation" in pubchem:
        merged.pubchem.auto_population = bool(pubchem["autoPopulation"])
    if pubchem.get("timeout"):
        merged.pubchem.timeout_seconds = float(pubchem["timeout"])

    if "enabled" in palantir:
        merged.palantir.enabled = bool(palantir["enabled"])
    if palantir.get("token"):
        merged.palantir.token = palantir["token"]
    if palantir.get("datasetRID"):
        merged.palantir.dataset_rid = palantir["datasetRID"]
    if palantir.get("hostname"):
        merged.palantir.hostname = palantir["hostname"]
    if palantir.get("timeout"):
        merged.palantir.timeout_seconds = float(palantir["timeout"])

    if "enabled" in teams:
        merged.teams.enabled = bool(teams["enabled"])
    if teams.get("webhookUrl"):
        merged.teams.webhook_url = teams["webhookUrl"]
    for key, attr in (
        ("notifyOnStatusChange", "notify_on_status_change"),
        ("notifyOnTicketCreated", "notify_on_ticket_created"),
        ("notifyOnCommentAdded", "notify_on_comment_added"),
    ):
        if key in teams:
            setattr(merged.teams, attr, bool(teams[key]))
    return merged


class IntegrationSettingsProvider:
    """
    TTL-cached provider of integration settings.

    Args:
        loader: Returns the raw system settings document (or None)
        ttl_seconds: Cache lifetime
        clock: Monotonic time source in seconds
        env: Environment settings supplying defaults
    """

    def __init__(
        self,
        loader: Optional[SettingsLoader] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        env: Optional[Settings] = None,
    ):
        self._env = env or get_settings()
        self._loader = loader
        self._ttl = ttl_seconds if ttl_seconds is not None else self._env.integration_settings_ttl_seconds
        self._clock = clock
        self._cached: Optional[IntegrationSettings] = None
        self._loaded_at: Optional[float] = None

    def get(self) -> IntegrationSettings:
        now = self._clock()
        if self._cached is not None and self._loaded_at is not None and now - self._loaded_at < self._ttl:
            return self._cached

        doc = self._loader() if self._loader else None
        self._cached = merge_settings_document(defaults_from_env(self._env), doc)
        self._loaded_at = now
        return self._cached

    def invalidate(self) -> None:
        """Drop the cached snapshot so the next read hits the loader"""
        self._cached = None
        self._loaded_at = None


_provider: Optional[IntegrationSettingsProvider] = None


def get_integration_settings_provider() -> IntegrationSettingsProvider:
    """Process-wide provider backed by the system_settings collection"""
    global _provider
    if _provider is None:
        from ..repositories.settings_repo import SettingsRepository

        repo = SettingsRepository()
        _provider = IntegrationSettingsProvider(loader=repo.get_system_settings)
    return _provider
