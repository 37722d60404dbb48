"""Integration toggles: environment defaults, stored overrides and TTL cache"""
from npdi_tracker.config.integration_settings import (
    IntegrationSettingsProvider, defaults_from_env, merge_settings_document
)
from npdi_tracker.config.settings import Settings


def env(**overrides):
    values = {"pubchem_enabled": True, "palantir_enabled": False, "teams_enabled": False}
    values.update(overrides)
    return Settings(**values)


def test_defaults_come_from_environment():
    settings = defaults_from_env(env(palantir_enabled=True, palantir_token="t", palantir_dataset_rid="ri.x"))

    assert settings.pubchem.enabled is True
    assert settings.pubchem.auto_population is True
    assert settings.palantir.is_configured is True
    assert settings.teams.enabled is False


def test_stored_document_overrides_defaults():
    doc = {"integrations": {
        "pubchem": {"enabled": True, "autoPopulation": False, "timeout": 5},
        "palantir": {"enabled": True, "token": "tok", "datasetRID": "ri.mara", "hostname": "f.test"},
        "teams": {"enabled": True, "webhookUrl": "https://hook", "notifyOnStatusChange": False},
    }}
    merged = merge_settings_document(defaults_from_env(env()), doc)

    assert merged.pubchem.auto_population is False
    assert merged.pubchem.timeout_seconds == 5.0
    assert merged.palantir.dataset_rid == "ri.mara"
    assert merged.palantir.hostname == "f.test"
    assert merged.palantir.is_configured is True
    assert merged.teams.webhook_url == "https://hook"
    assert merged.teams.notify_on_status_change is False
    assert merged.teams.notify_on_ticket_created is False


def test_blank_secrets_do_not_erase_environment_values():
    base = defaults_from_env(env(palantir_token="env-token"))
    merged = merge_settings_document(base, {"integrations": {"palantir": {"token": ""}}})
    assert merged.palantir.token == "env-token"


def test_palantir_needs_token_and_dataset():
    settings = defaults_from_env(env(palantir_enabled=True, palantir_token="t"))
    assert settings.palantir.is_configured is False


def test_provider_caches_until_ttl_expires():
    now = [0.0]
    loads = []

    def loader():
        loads.append(now[0])
        return {"integrations": {"teams": {"enabled": len(loads) > 1}}}

    provider = IntegrationSettingsProvider(loader=loader, ttl_seconds=300, clock=lambda: now[0], env=env())

    assert provider.get().teams.enabled is False
    now[0] = 299
    assert provider.get().teams.enabled is False
    assert len(loads) == 1

    now[0] = 300
    assert provider.get().teams.enabled is True
    assert len(loads) == 2


def test_invalidate_forces_reload():
    loads = []
    provider = IntegrationSettingsProvider(loader=lambda: loads.append(1), ttl_seconds=300, clock=lambda: 0.0, env=env())

    provider.get()
    provider.invalidate()
    provider.get()
    assert len(loads) == 2
