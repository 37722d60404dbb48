"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "npdi_tracker_dev"

    # Identity tokens
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_audience: str = ""

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Frontend URL (used for "View Ticket" links in chat cards)
    frontend_url: str = "http://localhost:3000"

    # Ticket defaults
    default_sbu: str = "P90"
    ticket_number_prefix: str = "NPDI"

    # PubChem
    pubchem_enabled: bool = True
    pubchem_base_url: str = "https://pubchem.ncbi.nlm.nih.gov/rest/pug"
    pubchem_view_url: str = "https://pubchem.ncbi.nlm.nih.gov/rest/pug_view"
    pubchem_request_delay_ms: int = 200
    pubchem_timeout_seconds: float = 10.0

    # Palantir Foundry (SAP MARA dataset)
    palantir_enabled: bool = False
    palantir_token: str = ""
    palantir_dataset_rid: str = ""
    palantir_hostname: str = "merckgroup.palantirfoundry.com"
    palantir_timeout_seconds: float = 30.0
    palantir_poll_interval_seconds: float = 1.0
    palantir_max_polls: int = 60

    # Microsoft Teams webhook
    teams_enabled: bool = False
    teams_webhook_url: str = ""

    # System settings document is re-read after this many seconds
    integration_settings_ttl_seconds: int = 300

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
