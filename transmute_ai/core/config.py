"""
Configuration Settings.

Application configuration built on Pydantic's BaseSettings. Values are bound
from environment variables and the ``.env`` file; grouped views are exposed as
computed properties the same way the server configuration groups its providers.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class CapabilityDefaultsConfig(BaseModel):
    """Defaults applied to capability servers that do not override them."""

    timeout_seconds: float = Field(
        default=30.0, alias="TRANSMUTE_CAPABILITY_TIMEOUT", description="Per-attempt call timeout in seconds"
    )
    max_retries: int = Field(
        default=3, alias="TRANSMUTE_CAPABILITY_MAX_RETRIES", description="Total attempts per capability call"
    )
    health_check_interval: float = Field(
        default=60.0,
        alias="TRANSMUTE_HEALTH_CHECK_INTERVAL",
        description="Seconds between registry health polls (0 disables polling)",
    )
    config_file: Optional[str] = Field(
        default=None,
        alias="TRANSMUTE_CAPABILITIES_FILE",
        description="JSON file listing the capability servers to register",
    )

    model_config = {"populate_by_name": True}


class ProviderNamesConfig(BaseModel):
    """Names of the capability servers the default pipeline stages talk to."""

    analyzer: str = Field(default="analyzer", alias="TRANSMUTE_ANALYZER_SERVER")
    generator: str = Field(default="generator", alias="TRANSMUTE_GENERATOR_SERVER")
    ui_generator: str = Field(default="ui-generator", alias="TRANSMUTE_UI_GENERATOR_SERVER")
    repository: str = Field(default="repository", alias="TRANSMUTE_REPOSITORY_SERVER")
    notifier: str = Field(default="notifier", alias="TRANSMUTE_NOTIFIER_SERVER")
    text_generation: str = Field(default="text-generation", alias="TRANSMUTE_TEXT_GENERATION_SERVER")

    model_config = {"populate_by_name": True}


class HooksConfig(BaseModel):
    """Hook dispatcher configuration."""

    config_file: Optional[str] = Field(
        default=None, alias="TRANSMUTE_HOOKS_FILE", description="JSON file with hook rules"
    )
    allow_shell: bool = Field(
        default=False, alias="TRANSMUTE_HOOKS_ALLOW_SHELL", description="Permit shell-command hook actions"
    )
    default_channel: str = Field(
        default="#transformations",
        alias="TRANSMUTE_NOTIFY_CHANNEL",
        description="Channel used by the default notification hooks",
    )

    model_config = {"populate_by_name": True}


class ValidationConfig(BaseModel):
    """Quality validation configuration for generated artifacts."""

    required_files: list[str] = Field(
        default=["README.md"],
        alias="TRANSMUTE_REQUIRED_FILES",
        description="Artifact paths that must be present in every generated bundle",
    )
    forbidden_patterns: list[str] = Field(
        default=["eval(", "TODO_REPLACE"],
        alias="TRANSMUTE_FORBIDDEN_PATTERNS",
        description="Substrings that trigger a warning when found in generated sources",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    server_host: str = Field(
        default="0.0.0.0",
        description="Server host address to bind to",
        alias="TRANSMUTE_SERVER_HOST",
    )
    server_port: int = Field(
        default=8000,
        description="Server port number",
        alias="TRANSMUTE_SERVER_PORT",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="TRANSMUTE_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="TRANSMUTE_LOG_FORMAT",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Also write logs to a file under log_file_dir",
        alias="TRANSMUTE_ENABLE_FILE_LOGGING",
    )
    log_file_dir: str = Field(default="logs", alias="TRANSMUTE_LOG_FILE_DIR")

    database_url: Optional[str] = Field(
        default=None,
        description="Async database URL; the in-memory repositories are used when unset",
        alias="TRANSMUTE_DATABASE_URL",
    )

    generation_model: Optional[str] = Field(
        default=None,
        description="pydantic-ai model id (e.g. 'openai:gpt-4o'); text generation goes through a capability when unset",
        alias="TRANSMUTE_GENERATION_MODEL",
    )
    event_queue_size: int = Field(
        default=256,
        description="Bounded queue size of each progress event subscriber",
        alias="TRANSMUTE_EVENT_QUEUE_SIZE",
    )
    event_retained_jobs: int = Field(
        default=1024,
        description="Finished jobs whose last progress event stays available to late subscribers",
        alias="TRANSMUTE_EVENT_RETAINED_JOBS",
    )

    # Grouped fields are flattened into the settings so they bind from the env.
    capability_timeout: float = Field(default=30.0, alias="TRANSMUTE_CAPABILITY_TIMEOUT")
    capability_max_retries: int = Field(default=3, alias="TRANSMUTE_CAPABILITY_MAX_RETRIES")
    health_check_interval: float = Field(default=60.0, alias="TRANSMUTE_HEALTH_CHECK_INTERVAL")
    capabilities_file: Optional[str] = Field(default=None, alias="TRANSMUTE_CAPABILITIES_FILE")

    analyzer_server: str = Field(default="analyzer", alias="TRANSMUTE_ANALYZER_SERVER")
    generator_server: str = Field(default="generator", alias="TRANSMUTE_GENERATOR_SERVER")
    ui_generator_server: str = Field(default="ui-generator", alias="TRANSMUTE_UI_GENERATOR_SERVER")
    repository_server: str = Field(default="repository", alias="TRANSMUTE_REPOSITORY_SERVER")
    notifier_server: str = Field(default="notifier", alias="TRANSMUTE_NOTIFIER_SERVER")
    text_generation_server: str = Field(default="text-generation", alias="TRANSMUTE_TEXT_GENERATION_SERVER")

    hooks_file: Optional[str] = Field(default=None, alias="TRANSMUTE_HOOKS_FILE")
    hooks_allow_shell: bool = Field(default=False, alias="TRANSMUTE_HOOKS_ALLOW_SHELL")
    notify_channel: str = Field(default="#transformations", alias="TRANSMUTE_NOTIFY_CHANNEL")

    required_files: list[str] = Field(default=["README.md"], alias="TRANSMUTE_REQUIRED_FILES")
    forbidden_patterns: list[str] = Field(default=["eval(", "TODO_REPLACE"], alias="TRANSMUTE_FORBIDDEN_PATTERNS")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def capabilities(self) -> CapabilityDefaultsConfig:
        """Get capability client defaults."""
        return CapabilityDefaultsConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def providers(self) -> ProviderNamesConfig:
        """Get the capability server names used by the pipeline stages."""
        return ProviderNamesConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def hooks(self) -> HooksConfig:
        """Get hook dispatcher configuration."""
        return HooksConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def validation(self) -> ValidationConfig:
        """Get artifact validation configuration."""
        return ValidationConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
