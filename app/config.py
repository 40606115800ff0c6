from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for dropsearch.

    All settings can be configured via environment variables or .env file.
    """

    # Read from .env and ignore unknown vars
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Dropbox OAuth settings (validated lazily by the token manager)
    dropbox_app_key: str | None = Field(
        default=None,
        alias="DROPBOX_APP_KEY",
    )
    dropbox_app_secret: str | None = Field(
        default=None,
        alias="DROPBOX_APP_SECRET",
    )
    dropbox_refresh_token: str | None = Field(
        default=None,
        alias="DROPBOX_REFRESH_TOKEN",
    )

    # Sync settings
    dropbox_root_path: str = Field(
        default="",
        alias="DROPBOX_ROOT_PATH",
        description="Dropbox folder to mirror ('' is the account root)",
    )
    document_extension: str = Field(
        default=".txt",
        alias="DOCUMENT_EXTENSION",
        description="Case-sensitive filename suffix of documents to index",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        alias="HTTP_TIMEOUT_SECONDS",
    )
    sync_on_startup: bool = Field(
        default=True,
        alias="SYNC_ON_STARTUP",
        description="Run a full sync while the server starts",
    )
    state_db_path: str = Field(
        default="data/state.db",
        alias="STATE_DB_PATH",
    )

    # Elasticsearch settings
    elasticsearch_node: str = Field(
        default="http://localhost:9200",
        alias="ELASTICSEARCH_NODE",
    )
    elasticsearch_api_key: str | None = Field(
        default=None,
        alias="ELASTICSEARCH_API_KEY",
    )
    elasticsearch_index: str = Field(
        default="dropbox_files",
        alias="ELASTICSEARCH_INDEX",
    )
    search_result_size: int = Field(
        default=10,
        alias="SEARCH_RESULT_SIZE",
    )

    # API Security
    api_key: str | None = Field(
        default=None,
        alias="API_KEY",
        description="API key for authenticating sync endpoints",
    )
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
        description="JSON list of allowed CORS origins",
    )
    rate_limit_search: str = Field(
        default="60/minute",
        alias="RATE_LIMIT_SEARCH",
    )
    rate_limit_sync: str = Field(
        default="5/minute",
        alias="RATE_LIMIT_SYNC",
        description="Rate limit for sync endpoints (e.g., 5/minute)",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


settings = Settings()
