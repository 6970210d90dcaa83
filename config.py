from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    store_backend: str = Field("sqlite", validation_alias=AliasChoices("STORE_BACKEND", "store_backend"))  # sqlite|memory
    db_url: str = Field("sqlite:///autosave.db", validation_alias=AliasChoices("DB_URL", "db_url"))
    storage_quota_bytes: int = Field(5 * 1024 * 1024, validation_alias=AliasChoices("STORAGE_QUOTA_BYTES", "storage_quota_bytes"))
    autosave_max_age_hours: float = Field(24.0, validation_alias=AliasChoices("AUTOSAVE_MAX_AGE_HOURS", "autosave_max_age_hours"))
    autosave_debounce_seconds: float = Field(2.0, validation_alias=AliasChoices("AUTOSAVE_DEBOUNCE_SECONDS", "autosave_debounce_seconds"))
    cleanup_interval_seconds: float = Field(3600.0, validation_alias=AliasChoices("CLEANUP_INTERVAL_SECONDS", "cleanup_interval_seconds"))
    theme_max_image_size: int = Field(100, validation_alias=AliasChoices("THEME_MAX_IMAGE_SIZE", "theme_max_image_size"))
    theme_transition_ms: int = Field(300, validation_alias=AliasChoices("THEME_TRANSITION_MS", "theme_transition_ms"))
    theme_source_image: str = Field("", validation_alias=AliasChoices("THEME_SOURCE_IMAGE", "theme_source_image"))  # empty = no image theming
    theme_css_path: str = Field("public/theme.css", validation_alias=AliasChoices("THEME_CSS_PATH", "theme_css_path"))
    content_dir: str = Field("src/content/blog", validation_alias=AliasChoices("CONTENT_DIR", "content_dir"))
    log_level: str = Field("INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
