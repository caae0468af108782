from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    max_file_size_bytes: int = 10 * 1024 * 1024

    pdf_engine: str = "pymupdf"

    min_field_width: float = 50.0
    min_field_height: float = 20.0
    default_field_width: float = 200.0
    default_field_height: float = 40.0

    min_zoom: float = 0.5
    max_zoom: float = 2.0

    docx_page_width: float = 612.0
    docx_page_height: float = 792.0
    docx_margin: float = 50.0
    docx_font_size: float = 11.0

    template_store: str = "memory"
    template_store_path: str = "templates"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docmerge"
    db_username: str = "docmerge"
    db_password: str = "secret"
    db_connect_timeout_seconds: float = 5.0
