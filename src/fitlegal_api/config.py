from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Mercado Pago
    mercado_pago_access_token: str | None = None
    mercado_pago_api_base: str = "https://api.mercadopago.com"

    # Frontend used to build payment return URLs
    frontend_url: str | None = None

    # Google Drive
    google_drive_api_base: str = "https://www.googleapis.com/drive/v3"

    # Database
    database_url: str = "sqlite+aiosqlite:///./fitlegal.db"

    # Server
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"

    # Feature flags
    classify_properties_as_modified: bool = False
