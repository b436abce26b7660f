from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite:///./users.db"
    app_name: str = "Users API"
    max_image_bytes: int = 10 * 1024 * 1024
    # Served for every stored image; the upload's own MIME type is not kept.
    image_media_type: str = "image/jpeg"
    seed_on_startup: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
