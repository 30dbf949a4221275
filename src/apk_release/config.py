from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="APK_RELEASE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    app_name: str = "MyAppName"

    root_folder: str = "Apk"
    root_parent_id: str | None = None

    slack_webhook_url: str | None = None
    message_signature: str | None = None

    credentials_path: str = "credentials.json"
    tokens_path: str = "tokens.json"

    artifact_path: str = "build/app/outputs/flutter-apk/app-release.apk"
    build_command: list[str] = ["flutter", "build", "apk"]

    http_timeout: float = 60.0
    max_retries: int = 0

    mock_mode: bool = False

    log_level: str = "INFO"


settings = Settings()
