from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".paperdrill" / "data"
    sqlite_filename: str = "paperdrill.db"
    files_dirname: str = "files"
    upload_extensions: list[str] = [".pdf", ".png", ".jpg", ".jpeg"]
    default_session_size: int = 20
    max_session_size: int = 200
    cors_origins: list[str] = ["*"]
    log_level: str = "warning"
    host: str = "127.0.0.1"
    port: int = 0  # 0 = pick a free port at startup

    model_config = {"env_prefix": "PAPERDRILL_"}


settings = Settings()
