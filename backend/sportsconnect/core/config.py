from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "SportsConnect Messaging"
    debug: bool = False

    # Paths
    data_dir: Path = Path(__file__).resolve().parent.parent.parent / "data"
    db_path: Path = Path(__file__).resolve().parent.parent.parent / "sportsconnect.db"

    # Auth
    jwt_secret: str = "change-me-sportsconnect-development-secret"
    jwt_algorithm: str = "HS256"

    # Server
    cors_origins: list[str] = ["*"]

    # Client
    api_url: str = "http://localhost:5001"
    request_timeout: float = 10.0
    snapshot_path: Path = Path(__file__).resolve().parent.parent.parent / "data" / "client_storage.json"
    snapshot_key: str = "conversations"

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "SPORTSCONNECT_",
    }


settings = Settings()
