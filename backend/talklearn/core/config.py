from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    api_key: str = Field("", alias="api_key")
    base_url: str = Field("https://api.openai.com/v1", alias="base_url")
    model: str = Field("gpt-4o-mini", alias="model")
    transcription_api_key: str = Field("", alias="transcription_api_key")
    transcription_base_url: str = Field("https://api.groq.com/openai/v1", alias="transcription_base_url")
    transcription_model: str = Field("whisper-large-v3", alias="transcription_model")
    language: str = Field("de", alias="language")


class SchedulerConfig(BaseModel):
    known_interval_days: int = Field(365, alias="known_interval_days")
    review_interval_minutes: int = Field(10, alias="review_interval_minutes")
    wrong_interval_minutes: int = Field(2, alias="wrong_interval_minutes")
    # Score bands used to suggest an outcome from a 0-10 grade
    known_score: int = Field(8, alias="known_score")
    review_score: int = Field(6, alias="review_score")
    seed: int | None = Field(None, alias="seed")


class DataConfig(BaseModel):
    questions_dir: str = Field("./data", alias="questions_dir")
    delimiter: str = Field(";", alias="delimiter")


class LoggingConfig(BaseModel):
    level: str = Field("INFO", alias="level")
    file: str = Field("./backend/logs/app.log", alias="file")


class DatabaseConfig(BaseModel):
    url: str = Field("sqlite:///./backend/data/app.db", alias="url")


class SecurityConfig(BaseModel):
    api_token: str = Field("", alias="api_token")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        alias="cors_origins",
    )


class AppConfig(BaseModel):
    llm: LLMConfig = LLMConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    data: DataConfig = DataConfig()
    logging: LoggingConfig = LoggingConfig()
    database: DatabaseConfig = DatabaseConfig()
    security: SecurityConfig = SecurityConfig()


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as file:
        data = yaml.safe_load(file) or {}
    return data


@lru_cache
def get_config() -> AppConfig:
    candidates = [
        Path(os.getenv("APP_CONFIG_PATH", "")),
        Path("config/config.yaml"),
        Path("backend/config/config.yaml"),
    ]

    config_path = None
    for path in candidates:
        if path and path.exists() and path.is_file():
            config_path = path
            break

    if not config_path:
        if Path("config/config.example.yaml").exists():
            config_path = Path("config/config.example.yaml")
        elif Path("backend/config/config.example.yaml").exists():
            config_path = Path("backend/config/config.example.yaml")
        else:
            raise FileNotFoundError("Config file not found in config/config.yaml or backend/config/config.yaml")

    raw = _load_yaml(config_path)
    return AppConfig(**raw)
