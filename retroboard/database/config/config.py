"""
Configuration — Pydantic v2 Settings (env / .env)
=================================================

Purpose
-------
Centralized, strongly-typed engine configuration using:
- Pydantic v2 `BaseSettings` for environment-driven values
- `pydantic-settings` v2 for `.env` loading and model config

Load Order & Behavior
---------------------
- Values are read from the environment; if not present, `.env` is used.
- Every field has a default that points at a local SQLite file, so the engine
  can be imported (and tested) without any environment set up.
- `extra="ignore"`: unknown env vars are ignored (not an error).

Usage
-----
from retroboard.database.config.config import settings

db_driver = settings.DB_DRIVER_NAME
"""


from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Engine configuration settings loaded from environment variables
    or a `.env` file. Provides strongly typed access to environment values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DB_DRIVER_NAME: str = Field("sqlite+pysqlite", description="SQLAlchemy driver (e.g., `postgresql+psycopg`, `sqlite+pysqlite`).")
    DB_USERNAME: str | None = Field(None, description="Database username credential.")
    DB_PASSWORD: str | None = Field(None, description="Database password credential.")
    DB_HOST: str | None = Field(None, description="Hostname or IP address of the database server.")
    DB_PORT: int | None = Field(None, description="Port of the database server.")
    DB_DATABASE_NAME: str = Field("retroboard.db", description="Database name (or file path for SQLite).")
    DB_ECHO: bool = Field(False, description="Log every SQL statement emitted by the engine.")
    DEFAULT_REACTION_TYPE: str = Field("thumbs_up", description="Reaction type used when a caller does not pass one.")

# Singleton instance of Settings, ready to be imported across the engine
settings = Settings()
"""Defines a Settings object that contains the contents of the environment / .env file"""
