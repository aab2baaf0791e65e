from __future__ import annotations

from pydantic import BaseModel, Field


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8980, ge=0, le=65535)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class TelemetrySettings(BaseModel):
    enabled: bool = True
    # Repo-relative unless absolute.
    path: str = "data/telemetry/telemetry.duckdb"


class ServiceConfig(BaseModel):
    """
    Process-level settings for the route guide server.

    `featuresPath` is repo-relative unless absolute; unset means the database
    bundled with the `features` package.
    """

    featuresPath: str | None = None
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
