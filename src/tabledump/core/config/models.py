"""
Configuration Models

Pydantic models for type-safe configuration of the source connection and
the export output, with defaults and field documentation.
"""

from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.engine import URL


class ConnectionConfig(BaseModel):
    """Configuration for the source database connection."""

    url: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the individual settings below"
    )
    server: Optional[str] = Field(
        default=None,
        description="Database server hostname or IP"
    )
    port: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        description="Database server port"
    )
    user: Optional[str] = Field(
        default=None,
        description="Database username"
    )
    password: Optional[str] = Field(
        default=None,
        description="Database password"
    )
    database: Optional[str] = Field(
        default=None,
        description="Database name"
    )
    driver: str = Field(
        default="mssql+pymssql",
        description="SQLAlchemy dialect+driver used when no url is given"
    )

    @field_validator('server', 'user', 'password', 'database', 'url', mode='before')
    @classmethod
    def strip_blank(cls, v):
        """Treat blank strings as unset."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    def missing_fields(self) -> List[str]:
        """Names of required settings that are not set."""
        if self.url:
            return []
        names = ['server', 'port', 'user', 'password', 'database']
        return [name for name in names if getattr(self, name) in (None, "")]

    def build_url(self) -> str:
        """Build the SQLAlchemy URL for the source database."""
        if self.url:
            return self.url
        url = URL.create(
            self.driver,
            username=self.user,
            password=self.password,
            host=self.server,
            port=self.port,
            database=self.database,
        )
        return url.render_as_string(hide_password=False)


class OutputConfig(BaseModel):
    """Configuration for export destinations."""

    output_dir: Path = Field(
        default=Path("."),
        description="Directory where export files are written"
    )
    default_format: str = Field(
        default="json",
        description="Export format used when none is given"
    )
    batch_size: int = Field(
        default=10000,
        ge=1,
        description="Rows per transaction (embedded stores) or row group (Parquet)"
    )
    progress_interval: int = Field(
        default=1000,
        ge=1,
        description="Rows between progress updates"
    )
    overwrite_files: bool = Field(
        default=True,
        description="Silently replace existing CSV/TSV/JSON files"
    )

    @field_validator('output_dir', mode='before')
    @classmethod
    def expand_output_dir(cls, v):
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @field_validator('default_format')
    @classmethod
    def lower_format(cls, v: str) -> str:
        return v.strip().lower()


class AppConfig(BaseModel):
    """Top-level application configuration."""

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    verbose: bool = Field(default=False, description="Enable debug logging")
    quiet: bool = Field(default=False, description="Hide progress display")
