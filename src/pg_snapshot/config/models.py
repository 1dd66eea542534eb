"""Pydantic models for connection and dump configuration."""

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import URL, make_url


# ============================================================================
# Connection Models
# ============================================================================


class ConnectionConfig(BaseModel):
    """Target session parameters.

    Constructed once from CLI arguments or a profile and never mutated.

    Example:
        >>> cfg = ConnectionConfig(host="localhost", dbname="shop", user="app")
        >>> cfg.port
        5432
        >>> cfg.to_url()
        'postgresql://app@localhost:5432/shop?connect_timeout=10'
    """

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 5432
    dbname: str
    user: str
    password: str | None = Field(default=None, repr=False)
    connect_timeout: int = 10

    def to_url(self) -> str:
        """Render a ``postgresql://`` URL that psycopg accepts as a conninfo."""
        url = URL.create(
            "postgresql",
            username=self.user,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.dbname,
            query={"connect_timeout": str(self.connect_timeout)},
        )
        return url.render_as_string(hide_password=False)

    @classmethod
    def from_url(cls, database_url: str, connect_timeout: int = 10) -> "ConnectionConfig":
        """Build a config from a ``postgres://`` or ``postgresql://`` URL.

        Raises:
            ValueError: If the URL has no host, database, or user.
        """
        url = make_url(database_url)
        missing = [
            part
            for part, value in (
                ("host", url.host),
                ("database", url.database),
                ("user", url.username),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Database URL is missing: {', '.join(missing)}")

        return cls(
            host=url.host,
            port=url.port or 5432,
            dbname=url.database,
            user=url.username,
            password=url.password,
            connect_timeout=connect_timeout,
        )


# ============================================================================
# Configuration File Models
# ============================================================================


class DumpProfile(BaseModel):
    """Database profile from pg-snapshot.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [PASSWORD] placeholder substitution


class DumpConfig(BaseModel):
    """Complete configuration from pg-snapshot.toml."""

    profiles: dict[str, DumpProfile] = Field(default_factory=dict)
    max_attempts: int = Field(default=3, ge=1)
    schema_name: str = "public"
