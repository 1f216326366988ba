"""Server configuration management.

Loads configuration from YAML file and environment variables.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .listing.models import RESPONSE_FORMATS


@dataclass(slots=True)
class ServiceConfig:
    """Service identity configuration.

    Attributes:
        name: Service identifier reported by /health and MCP.
        version: Service version string.
    """

    name: str = "atlas"
    version: str = "0.3.0"


@dataclass(slots=True)
class StorageConfig:
    """Record storage configuration.

    Attributes:
        backend: Storage backend (memory, yaml).
        seed_path: YAML seed file for the yaml backend.
    """

    backend: str = "memory"
    seed_path: str = "data/seed.yaml"


@dataclass(slots=True)
class ListingConfig:
    """Listing defaults.

    Attributes:
        default_format: Encoding used when a request names none
            (structured, compact, narrative).
    """

    default_format: str = "structured"

    def __post_init__(self) -> None:
        if self.default_format not in RESPONSE_FORMATS:
            self.default_format = "structured"


@dataclass(slots=True)
class ServerConfig:
    """HTTP server configuration.

    Attributes:
        host: Bind address.
        port: Bind port.
        cors_origins: Allowed CORS origins.
    """

    host: str = "0.0.0.0"
    port: int = 8300
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass(slots=True)
class Config:
    """Complete server configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    listing: ListingConfig = field(default_factory=ListingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file.

        String values in format ${VAR_NAME} are expanded from the environment.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Loaded configuration.
        """
        if not path.exists():
            return cls()

        data = yaml.safe_load(path.read_text())
        if not data:
            return cls()

        return cls._from_dict(data)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Environment variables:
            ATLAS_HOST: Server bind address
            ATLAS_PORT: Server bind port
            ATLAS_CORS_ORIGINS: Comma-separated allowed origins
            ATLAS_SERVICE_NAME: Service name
            ATLAS_SERVICE_VERSION: Service version
            ATLAS_STORAGE: Storage backend (memory, yaml)
            ATLAS_SEED_PATH: YAML seed file
            ATLAS_DEFAULT_FORMAT: Default response encoding

        Returns:
            Configuration from environment.
        """
        origins = os.getenv("ATLAS_CORS_ORIGINS", "*")
        return cls(
            server=ServerConfig(
                host=os.getenv("ATLAS_HOST", "0.0.0.0"),
                port=int(os.getenv("ATLAS_PORT", "8300")),
                cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            ),
            service=ServiceConfig(
                name=os.getenv("ATLAS_SERVICE_NAME", "atlas"),
                version=os.getenv("ATLAS_SERVICE_VERSION", "0.3.0"),
            ),
            storage=StorageConfig(
                backend=os.getenv("ATLAS_STORAGE", "memory"),
                seed_path=os.getenv("ATLAS_SEED_PATH", "data/seed.yaml"),
            ),
            listing=ListingConfig(
                default_format=os.getenv("ATLAS_DEFAULT_FORMAT", "structured"),
            ),
        )

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create config from dictionary."""
        config = cls()

        if "server" in data:
            srv = data["server"]
            config.server = ServerConfig(
                host=_expand(srv.get("host", config.server.host)),
                port=int(_expand(srv.get("port", config.server.port))),
                cors_origins=srv.get("cors_origins", config.server.cors_origins),
            )

        if "service" in data:
            svc = data["service"]
            config.service = ServiceConfig(
                name=_expand(svc.get("name", config.service.name)),
                version=_expand(svc.get("version", config.service.version)),
            )

        if "storage" in data:
            st = data["storage"]
            config.storage = StorageConfig(
                backend=_expand(st.get("backend", config.storage.backend)),
                seed_path=_expand(st.get("seed_path", config.storage.seed_path)),
            )

        if "listing" in data:
            lst = data["listing"]
            config.listing = ListingConfig(
                default_format=_expand(lst.get("default_format", config.listing.default_format)),
            )

        return config


def _expand(value: Any) -> Any:
    """Expand a whole-value ${VAR_NAME} reference; other values pass through."""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return os.environ.get(value[2:-1], "")
    return value
