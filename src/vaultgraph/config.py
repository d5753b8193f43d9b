from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


load_dotenv()


def _optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass(frozen=True)
class Settings:
    # One sub-directory per vault, each holding a metadata-extractor export.
    vaults_root: str = os.getenv("VAULTGRAPH_VAULTS_ROOT", "./vaults")
    default_vault: str = os.getenv("VAULTGRAPH_DEFAULT_VAULT", "Demo")
    metadata_file: str = os.getenv("VAULTGRAPH_METADATA_FILE", "metadata.json")

    # When set, metadata is fetched over HTTP: <base>/<vault>/<metadata_file>
    metadata_base_url: str = os.getenv("VAULTGRAPH_METADATA_BASE_URL", "")
    http_timeout_s: float = float(os.getenv("VAULTGRAPH_HTTP_TIMEOUT", "10"))

    # Graph cache
    cache_ttl_s: float = float(os.getenv("VAULTGRAPH_CACHE_TTL", "300"))
    build_timeout_s: float | None = _optional_float(os.getenv("VAULTGRAPH_BUILD_TIMEOUT"))

    log_level: str = os.getenv("VAULTGRAPH_LOG_LEVEL", "WARNING")


@dataclass(frozen=True)
class VaultConfig:
    id: str
    path: Path
    # Filesystem path or URL of the metadata export.
    metadata_location: str

    @property
    def is_remote(self) -> bool:
        return self.metadata_location.startswith(("http://", "https://"))


def vault_config(vault_id: str | None = None, settings: Settings | None = None) -> VaultConfig:
    settings = settings or Settings()
    vid = (vault_id or settings.default_vault).strip() or settings.default_vault
    if "/" in vid or "\\" in vid or vid in (".", ".."):
        raise ValueError(f"Invalid vault id {vid!r}: must be a single directory name")
    path = Path(settings.vaults_root) / vid

    if settings.metadata_base_url.strip():
        base = settings.metadata_base_url.rstrip("/")
        location = f"{base}/{vid}/{settings.metadata_file}"
    else:
        location = str(path / settings.metadata_file)

    return VaultConfig(id=vid, path=path, metadata_location=location)
