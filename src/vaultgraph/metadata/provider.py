from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol

import httpx

from ..config import Settings, VaultConfig
from .records import DocumentRecord, parse_records


logger = logging.getLogger(__name__)


class MetadataUnavailable(RuntimeError):
    pass


class MetadataProvider(Protocol):
    def get_metadata(self) -> list[DocumentRecord]: ...


class StaticMetadataProvider:
    """Serves records held in memory (tests, embedding callers)."""

    def __init__(self, records: Iterable[DocumentRecord | dict[str, Any]] = ()):
        self.records = _coerce(records)

    def get_metadata(self) -> list[DocumentRecord]:
        return list(self.records)


class JsonFileMetadataProvider:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def get_metadata(self) -> list[DocumentRecord]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MetadataUnavailable(f"Cannot read metadata file {self.path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MetadataUnavailable(f"Invalid JSON in {self.path}: {e}") from e

        return _records_from_payload(data, source=str(self.path))


class HttpMetadataProvider:
    def __init__(self, *, url: str, timeout_s: float = 10.0, transport: httpx.BaseTransport | None = None):
        self.url = url
        self.timeout_s = float(timeout_s)
        self.transport = transport

    def get_metadata(self) -> list[DocumentRecord]:
        try:
            with httpx.Client(timeout=self.timeout_s, transport=self.transport) as client:
                r = client.get(self.url)
        except httpx.HTTPError as e:
            raise MetadataUnavailable(f"Failed to fetch metadata from {self.url}: {e}") from e

        if r.status_code != 200:
            raise MetadataUnavailable(f"Metadata fetch from {self.url} returned {r.status_code}")

        try:
            data = r.json()
        except ValueError as e:
            raise MetadataUnavailable(f"Invalid JSON from {self.url}: {e}") from e

        return _records_from_payload(data, source=self.url)


def provider_for_vault(vault: VaultConfig, settings: Settings | None = None) -> MetadataProvider:
    settings = settings or Settings()
    if vault.is_remote:
        return HttpMetadataProvider(url=vault.metadata_location, timeout_s=settings.http_timeout_s)
    return JsonFileMetadataProvider(vault.metadata_location)


def _records_from_payload(data: Any, *, source: str) -> list[DocumentRecord]:
    if not isinstance(data, list):
        raise MetadataUnavailable(f"Expected a JSON array of documents in {source}, got {type(data).__name__}")
    records = parse_records(data)
    logger.debug("Loaded %d metadata records from %s", len(records), source)
    return records


def _coerce(records: Iterable[DocumentRecord | dict[str, Any]]) -> list[DocumentRecord]:
    out: list[DocumentRecord] = []
    for r in records:
        if isinstance(r, DocumentRecord):
            out.append(r)
        else:
            out.extend(parse_records([r]))
    return out
