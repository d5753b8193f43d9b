from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkRef:
    target_path: str
    link: str = ""


@dataclass(frozen=True)
class BacklinkRef:
    source_path: str
    link: str = ""
    file_name: str = ""


@dataclass(frozen=True)
class DocumentRecord:
    """Metadata for one vault document.

    `path` is the vault-relative path including its extension ("Notes/A.md").
    Tags are stored without the leading '#'.
    """

    path: str
    name: str = ""
    tags: tuple[str, ...] = ()
    links: tuple[LinkRef, ...] = field(default_factory=tuple)
    backlinks: tuple[BacklinkRef, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "DocumentRecord":
        """Parse one row of an Obsidian metadata-extractor export."""
        links = []
        for item in row.get("links") or []:
            if not isinstance(item, dict):
                continue
            links.append(
                LinkRef(
                    target_path=_str(item.get("relativePath")),
                    link=_str(item.get("link")),
                )
            )

        backlinks = []
        for item in row.get("backlinks") or []:
            if not isinstance(item, dict):
                continue
            backlinks.append(
                BacklinkRef(
                    source_path=_str(item.get("relativePath")),
                    link=_str(item.get("link")),
                    file_name=_str(item.get("fileName")),
                )
            )

        return cls(
            path=_str(row.get("relativePath")),
            name=_str(row.get("fileName")),
            tags=tuple(_clean_tags(row.get("tags") or [])),
            links=tuple(links),
            backlinks=tuple(backlinks),
        )


def parse_records(rows: Iterable[Any]) -> list[DocumentRecord]:
    out: list[DocumentRecord] = []
    for idx, row in enumerate(rows):
        if not isinstance(row, dict):
            logger.warning("Skipping metadata row %d: expected an object, got %s", idx, type(row).__name__)
            continue
        out.append(DocumentRecord.from_dict(row))
    return out


def _str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _clean_tags(tags: Any) -> list[str]:
    if isinstance(tags, str):
        tags = [tags]
    out: list[str] = []
    for t in tags:
        if not isinstance(t, str):
            continue
        # Some exports keep the '#'; the graph adds it back for labels.
        name = t.strip().lstrip("#")
        if name:
            out.append(name)
    return out
