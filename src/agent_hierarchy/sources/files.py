"""
agent-hierarchy — file-backed source readers.

File: src/agent_hierarchy/sources/files.py

Purpose
- Read the structured config document (YAML), the agent document corpus (markdown), and the
  fallback policy document (JSON5) from disk.

Functional requirements
- A missing file or directory raises ``FileNotFoundError`` (expected absence).
- Any other read or parse failure raises ``SourceReadError`` carrying the path.
- Corpus listing is deterministic: identity files by folder name, then top-level documents
  by file name.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Final

import json5
import yaml

from agent_hierarchy.constants import (
    DEFAULT_EXCLUDED_FILENAMES,
    DEFAULT_IDENTITY_FILENAME,
    MISSING_FILE_MARKERS,
)
from agent_hierarchy.extraction.documents import MarkdownDocument

_MARKDOWN_SUFFIX: Final[str] = ".md"


class SourceReadError(RuntimeError):
    """Raised when a source exists but cannot be read or parsed."""

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = str(path)
        super().__init__(f"{path}: {message}")


@dataclass(frozen=True, slots=True)
class DocumentCorpus:
    root: str
    documents: tuple[MarkdownDocument, ...]
    unreadable: tuple[tuple[str, str], ...] = ()


def read_config_document(path: Path | str) -> object:
    """Parse the structured config document with ``yaml.safe_load``."""

    text = _read_text(Path(path))
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SourceReadError(path, f"invalid YAML: {exc}") from exc
    except RecursionError as exc:
        raise SourceReadError(path, "invalid YAML: nesting too deep") from exc


def read_fallback_document(path: Path | str) -> object:
    """Parse the fallback policy document as JSON5 (comments and trailing commas allowed)."""

    text = _read_text(Path(path))
    try:
        return json5.loads(text)
    except ValueError as exc:
        raise SourceReadError(path, f"invalid JSON5: {exc}") from exc
    except RecursionError as exc:
        raise SourceReadError(path, "invalid JSON5: nesting too deep") from exc


def read_agent_documents(
    root: Path | str,
    *,
    identity_filename: str = DEFAULT_IDENTITY_FILENAME,
    excluded_filenames: Iterable[str] = DEFAULT_EXCLUDED_FILENAMES,
) -> DocumentCorpus:
    """Collect ``<root>/<folder>/<identity file>`` plus top-level ``<root>/*.md`` documents.

    Document paths are reported relative to the root's parent (``agents/build/SOUL.md``).
    Unreadable files and agent folders that cannot be listed are reported in ``unreadable``
    and skipped.
    """

    root_path = Path(root)
    if not root_path.is_dir():
        raise FileNotFoundError(f"agent documents directory not found: {root_path}")

    excluded = {name.lower() for name in excluded_filenames}
    identity_name = identity_filename.lower()
    try:
        entries = sorted(root_path.iterdir(), key=lambda entry: entry.name)
    except OSError as exc:
        raise SourceReadError(root_path, f"unable to list directory: {exc}") from exc

    identity_files: list[Path] = []
    top_level: list[Path] = []
    unreadable: list[tuple[str, str]] = []
    for entry in entries:
        if entry.is_dir():
            try:
                children = sorted(entry.iterdir(), key=lambda child: child.name)
            except OSError as exc:
                unreadable.append((entry.relative_to(root_path.parent).as_posix(), str(exc)))
                continue
            identity_files.extend(
                child
                for child in children
                if child.is_file() and child.name.lower() == identity_name
            )
        elif (
            entry.is_file()
            and entry.suffix.lower() == _MARKDOWN_SUFFIX
            and entry.name.lower() not in excluded
        ):
            top_level.append(entry)

    documents: list[MarkdownDocument] = []
    for path in (*identity_files, *top_level):
        relative = path.relative_to(root_path.parent).as_posix()
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            unreadable.append((relative, str(exc)))
            continue
        documents.append(MarkdownDocument(path=relative, content=content))

    return DocumentCorpus(
        root=root_path.as_posix(), documents=tuple(documents), unreadable=tuple(unreadable)
    )


def is_missing_file_error(error: BaseException | str | None) -> bool:
    if error is None:
        return False
    if isinstance(error, FileNotFoundError):
        return True
    lowered = str(error).lower()
    return any(marker in lowered for marker in MISSING_FILE_MARKERS)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceReadError(path, f"unable to read file: {exc}") from exc


__all__ = [
    "DocumentCorpus",
    "SourceReadError",
    "is_missing_file_error",
    "read_agent_documents",
    "read_config_document",
    "read_fallback_document",
]
