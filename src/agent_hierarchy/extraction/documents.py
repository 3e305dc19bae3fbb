"""
agent-hierarchy — document-heuristic relation extractor

File: src/agent_hierarchy/extraction/documents.py

Purpose
- Recover reports/delegates/receives relations from free-form agent markdown documents when
  the structured config document is absent or declares no agents.

What is included in this file
- Markup stripping (emphasis, inline code, links) and fenced-block skipping.
- Relation phrase matching as a pure function from text to candidate relations.
- Named-entity candidate filtering against the agent-name prefix convention.
- Document identity resolution and per-identity merging.

Functional requirements
- Matching is case-insensitive and line based.
- Only structural relations are produced; capability flags are never set here.
- First non-empty reports-to wins per identity; delegate/receive targets are unioned.

Non-functional requirements
- Deterministic for a given document order; never raises on malformed text.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Final

from agent_hierarchy.constants import (
    DEFAULT_AGENT_PREFIX,
    DEFAULT_IDENTITY_FILENAME,
    DEFAULT_ROLE_TOKENS,
    DEFAULT_STOP_WORDS,
)
from agent_hierarchy.domain.identity import normalize_identifier
from agent_hierarchy.domain.models import EdgeType, SourceId
from agent_hierarchy.extraction.payload import compact_string, string_list
from agent_hierarchy.extraction.records import AgentRelationRecord, StructuralExtraction

_LINK_RE: Final[re.Pattern[str]] = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_INLINE_CODE_RE: Final[re.Pattern[str]] = re.compile(r"`+([^`]*)`+")
_BOLD_RE: Final[re.Pattern[str]] = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1")
_ITALIC_STAR_RE: Final[re.Pattern[str]] = re.compile(r"(?<![\w*])\*(?=\S)(.+?)(?<=\S)\*(?![\w*])")
_ITALIC_UNDERSCORE_RE: Final[re.Pattern[str]] = re.compile(r"(?<!\w)_(?=\S)(.+?)(?<=\S)_(?!\w)")
_FENCE_RE: Final[re.Pattern[str]] = re.compile(r"^\s{0,3}(`{3,}|~{3,})")

_PHRASE_RE: Final[re.Pattern[str]] = re.compile(
    r"(?P<reports>\breports?\s+to\s*:)"
    r"|(?P<coordination>\bcoordination\s*:)"
    r"|(?P<delegates>\bdelegates?\s+to\s*:)"
    r"|(?P<delegate_tasks>\bdelegate\s+tasks\s+to\b\s*:?)"
    r"|(?P<receives>\breceives?\b[^:]*?\bfrom\s*:)",
    flags=re.IGNORECASE,
)
_NAME_FIELD_RE: Final[re.Pattern[str]] = re.compile(
    r"^\s*(?:[-*+]\s+)?name\s*:\s*(?P<value>\S.*)$", flags=re.IGNORECASE
)
_TOP_HEADING_RE: Final[re.Pattern[str]] = re.compile(r"^\s{0,3}#\s+(?P<text>.+?)\s*#*\s*$")
_TOKEN_SPLIT_RE: Final[re.Pattern[str]] = re.compile(r"[\s,;/|]+")
_TRIM_CHARS: Final[str] = ".,;:!?()[]{}<>\"'*`~-&"


@dataclass(frozen=True, slots=True)
class MarkdownDocument:
    path: str
    content: str

    @property
    def pure_path(self) -> PurePosixPath:
        return PurePosixPath(self.path.replace("\\", "/"))


@dataclass(frozen=True, slots=True)
class DocumentHeuristics:
    """Organization naming conventions the heuristics rely on."""

    agent_prefix: str = DEFAULT_AGENT_PREFIX
    identity_filename: str = DEFAULT_IDENTITY_FILENAME
    role_tokens: frozenset[str] = frozenset(DEFAULT_ROLE_TOKENS)
    stop_words: frozenset[str] = DEFAULT_STOP_WORDS

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object] | None) -> DocumentHeuristics:
        """Build heuristics from the ``[documents]`` config section."""

        if not payload:
            return cls()
        role_tokens = string_list(payload.get("role_tokens"))
        return cls(
            agent_prefix=compact_string(payload.get("agent_prefix")) or DEFAULT_AGENT_PREFIX,
            identity_filename=(
                compact_string(payload.get("identity_filename")) or DEFAULT_IDENTITY_FILENAME
            ),
            role_tokens=(
                frozenset(token.lower() for token in role_tokens)
                if role_tokens
                else frozenset(DEFAULT_ROLE_TOKENS)
            ),
        )

    def prefixed(self, name: str) -> str:
        """Apply the agent-name prefix unless ``name`` already carries it."""

        if name.lower().startswith(self.agent_prefix.lower()):
            return name
        return f"{self.agent_prefix}{name[:1].upper()}{name[1:]}"


@dataclass(frozen=True, slots=True)
class RelationMatch:
    """One relation phrase found on one line, with its qualified targets."""

    edge_type: EdgeType
    targets: tuple[str, ...]
    line_number: int


@dataclass(slots=True)
class _DocumentDraft:
    id: str
    reports_to: str | None = None
    delegates_to: list[str] = field(default_factory=list)
    receives_from: list[str] = field(default_factory=list)


def strip_markup(text: str) -> str:
    """Remove emphasis, inline code, and link syntax while keeping the visible text."""

    stripped = _LINK_RE.sub(r"\1", text)
    stripped = _INLINE_CODE_RE.sub(r"\1", stripped)
    stripped = _BOLD_RE.sub(r"\2", stripped)
    stripped = _ITALIC_STAR_RE.sub(r"\1", stripped)
    return _ITALIC_UNDERSCORE_RE.sub(r"\1", stripped)


def named_entity_candidates(
    text: str, heuristics: DocumentHeuristics | None = None
) -> tuple[str, ...]:
    """Return tokens of ``text`` that look like agent names, in first-seen order."""

    rules = heuristics or DocumentHeuristics()
    prefix = rules.agent_prefix.lower()
    candidates: list[str] = []
    seen: set[str] = set()

    for raw in _TOKEN_SPLIT_RE.split(text):
        token = raw.strip(_TRIM_CHARS)
        if not token:
            continue
        lowered = token.lower()
        if lowered in rules.stop_words or lowered.endswith(".md"):
            continue

        if lowered in rules.role_tokens:
            candidate = rules.prefixed(lowered)
        elif (lowered.startswith(prefix) and lowered != prefix) or _has_internal_capital(token):
            candidate = token
        else:
            continue

        key = candidate.lower()
        if key in seen:
            continue
        seen.add(key)
        candidates.append(candidate)

    return tuple(candidates)


def match_relation_phrases(
    text: str, heuristics: DocumentHeuristics | None = None
) -> tuple[RelationMatch, ...]:
    """Scan ``text`` line by line for relation phrases.

    Each phrase's right-hand side runs to the next phrase on the same line (or line end). A
    ``coordination:`` clause only counts when it follows a reports-to phrase on that line, and
    its targets are reported as receives-from.
    """

    rules = heuristics or DocumentHeuristics()
    matches: list[RelationMatch] = []

    for line_number, line in _visible_lines(text):
        phrases = list(_PHRASE_RE.finditer(line))
        seen_reports = False
        for index, phrase in enumerate(phrases):
            end = phrases[index + 1].start() if index + 1 < len(phrases) else len(line)
            rhs = line[phrase.end() : end]
            kind = phrase.lastgroup

            if kind == "reports":
                seen_reports = True
                edge_type = EdgeType.REPORTS_TO
            elif kind == "coordination":
                if not seen_reports:
                    continue
                edge_type = EdgeType.RECEIVES_FROM
            elif kind in {"delegates", "delegate_tasks"}:
                edge_type = EdgeType.DELEGATES_TO
            else:
                edge_type = EdgeType.RECEIVES_FROM

            targets = named_entity_candidates(rhs, rules)
            if targets:
                matches.append(
                    RelationMatch(edge_type=edge_type, targets=targets, line_number=line_number)
                )

    return tuple(matches)


def resolve_document_identity(
    document: MarkdownDocument, heuristics: DocumentHeuristics | None = None
) -> str | None:
    """Resolve the agent a document describes.

    Order: explicit ``Name:`` field, top-level heading, containing folder (identity file
    only), filename stem. Folder and stem fall-backs get the agent-name prefix.
    """

    rules = heuristics or DocumentHeuristics()
    lines = [text for _, text in _visible_lines(document.content)]

    for line in lines:
        field_match = _NAME_FIELD_RE.match(line)
        if field_match is None:
            continue
        candidates = named_entity_candidates(field_match.group("value"), rules)
        if candidates:
            return candidates[0]
        break

    for line in lines:
        heading = _TOP_HEADING_RE.match(line)
        if heading is None:
            continue
        candidates = named_entity_candidates(heading.group("text"), rules)
        if candidates:
            return candidates[0]
        break

    path = document.pure_path
    if path.name.lower() == rules.identity_filename.lower():
        folder = path.parent.name.strip()
        if folder:
            return rules.prefixed(folder)

    stem = path.stem.strip()
    if stem:
        return rules.prefixed(stem)
    return None


def extract_document_hierarchy(
    documents: Iterable[MarkdownDocument],
    heuristics: DocumentHeuristics | None = None,
) -> StructuralExtraction:
    """Merge per-document relations into one record per resolved agent identity."""

    rules = heuristics or DocumentHeuristics()
    drafts: dict[str, _DocumentDraft] = {}

    for document in documents:
        identity = resolve_document_identity(document, rules)
        key = normalize_identifier(identity)
        if identity is None or not key:
            continue

        draft = drafts.get(key)
        if draft is None:
            draft = _DocumentDraft(id=identity)
            drafts[key] = draft

        for match in match_relation_phrases(document.content, rules):
            if match.edge_type is EdgeType.REPORTS_TO:
                if draft.reports_to is None:
                    draft.reports_to = match.targets[0]
            elif match.edge_type is EdgeType.DELEGATES_TO:
                _union(draft.delegates_to, match.targets)
            else:
                _union(draft.receives_from, match.targets)

    agents = tuple(
        AgentRelationRecord(
            id=draft.id,
            reports_to=draft.reports_to,
            delegates_to=tuple(draft.delegates_to),
            receives_from=tuple(draft.receives_from),
        )
        for draft in drafts.values()
    )
    return StructuralExtraction(source=SourceId.AGENT_DOCUMENTS, agents=agents)


def _visible_lines(text: str) -> list[tuple[int, str]]:
    visible: list[tuple[int, str]] = []
    fence: str | None = None
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        fence_match = _FENCE_RE.match(raw_line)
        if fence_match is not None:
            marker = fence_match.group(1)[0]
            if fence is None:
                fence = marker
            elif fence == marker:
                fence = None
            continue
        if fence is not None:
            continue
        visible.append((line_number, strip_markup(raw_line)))
    return visible


def _has_internal_capital(token: str) -> bool:
    return any(character.isupper() for character in token[1:])


def _union(target: list[str], additions: Sequence[str]) -> None:
    existing = {normalize_identifier(item) for item in target}
    for item in additions:
        key = normalize_identifier(item)
        if key in existing:
            continue
        existing.add(key)
        target.append(item)


__all__ = [
    "DocumentHeuristics",
    "MarkdownDocument",
    "RelationMatch",
    "extract_document_hierarchy",
    "match_relation_phrases",
    "named_entity_candidates",
    "resolve_document_identity",
    "strip_markup",
]
