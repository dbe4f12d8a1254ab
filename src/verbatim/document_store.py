"""DuckDB-backed document store: raw text plus its persisted profile.

Tables:
    documents        — one row per document: content, content hash, profile JSON
    _schema_version  — schema version tracking

The profile is computed at ingest and stored as JSON. ``get_profile`` treats
a stored profile as stale when the content hash or the analyzer version no
longer match, and recomputes and persists it in place.

A store wraps one DuckDB connection and is not meant to be shared across
threads.
"""
from __future__ import annotations

import hashlib
import importlib
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from verbatim.config import DEFAULT_CONFIG, EngineConfig
from verbatim.io_utils import dumps_json, loads_json
from verbatim.profile_types import DocumentProfile, profile_from_dict, profile_to_dict
from verbatim.profiler import analyze_document

# Dynamic DuckDB import for pyright compatibility
_duckdb_mod = importlib.import_module("duckdb")

log = logging.getLogger("verbatim.document_store")

SCHEMA_VERSION = "1.0.0"

_SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS _schema_version (
    table_name VARCHAR PRIMARY KEY,
    version VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS documents (
    doc_ref VARCHAR PRIMARY KEY,
    content VARCHAR NOT NULL,
    content_hash VARCHAR NOT NULL,
    profile_json VARCHAR,
    analyzer_version VARCHAR,
    created_at VARCHAR NOT NULL,
    updated_at VARCHAR NOT NULL
)
"""


class StoreSchemaError(RuntimeError):
    """Raised when a store's schema version does not match this code."""


class DocumentSource(Protocol):
    """What the engine needs from a document store."""

    def get_full_content(self, doc_ref: str) -> str | None: ...

    def get_profile(self, doc_ref: str) -> DocumentProfile | None: ...


@dataclass(frozen=True, slots=True)
class DocumentRecord:
    """Summary row for one stored document."""

    doc_ref: str
    char_count: int
    content_hash: str
    analyzer_version: str | None
    created_at: str
    updated_at: str


def _now() -> str:
    return datetime.now(UTC).isoformat()


def content_hash(content: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# DocumentStore
# ---------------------------------------------------------------------------


class DocumentStore:
    """Read/write interface to a documents DuckDB file."""

    def __init__(
        self,
        db_path: Path | str,
        *,
        create_if_missing: bool = False,
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> None:
        self._db_path = Path(db_path)
        if not self._db_path.exists() and not create_if_missing:
            raise FileNotFoundError(f"Document database not found: {self._db_path}")
        self._config = config
        self._conn: Any = _duckdb_mod.connect(str(self._db_path))
        try:
            self._create_schema()
        except Exception:
            self._conn.close()
            raise

    def _create_schema(self) -> None:
        for stmt in _SCHEMA_DDL.split(";"):
            stmt = stmt.strip()
            if stmt:
                self._conn.execute(stmt)
        row = self._conn.execute(
            "SELECT version FROM _schema_version WHERE table_name = 'documents'",
        ).fetchone()
        if row is None:
            self._conn.execute(
                "INSERT INTO _schema_version (table_name, version) VALUES (?, ?)",
                ["documents", SCHEMA_VERSION],
            )
        elif str(row[0]) != SCHEMA_VERSION:
            raise StoreSchemaError(
                f"Schema version mismatch in {self._db_path}: "
                f"expected {SCHEMA_VERSION}, got {row[0]}",
            )

    # ─── Lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        """Close the DuckDB connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> DocumentStore:
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()

    @property
    def schema_version(self) -> str:
        row = self._conn.execute(
            "SELECT version FROM _schema_version WHERE table_name = 'documents'",
        ).fetchone()
        return str(row[0])

    # ─── Writes ───────────────────────────────────────────────────

    def put_document(self, doc_ref: str, content: str) -> DocumentProfile:
        """Insert or replace a document, profiling it at ingest."""
        if not doc_ref.strip():
            raise ValueError("doc_ref cannot be blank")
        profile = analyze_document(content, self._config)
        now = _now()
        self._conn.execute(
            """
            INSERT INTO documents
                (doc_ref, content, content_hash, profile_json, analyzer_version,
                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (doc_ref) DO UPDATE SET
                content = excluded.content,
                content_hash = excluded.content_hash,
                profile_json = excluded.profile_json,
                analyzer_version = excluded.analyzer_version,
                updated_at = excluded.updated_at
            """,
            [
                doc_ref,
                content,
                content_hash(content),
                dumps_json(profile_to_dict(profile)),
                profile.analyzer_version,
                now,
                now,
            ],
        )
        log.debug("Stored %s (%d chars)", doc_ref, len(content))
        return profile

    def remove_document(self, doc_ref: str) -> bool:
        """Delete a document; returns False when it did not exist."""
        existed = self._conn.execute(
            "SELECT 1 FROM documents WHERE doc_ref = ?", [doc_ref],
        ).fetchone() is not None
        if existed:
            self._conn.execute("DELETE FROM documents WHERE doc_ref = ?", [doc_ref])
        return existed

    # ─── Reads ────────────────────────────────────────────────────

    def get_full_content(self, doc_ref: str) -> str | None:
        row = self._conn.execute(
            "SELECT content FROM documents WHERE doc_ref = ?", [doc_ref],
        ).fetchone()
        return None if row is None else str(row[0])

    def get_profile(self, doc_ref: str) -> DocumentProfile | None:
        """Stored profile for ``doc_ref``, recomputed first when stale."""
        row = self._conn.execute(
            "SELECT content, content_hash, profile_json, analyzer_version "
            "FROM documents WHERE doc_ref = ?",
            [doc_ref],
        ).fetchone()
        if row is None:
            return None
        content, stored_hash, profile_json, analyzer_version = row
        current_hash = content_hash(content)
        if (
            profile_json is not None
            and stored_hash == current_hash
            and analyzer_version == self._config.analyzer_version
        ):
            return profile_from_dict(loads_json(profile_json))

        log.info(
            "Regenerating profile for %s (stored analyzer %s, current %s)",
            doc_ref, analyzer_version, self._config.analyzer_version,
        )
        profile = analyze_document(content, self._config)
        self._conn.execute(
            "UPDATE documents SET content_hash = ?, profile_json = ?, "
            "analyzer_version = ?, updated_at = ? WHERE doc_ref = ?",
            [
                current_hash,
                dumps_json(profile_to_dict(profile)),
                profile.analyzer_version,
                _now(),
                doc_ref,
            ],
        )
        return profile

    def list_documents(self) -> list[DocumentRecord]:
        rows = self._conn.execute(
            "SELECT doc_ref, length(content), content_hash, analyzer_version, "
            "created_at, updated_at FROM documents ORDER BY doc_ref",
        ).fetchall()
        return [
            DocumentRecord(
                doc_ref=str(r[0]),
                char_count=int(r[1]),
                content_hash=str(r[2]),
                analyzer_version=None if r[3] is None else str(r[3]),
                created_at=str(r[4]),
                updated_at=str(r[5]),
            )
            for r in rows
        ]


def load_document(
    source: DocumentSource, doc_ref: str,
) -> tuple[str, DocumentProfile] | None:
    """Fetch ``(content, profile)`` for a document, or None when it is unknown."""
    content = source.get_full_content(doc_ref)
    if content is None:
        return None
    profile = source.get_profile(doc_ref)
    if profile is None:
        return None
    return content, profile
