"""SQLModel definitions for the repository index.

Single source of truth for all table schemas. The index holds structural
facts produced by an external indexing step: modules, their source sets,
files, declared symbols, shared-declaration pairings and symbol references.
Nothing here parses source; rows arrive already extracted.
"""

import json
import time
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

SHARED_PLATFORM = "common"
"""Platform tag of a source set that is the shared superset of all platforms."""


# ============================================================================
# ENUMS
# ============================================================================


class SymbolKind(str, Enum):
    """Kinds of declared entities."""

    CLASS = "class"
    INTERFACE = "interface"
    OBJECT = "object"
    ENUM = "enum"
    FUNCTION = "function"
    PROPERTY = "property"
    TYPEALIAS = "typealias"
    CONSTRUCTOR = "constructor"


class Visibility(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"
    PROTECTED = "protected"
    PRIVATE = "private"


class ReferenceKind(str, Enum):
    """How a file uses a symbol."""

    CALL = "call"
    READ = "read"
    WRITE = "write"
    TYPE = "type"
    IMPORT = "import"


# ============================================================================
# TABLES
# ============================================================================


class Module(SQLModel, table=True):
    """A named compilation unit of a repository."""

    __tablename__ = "modules"
    __table_args__ = (UniqueConstraint("repo_path", "path"),)

    id: int | None = Field(default=None, primary_key=True)
    repo_path: str = Field(index=True)
    path: str = Field(index=True)  # Stable identifier, e.g. ":shared"
    display_name: str
    absolute_path: str
    is_shared: bool = Field(default=False)  # Participates in cross-platform sharing
    build_file_path: str | None = None
    module_type: str | None = None
    indexed_at: float = Field(default_factory=time.time)

    # Relationships
    source_sets: list["SourceSet"] = Relationship(
        back_populates="module",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class SourceSet(SQLModel, table=True):
    """A code partition of a module targeting one platform or the shared superset."""

    __tablename__ = "source_sets"

    id: int | None = Field(default=None, primary_key=True)
    module_id: int = Field(
        sa_column=Column(Integer, ForeignKey("modules.id", ondelete="CASCADE"), index=True)
    )
    name: str = Field(index=True)  # e.g. commonMain, wasmJsMain
    platform: str = Field(index=True)  # SHARED_PLATFORM for the shared partition
    directory_path: str
    file_count: int = Field(default=0)
    line_count: int = Field(default=0)

    # Relationships
    module: Module | None = Relationship(back_populates="source_sets")


class IndexedFile(SQLModel, table=True):
    """One indexed source file."""

    __tablename__ = "files"

    id: int | None = Field(default=None, primary_key=True)
    repo_path: str = Field(index=True)
    path: str = Field(unique=True, index=True)  # Absolute path
    relative_path: str
    module_path: str | None = Field(default=None, index=True)
    source_set: str | None = Field(default=None, index=True)
    package_name: str | None = None
    content_hash: str
    line_count: int = Field(default=0)
    indexed_at: float = Field(default_factory=time.time)
    has_shared_decls: bool = Field(default=False)
    has_platform_decls: bool = Field(default=False)

    # Relationships
    symbols: list["IndexedSymbol"] = Relationship(back_populates="file")


class IndexedSymbol(SQLModel, table=True):
    """One declared entity inside a file."""

    __tablename__ = "symbols"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    name: str = Field(index=True)
    qualified_name: str = Field(unique=True, index=True)
    kind: str = Field(index=True)  # SymbolKind value
    visibility: str = Field(default=Visibility.PUBLIC.value)
    is_shared_decl: bool = Field(default=False, index=True)
    is_platform_impl: bool = Field(default=False, index=True)
    is_suspend: bool = Field(default=False)
    is_inline: bool = Field(default=False)
    is_data: bool = Field(default=False)
    is_sealed: bool = Field(default=False)
    is_companion: bool = Field(default=False)
    is_extension: bool = Field(default=False)
    start_line: int
    start_column: int = Field(default=1)
    end_line: int
    end_column: int = Field(default=1)
    signature: str | None = None
    parent_id: int | None = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("symbols.id", ondelete="CASCADE"), nullable=True, index=True
        ),
    )
    annotations: str | None = None  # JSON array of annotation names

    # Relationships
    file: IndexedFile | None = Relationship(back_populates="symbols")

    def get_annotations(self) -> list[str]:
        """Parse annotations JSON to list."""
        if self.annotations is None:
            return []
        result: list[str] = json.loads(self.annotations)
        return result


class DeclarationPairing(SQLModel, table=True):
    """Link from a shared declaration to its implementation on one platform.

    A missing pairing never carries an implementation symbol, and a pairing
    with a mismatch reason is never missing. IndexWriter enforces both.
    """

    __tablename__ = "declaration_pairings"
    __table_args__ = (UniqueConstraint("shared_symbol_id", "platform"),)

    id: int | None = Field(default=None, primary_key=True)
    shared_symbol_id: int = Field(
        sa_column=Column(Integer, ForeignKey("symbols.id", ondelete="CASCADE"), index=True)
    )
    impl_symbol_id: int | None = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("symbols.id", ondelete="SET NULL"), nullable=True, index=True
        ),
    )
    platform: str = Field(index=True)
    is_missing: bool = Field(default=False, index=True)
    mismatch_reason: str | None = None


class SymbolReference(SQLModel, table=True):
    """A use of a symbol at a position in a file."""

    __tablename__ = "symbol_references"

    id: int | None = Field(default=None, primary_key=True)
    symbol_id: int = Field(
        sa_column=Column(Integer, ForeignKey("symbols.id", ondelete="CASCADE"), index=True)
    )
    file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    line: int
    column: int = Field(default=1)
    kind: str = Field(default=ReferenceKind.READ.value)


# ============================================================================
# QUERY RESULTS
# ============================================================================


@dataclass(frozen=True)
class MissingPairing:
    """A missing pairing joined with what is needed to render a diagnostic."""

    pairing_id: int
    platform: str
    symbol_id: int
    symbol_name: str
    qualified_name: str
    symbol_kind: str
    signature: str | None
    line: int
    file_id: int
    file_path: str
    module_path: str | None
    source_set: str | None
    package_name: str | None = None
    module_root: str | None = None
