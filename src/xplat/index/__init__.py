"""Repository index: structural facts consumed by the analyzers."""

from xplat.index.db import Database
from xplat.index.models import (
    SHARED_PLATFORM,
    DeclarationPairing,
    IndexedFile,
    IndexedSymbol,
    MissingPairing,
    Module,
    ReferenceKind,
    SourceSet,
    SymbolKind,
    SymbolReference,
    Visibility,
)
from xplat.index.store import (
    DeclarationCounts,
    FileUpsert,
    IndexStore,
    IndexWriter,
    content_hash,
)

__all__ = [
    "Database",
    "DeclarationCounts",
    "DeclarationPairing",
    "FileUpsert",
    "IndexStore",
    "IndexWriter",
    "IndexedFile",
    "IndexedSymbol",
    "MissingPairing",
    "Module",
    "ReferenceKind",
    "SHARED_PLATFORM",
    "SourceSet",
    "SymbolKind",
    "SymbolReference",
    "Visibility",
    "content_hash",
]
