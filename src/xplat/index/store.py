"""Index store: read API for analyzers and write API for the indexer.

Reads never raise. A missing repository, module or file yields an empty
result, and a storage failure is logged and degrades to an empty result,
so analyzers keep working against partial indexes. Writes go through
``IndexStore.writer()``, which holds an immediate transaction for its
whole block.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import and_, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, func, select

from xplat.core.errors import IndexStoreError
from xplat.core.logging import get_logger
from xplat.index.db import Database
from xplat.index.models import (
    DeclarationPairing,
    IndexedFile,
    IndexedSymbol,
    MissingPairing,
    Module,
    SourceSet,
    SymbolReference,
)

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

T = TypeVar("T")


def content_hash(content: str) -> str:
    """Change-detection fingerprint of file content."""
    return hashlib.sha256(content.encode()).hexdigest()


def _repo_key(repo_path: str | Path) -> str:
    return str(repo_path)


class IndexStore:
    """Query surface over the repository index.

    Usage::

        store = IndexStore.open(Path(".xplat/index.db"))
        for f in store.files_in_partitions("/repo", ["commonMain"]):
            ...
    """

    def __init__(self, db: Database, *, logger: BoundLogger | None = None) -> None:
        self._db = db
        self._log = logger or get_logger("index.store")

    @classmethod
    def open(cls, db_path: Path, *, logger: BoundLogger | None = None) -> IndexStore:
        """Open (and create if needed) the index database at db_path."""
        db = Database(db_path)
        db.create_all()
        return cls(db, logger=logger)

    @property
    def db(self) -> Database:
        return self._db

    def close(self) -> None:
        self._db.dispose()

    def _read(self, op: str, query: Callable[[Session], T], default: T) -> T:
        try:
            with self._db.session() as session:
                return query(session)
        except SQLAlchemyError as e:
            self._log.warning("index_read_failed", op=op, error=str(e))
            return default

    # =========================================================================
    # Structure
    # =========================================================================

    def modules(self, repo_path: str | Path) -> list[Module]:
        repo = _repo_key(repo_path)

        def query(session: Session) -> list[Module]:
            stmt = select(Module).where(Module.repo_path == repo).order_by(col(Module.path))
            return list(session.exec(stmt).all())

        return self._read("modules", query, [])

    def source_sets(self, module_id: int) -> list[SourceSet]:
        def query(session: Session) -> list[SourceSet]:
            stmt = (
                select(SourceSet)
                .where(SourceSet.module_id == module_id)
                .order_by(col(SourceSet.name))
            )
            return list(session.exec(stmt).all())

        return self._read("source_sets", query, [])

    def repository_source_sets(self, repo_path: str | Path) -> list[SourceSet]:
        """All source sets of every module in the repository."""
        repo = _repo_key(repo_path)

        def query(session: Session) -> list[SourceSet]:
            stmt = (
                select(SourceSet)
                .join(Module, col(SourceSet.module_id) == col(Module.id))
                .where(Module.repo_path == repo)
                .order_by(col(Module.path), col(SourceSet.name))
            )
            return list(session.exec(stmt).all())

        return self._read("repository_source_sets", query, [])

    # =========================================================================
    # Files
    # =========================================================================

    def files_in_partitions(
        self, repo_path: str | Path, partition_names: Iterable[str]
    ) -> list[IndexedFile]:
        """Files of the repository whose source set is one of partition_names."""
        repo = _repo_key(repo_path)
        names = list(partition_names)
        if not names:
            return []

        def query(session: Session) -> list[IndexedFile]:
            stmt = (
                select(IndexedFile)
                .where(IndexedFile.repo_path == repo, col(IndexedFile.source_set).in_(names))
                .order_by(col(IndexedFile.path))
            )
            return list(session.exec(stmt).all())

        return self._read("files_in_partitions", query, [])

    def files(self, repo_path: str | Path) -> list[IndexedFile]:
        repo = _repo_key(repo_path)

        def query(session: Session) -> list[IndexedFile]:
            stmt = (
                select(IndexedFile)
                .where(IndexedFile.repo_path == repo)
                .order_by(col(IndexedFile.path))
            )
            return list(session.exec(stmt).all())

        return self._read("files", query, [])

    def files_in_module(self, repo_path: str | Path, module_path: str) -> list[IndexedFile]:
        repo = _repo_key(repo_path)

        def query(session: Session) -> list[IndexedFile]:
            stmt = (
                select(IndexedFile)
                .where(IndexedFile.repo_path == repo, IndexedFile.module_path == module_path)
                .order_by(col(IndexedFile.path))
            )
            return list(session.exec(stmt).all())

        return self._read("files_in_module", query, [])

    def get_file(self, path: str | Path) -> IndexedFile | None:
        key = str(path)

        def query(session: Session) -> IndexedFile | None:
            return session.exec(select(IndexedFile).where(IndexedFile.path == key)).first()

        return self._read("get_file", query, None)

    def get_file_by_id(self, file_id: int) -> IndexedFile | None:
        return self._read("get_file_by_id", lambda s: s.get(IndexedFile, file_id), None)

    # =========================================================================
    # Symbols
    # =========================================================================

    def get_symbol(self, symbol_id: int) -> IndexedSymbol | None:
        return self._read("get_symbol", lambda s: s.get(IndexedSymbol, symbol_id), None)

    def symbol_by_qualified_name(self, qualified_name: str) -> IndexedSymbol | None:
        def query(session: Session) -> IndexedSymbol | None:
            stmt = select(IndexedSymbol).where(IndexedSymbol.qualified_name == qualified_name)
            return session.exec(stmt).first()

        return self._read("symbol_by_qualified_name", query, None)

    def symbols_in_file(self, file_id: int) -> list[IndexedSymbol]:
        def query(session: Session) -> list[IndexedSymbol]:
            stmt = (
                select(IndexedSymbol)
                .where(IndexedSymbol.file_id == file_id)
                .order_by(col(IndexedSymbol.start_line), col(IndexedSymbol.start_column))
            )
            return list(session.exec(stmt).all())

        return self._read("symbols_in_file", query, [])

    def references_to_symbol(self, symbol_id: int) -> list[SymbolReference]:
        def query(session: Session) -> list[SymbolReference]:
            stmt = (
                select(SymbolReference)
                .where(SymbolReference.symbol_id == symbol_id)
                .order_by(col(SymbolReference.file_id), col(SymbolReference.line))
            )
            return list(session.exec(stmt).all())

        return self._read("references_to_symbol", query, [])

    # =========================================================================
    # Pairings
    # =========================================================================

    def missing_pairings(self, repo_path: str | Path | None = None) -> list[MissingPairing]:
        """Pairings without an implementation, joined with the shared symbol.

        Restricted to one repository when repo_path is given.
        """
        repo = _repo_key(repo_path) if repo_path is not None else None

        def query(session: Session) -> list[MissingPairing]:
            stmt = (
                select(DeclarationPairing, IndexedSymbol, IndexedFile, Module)
                .join(
                    IndexedSymbol,
                    col(DeclarationPairing.shared_symbol_id) == col(IndexedSymbol.id),
                )
                .join(IndexedFile, col(IndexedSymbol.file_id) == col(IndexedFile.id))
                .outerjoin(
                    Module,
                    and_(
                        col(Module.repo_path) == col(IndexedFile.repo_path),
                        col(Module.path) == col(IndexedFile.module_path),
                    ),
                )
                .where(col(DeclarationPairing.is_missing).is_(True))
                .order_by(
                    col(IndexedFile.path),
                    col(IndexedSymbol.start_line),
                    col(DeclarationPairing.platform),
                )
            )
            if repo is not None:
                stmt = stmt.where(IndexedFile.repo_path == repo)
            return [
                MissingPairing(
                    pairing_id=pairing.id or 0,
                    platform=pairing.platform,
                    symbol_id=symbol.id or 0,
                    symbol_name=symbol.name,
                    qualified_name=symbol.qualified_name,
                    symbol_kind=symbol.kind,
                    signature=symbol.signature,
                    line=symbol.start_line,
                    file_id=file.id or 0,
                    file_path=file.path,
                    module_path=file.module_path,
                    source_set=file.source_set,
                    package_name=file.package_name,
                    module_root=module.absolute_path if module is not None else None,
                )
                for pairing, symbol, file, module in session.exec(stmt).all()
            ]

        return self._read("missing_pairings", query, [])

    def all_pairings(self) -> list[DeclarationPairing]:
        def query(session: Session) -> list[DeclarationPairing]:
            stmt = select(DeclarationPairing).order_by(col(DeclarationPairing.id))
            return list(session.exec(stmt).all())

        return self._read("all_pairings", query, [])

    def pairings(self, repo_path: str | Path) -> list[DeclarationPairing]:
        """Every pairing whose shared declaration lives in the repository."""
        repo = _repo_key(repo_path)

        def query(session: Session) -> list[DeclarationPairing]:
            stmt = (
                select(DeclarationPairing)
                .join(
                    IndexedSymbol,
                    col(DeclarationPairing.shared_symbol_id) == col(IndexedSymbol.id),
                )
                .join(IndexedFile, col(IndexedSymbol.file_id) == col(IndexedFile.id))
                .where(IndexedFile.repo_path == repo)
                .order_by(col(DeclarationPairing.id))
            )
            return list(session.exec(stmt).all())

        return self._read("pairings", query, [])

    def declaration_counts(self, repo_path: str | Path) -> DeclarationCounts:
        """How many shared declarations and platform implementations are indexed."""
        repo = _repo_key(repo_path)

        def count_where(session: Session, flag: Any) -> int:
            stmt = (
                select(func.count())
                .select_from(IndexedSymbol)
                .join(IndexedFile, col(IndexedSymbol.file_id) == col(IndexedFile.id))
                .where(IndexedFile.repo_path == repo, col(flag).is_(True))
            )
            return int(session.exec(stmt).one())

        def query(session: Session) -> DeclarationCounts:
            return DeclarationCounts(
                shared_declarations=count_where(session, IndexedSymbol.is_shared_decl),
                platform_implementations=count_where(session, IndexedSymbol.is_platform_impl),
            )

        return self._read("declaration_counts", query, DeclarationCounts(0, 0))

    # =========================================================================
    # Writes
    # =========================================================================

    @contextmanager
    def writer(self) -> Generator[IndexWriter, None, None]:
        """Write transaction. Commits on exit, rolls back on exception."""
        try:
            with self._db.immediate_transaction() as session:
                yield IndexWriter(session)
        except SQLAlchemyError as e:
            self._log.error("index_write_failed", error=str(e))
            raise IndexStoreError.unavailable(str(e)) from e


@dataclass(frozen=True)
class DeclarationCounts:
    """Shared declarations against the platform implementations backing them."""

    shared_declarations: int
    platform_implementations: int


@dataclass(frozen=True)
class FileUpsert:
    """Outcome of IndexWriter.upsert_file."""

    file_id: int
    changed: bool


class IndexWriter:
    """Write operations bound to one immediate transaction."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _insert(self, row: Any) -> int:
        self._session.add(row)
        self._session.flush()
        return int(row.id)

    def add_module(self, module: Module) -> int:
        return self._insert(module)

    def add_source_set(self, source_set: SourceSet) -> int:
        return self._insert(source_set)

    def upsert_file(self, file: IndexedFile) -> FileUpsert:
        """Insert a file, or refresh an existing row with the same path.

        An unchanged content hash leaves the row and its symbols untouched.
        A changed hash replaces the row's facts and drops its old symbols,
        which the indexer re-adds.
        """
        existing = self._session.exec(
            select(IndexedFile).where(IndexedFile.path == file.path)
        ).first()
        if existing is None:
            return FileUpsert(self._insert(file), changed=True)
        assert existing.id is not None
        if existing.content_hash == file.content_hash:
            return FileUpsert(existing.id, changed=False)

        for name, value in file.model_dump(exclude={"id"}).items():
            setattr(existing, name, value)
        self._session.add(existing)
        self._session.connection().execute(
            delete(IndexedSymbol).where(col(IndexedSymbol.file_id) == existing.id)
        )
        self._session.flush()
        return FileUpsert(existing.id, changed=True)

    def add_symbol(self, symbol: IndexedSymbol) -> int:
        dup = self._session.exec(
            select(IndexedSymbol.id).where(IndexedSymbol.qualified_name == symbol.qualified_name)
        ).first()
        if dup is not None:
            raise IndexStoreError.duplicate_symbol(symbol.qualified_name)
        return self._insert(symbol)

    def add_pairing(self, pairing: DeclarationPairing) -> int:
        if pairing.is_missing and pairing.impl_symbol_id is not None:
            raise IndexStoreError.invalid_pairing(
                pairing.shared_symbol_id, "missing pairing cannot name an implementation"
            )
        if pairing.is_missing and pairing.mismatch_reason is not None:
            raise IndexStoreError.invalid_pairing(
                pairing.shared_symbol_id, "missing pairing cannot carry a mismatch reason"
            )
        return self._insert(pairing)

    def add_reference(self, reference: SymbolReference) -> int:
        return self._insert(reference)

    def clear_repository(self, repo_path: str | Path) -> None:
        """Delete every module and file of the repository with their dependents."""
        repo = _repo_key(repo_path)
        self._session.connection().execute(
            delete(IndexedFile).where(col(IndexedFile.repo_path) == repo)
        )
        self._session.connection().execute(
            delete(Module).where(col(Module.repo_path) == repo)
        )
        self._session.flush()
