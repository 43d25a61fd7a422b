"""Shared-declaration pairing analyzer.

Reports shared declarations with no implementation on a platform (with a
stub implementation as fix) and implementations that drifted from their
shared declaration.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from pathlib import PurePosixPath

from xplat.analysis.base import BaseAnalyzer, FileCallback
from xplat.config.constants import STUB_FIX_CONFIDENCE
from xplat.diagnostics.models import (
    AnalyzerSource,
    Diagnostic,
    DiagnosticCategory,
    DiagnosticFix,
    DiagnosticTag,
    Severity,
    TextEdit,
    TextRange,
)
from xplat.index.models import MissingPairing, SymbolKind

_TYPE_KINDS = {
    SymbolKind.CLASS.value: "class",
    SymbolKind.INTERFACE.value: "interface",
    SymbolKind.OBJECT.value: "object",
    SymbolKind.ENUM.value: "enum class",
}


def platform_partition(platform: str) -> str:
    """Source set name holding code for platform, e.g. jvm -> jvmMain."""
    return f"{platform}Main"


def stub_path(missing: MissingPairing, shared_partition: str) -> str:
    """Where the implementation stub for missing goes.

    The file is always named ``<Name>.<platform>.kt``. Its directory is the
    declaring file's directory with the shared partition segment swapped for
    the platform's partition. Without such a segment the stub goes under
    ``src/<platform>Main/kotlin/<package dirs>`` of the module root, or in
    ``<platform>Main`` beside the declaring file when the module is not indexed.
    """
    path = PurePosixPath(missing.file_path)
    parts = list(path.parent.parts)
    target = platform_partition(missing.platform)
    file_name = f"{missing.symbol_name}.{missing.platform}.kt"
    if shared_partition in parts:
        idx = len(parts) - 1 - parts[::-1].index(shared_partition)
        parts[idx] = target
        return str(PurePosixPath(*parts, file_name))
    if missing.module_root:
        package_dirs = missing.package_name.split(".") if missing.package_name else []
        return str(
            PurePosixPath(missing.module_root, "src", target, "kotlin", *package_dirs, file_name)
        )
    return str(path.parent / target / file_name)


def _implementation_signature(missing: MissingPairing) -> str | None:
    if not missing.signature:
        return None
    sig = missing.signature.strip()
    for modifier in ("expect ", "public "):
        sig = sig.removeprefix(modifier)
    return sig


def stub_source(missing: MissingPairing) -> str:
    """Source text of a minimal implementation for missing."""
    header = f"package {missing.package_name}\n\n" if missing.package_name else ""
    sig = _implementation_signature(missing)
    kind = missing.symbol_kind
    name = missing.symbol_name

    if kind in _TYPE_KINDS:
        body = f"actual {sig or f'{_TYPE_KINDS[kind]} {name}'} {{\n}}\n"
    elif kind == SymbolKind.FUNCTION.value:
        decl = sig or f"fun {name}()"
        body = f'actual {decl} {{\n    TODO("Not yet implemented")\n}}\n'
    elif kind == SymbolKind.PROPERTY.value:
        decl = sig or f"val {name}: Any"
        body = f'actual {decl}\n    get() = TODO("Not yet implemented")\n'
    elif kind == SymbolKind.TYPEALIAS.value:
        body = f"actual typealias {name} = Any\n"
    else:
        body = f"actual {sig or name}\n"
    return header + body


class DeclarationPairingAnalyzer(BaseAnalyzer):
    """Missing and mismatched platform implementations of shared declarations."""

    name = "declaration_pairing"
    category = DiagnosticCategory.DECLARATION_PAIRING
    source = AnalyzerSource.DECLARATION_PAIRING

    def _run(
        self,
        repo_path: str,
        cancel: threading.Event | None,
        on_file: FileCallback | None,
    ) -> Iterator[Diagnostic]:
        seen_files: set[str] = set()
        for missing in self._store.missing_pairings(repo_path):
            if cancel is not None and cancel.is_set() and missing.file_path not in seen_files:
                self._log.info("analyzer_cancelled", analyzer=self.name, at_file=missing.file_path)
                return
            if missing.file_path not in seen_files:
                seen_files.add(missing.file_path)
                if on_file is not None:
                    on_file(missing.file_path)
            yield self._missing(missing)

        yield from self._mismatches(repo_path, cancel)

    def _missing(self, missing: MissingPairing) -> Diagnostic:
        path = stub_path(missing, self._config.shared_partition)
        fix = DiagnosticFix(
            title=f"Create {missing.platform} implementation of {missing.symbol_name}",
            description=f"Add a stub implementation in {platform_partition(missing.platform)}",
            edits=(TextEdit(path, TextRange(1, 1, 1, 1), stub_source(missing)),),
            is_preferred=True,
            confidence=STUB_FIX_CONFIDENCE,
        )
        return self._diagnostic(
            f"pairing-missing-{missing.qualified_name}-{missing.platform}",
            Severity.ERROR,
            f"Missing {missing.platform} implementation for '{missing.symbol_name}'",
            file_path=missing.file_path,
            range=TextRange.line(missing.line),
            explanation=(
                f"'{missing.qualified_name}' is declared in shared code but no "
                f"implementation exists for platform '{missing.platform}'. "
                "The module will not compile for that platform."
            ),
            code_snippet=missing.signature,
            module_path=missing.module_path,
            source_set=missing.source_set,
            tags=(DiagnosticTag.FIXABLE, DiagnosticTag.CROSS_PLATFORM),
            fixes=(fix,),
        )

    def _mismatches(self, repo_path: str, cancel: threading.Event | None) -> Iterator[Diagnostic]:
        for pairing in self._store.all_pairings():
            if pairing.mismatch_reason is None:
                continue
            if cancel is not None and cancel.is_set():
                return
            symbol = self._store.get_symbol(pairing.shared_symbol_id)
            if symbol is None:
                continue
            file = self._store.get_file_by_id(symbol.file_id)
            if file is None or file.repo_path != repo_path:
                continue
            yield self._diagnostic(
                f"pairing-mismatch-{symbol.qualified_name}-{pairing.platform}",
                Severity.WARNING,
                f"{pairing.platform} implementation of '{symbol.name}' does not match "
                "its shared declaration",
                file_path=file.path,
                range=TextRange.line(symbol.start_line),
                explanation=pairing.mismatch_reason,
                code_snippet=symbol.signature,
                module_path=file.module_path,
                source_set=file.source_set,
                tags=(DiagnosticTag.CROSS_PLATFORM,),
            )
