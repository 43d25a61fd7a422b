"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
from pathlib import Path

# Insert local src directory at the beginning of sys.path
# This ensures that the local xplat package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of xplat modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("xplat"):
        del sys.modules[module_name]


# =============================================================================
# Shared fixtures
# =============================================================================
# xplat imports stay inside the fixtures so they resolve after the module
# purge above.

from collections.abc import Generator  # noqa: E402
from dataclasses import dataclass, field  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402

PLATFORM_KT = """\
package com.example

expect class Platform() {
    val name: String
}

expect fun currentTimeMillis(): Long
"""

WORKER_KT = """\
package com.example

import kotlinx.coroutines.Dispatchers
import kotlinx.coroutines.withContext

class Worker {
    val x = Dispatchers.IO

    suspend fun load(): String = withContext(x) { "ok" }
}
"""

PLATFORM_JVM_KT = """\
package com.example

actual class Platform actual constructor() {
    actual val name: String = "JVM"
}

actual fun currentTimeMillis(): Int = System.currentTimeMillis().toInt()
"""

TIME_WASM_KT = """\
package com.example

actual fun currentTimeMillis(): Long = 0L
"""

COMMON_DIR = "shared/src/commonMain/kotlin/com/example"
JVM_DIR = "shared/src/jvmMain/kotlin/com/example"
WASM_DIR = "shared/src/wasmJsMain/kotlin/com/example"


@dataclass
class KmpRepo:
    """A small multiplatform repository on disk with a matching index."""

    root: Path
    store: Any
    module_id: int = 0
    file_ids: dict[str, int] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return str(self.root)

    def path(self, relative: str) -> str:
        return str(self.root / relative)

    def add_file(
        self,
        relative: str,
        content: str,
        *,
        source_set: str = "commonMain",
        package_name: str | None = "com.example",
    ) -> int:
        """Write relative under root and index it."""
        from xplat.index import IndexedFile, content_hash

        full = self.root / relative
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_text(content)
        with self.store.writer() as w:
            file_id = w.upsert_file(
                IndexedFile(
                    repo_path=self.key,
                    path=str(full),
                    relative_path=relative,
                    module_path=":shared",
                    source_set=source_set,
                    package_name=package_name,
                    content_hash=content_hash(content),
                    line_count=content.count("\n"),
                )
            ).file_id
        self.file_ids[relative] = file_id
        return file_id


@pytest.fixture
def index_store(tmp_path: Path) -> Generator[Any, None, None]:
    """Empty index store in a temporary database."""
    from xplat.index import IndexStore

    store = IndexStore.open(tmp_path / "index" / "index.db")
    yield store
    store.close()


@pytest.fixture
def kmp_repo(tmp_path: Path, index_store: Any) -> KmpRepo:
    """Repository with a shared module targeting jvm and wasmJs.

    Index facts:
    - Platform (class) is implemented on jvm and missing on wasmJs.
    - currentTimeMillis (function) is implemented on both; the jvm
      implementation carries a mismatch reason.
    - Worker.kt in commonMain uses Dispatchers.IO on line 7.
    """
    from xplat.index import (
        SHARED_PLATFORM,
        DeclarationPairing,
        IndexedSymbol,
        Module,
        SourceSet,
        SymbolKind,
    )

    root = tmp_path / "repo"
    root.mkdir()
    (root / "shared").mkdir()
    (root / "shared" / "build.gradle.kts").write_text("plugins { kotlin(\"multiplatform\") }\n")
    repo = KmpRepo(root=root, store=index_store)

    with index_store.writer() as w:
        repo.module_id = w.add_module(
            Module(
                repo_path=repo.key,
                path=":shared",
                display_name="shared",
                absolute_path=str(root / "shared"),
                is_shared=True,
                build_file_path=str(root / "shared" / "build.gradle.kts"),
            )
        )
        for name, platform in (
            ("commonMain", SHARED_PLATFORM),
            ("jvmMain", "jvm"),
            ("wasmJsMain", "wasmJs"),
        ):
            w.add_source_set(
                SourceSet(
                    module_id=repo.module_id,
                    name=name,
                    platform=platform,
                    directory_path=str(root / "shared" / "src" / name),
                )
            )

    platform_file = repo.add_file(f"{COMMON_DIR}/Platform.kt", PLATFORM_KT)
    repo.add_file(f"{COMMON_DIR}/Worker.kt", WORKER_KT)
    jvm_file = repo.add_file(f"{JVM_DIR}/Platform.jvm.kt", PLATFORM_JVM_KT, source_set="jvmMain")
    wasm_file = repo.add_file(f"{WASM_DIR}/Time.wasmJs.kt", TIME_WASM_KT, source_set="wasmJsMain")

    with index_store.writer() as w:
        platform_decl = w.add_symbol(
            IndexedSymbol(
                file_id=platform_file,
                name="Platform",
                qualified_name="com.example.Platform",
                kind=SymbolKind.CLASS.value,
                is_shared_decl=True,
                start_line=3,
                end_line=5,
                signature="expect class Platform()",
            )
        )
        time_decl = w.add_symbol(
            IndexedSymbol(
                file_id=platform_file,
                name="currentTimeMillis",
                qualified_name="com.example.currentTimeMillis",
                kind=SymbolKind.FUNCTION.value,
                is_shared_decl=True,
                start_line=7,
                end_line=7,
                signature="expect fun currentTimeMillis(): Long",
            )
        )
        platform_jvm = w.add_symbol(
            IndexedSymbol(
                file_id=jvm_file,
                name="Platform",
                qualified_name="com.example.Platform@jvm",
                kind=SymbolKind.CLASS.value,
                is_platform_impl=True,
                start_line=3,
                end_line=5,
            )
        )
        time_jvm = w.add_symbol(
            IndexedSymbol(
                file_id=jvm_file,
                name="currentTimeMillis",
                qualified_name="com.example.currentTimeMillis@jvm",
                kind=SymbolKind.FUNCTION.value,
                is_platform_impl=True,
                start_line=7,
                end_line=7,
            )
        )
        time_wasm = w.add_symbol(
            IndexedSymbol(
                file_id=wasm_file,
                name="currentTimeMillis",
                qualified_name="com.example.currentTimeMillis@wasmJs",
                kind=SymbolKind.FUNCTION.value,
                is_platform_impl=True,
                start_line=3,
                end_line=3,
            )
        )
        w.add_pairing(
            DeclarationPairing(
                shared_symbol_id=platform_decl, impl_symbol_id=platform_jvm, platform="jvm"
            )
        )
        w.add_pairing(
            DeclarationPairing(shared_symbol_id=platform_decl, platform="wasmJs", is_missing=True)
        )
        w.add_pairing(
            DeclarationPairing(
                shared_symbol_id=time_decl,
                impl_symbol_id=time_jvm,
                platform="jvm",
                mismatch_reason="Return type Int does not match Long",
            )
        )
        w.add_pairing(
            DeclarationPairing(
                shared_symbol_id=time_decl, impl_symbol_id=time_wasm, platform="wasmJs"
            )
        )
    return repo
