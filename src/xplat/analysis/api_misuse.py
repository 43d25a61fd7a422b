"""Platform API misuse in shared code."""

from __future__ import annotations

import re
from collections.abc import Iterator

from xplat.analysis.base import LineScanAnalyzer
from xplat.diagnostics.models import (
    AnalyzerSource,
    Diagnostic,
    DiagnosticCategory,
    DiagnosticTag,
    Severity,
)
from xplat.index.models import IndexedFile

PLATFORM_IMPORTS: dict[str, re.Pattern[str]] = {
    "android": re.compile(r"^\s*import\s+android\."),
    "ios": re.compile(r"^\s*import\s+platform\.(?:Foundation|UIKit)\."),
    "jvm": re.compile(r"^\s*import\s+javax?\."),
}
"""Import statements that only resolve on one platform family."""

RESOURCE_PATTERNS: dict[str, tuple[re.Pattern[str], str]] = {
    "stream": (
        re.compile(r"\.openStream\(\)|\bFileInputStream\(|\bFileOutputStream\("),
        "Stream opened without use/close pattern - ensure it is properly closed",
    ),
    "http-client": (
        re.compile(r"\bHttpClient\s*\("),
        "HttpClient created without use/close pattern - ensure it is properly closed",
    ),
}
"""Resource acquisitions that leak unless released on every path."""

SCOPED_RELEASE = re.compile(r"\.use\s*\{")


class ApiMisuseAnalyzer(LineScanAnalyzer):
    """Platform-only imports and unscoped resources in the shared partition."""

    name = "api_misuse"
    category = DiagnosticCategory.API_MISUSE
    source = AnalyzerSource.API_MISUSE

    def _scan_line(self, file: IndexedFile, line_number: int, line: str) -> Iterator[Diagnostic]:
        for family, pattern in PLATFORM_IMPORTS.items():
            if match := pattern.search(line):
                yield self._line_diagnostic(
                    f"api-import-{family}",
                    file,
                    line_number,
                    line,
                    match,
                    Severity.ERROR,
                    f"{family} import in shared code will not compile on other platforms",
                    explanation=(
                        f"Shared code compiles for every target, but this import only exists "
                        f"on {family}. Move the usage behind a shared declaration with "
                        "platform implementations."
                    ),
                    tags=(DiagnosticTag.CROSS_PLATFORM,),
                )

        if SCOPED_RELEASE.search(line):
            return
        for resource, (pattern, message) in RESOURCE_PATTERNS.items():
            if match := pattern.search(line):
                yield self._line_diagnostic(
                    f"api-resource-{resource}",
                    file,
                    line_number,
                    line,
                    match,
                    Severity.WARNING,
                    message,
                    explanation="Wrap the resource in .use {} so it is closed on every path.",
                )
