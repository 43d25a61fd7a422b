"""Project type and primary language inference from a list of file paths.

Build descriptors decide first, in table order. Without one, the
language with the most source files wins, and a tie goes to whichever
language comes first in the priority order.
"""

from __future__ import annotations

import fnmatch
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Literal

from xplat.config.models import DEFAULT_LANGUAGE_PRIORITY


@dataclass(frozen=True)
class ProjectType:
    name: str
    language: str
    build_system: str
    build_files: tuple[str, ...]  # file names or fnmatch patterns


PROJECT_TYPES: tuple[ProjectType, ...] = (
    ProjectType(
        "Kotlin Multiplatform", "kotlin", "gradle", ("build.gradle.kts", "settings.gradle.kts")
    ),
    ProjectType("Java (Gradle)", "java", "gradle", ("build.gradle", "settings.gradle")),
    ProjectType("Java (Maven)", "java", "maven", ("pom.xml",)),
    ProjectType("Node.js", "javascript", "npm", ("package.json",)),
    ProjectType("Python", "python", "pip", ("pyproject.toml", "setup.py", "requirements.txt")),
    ProjectType("Rust", "rust", "cargo", ("Cargo.toml",)),
    ProjectType("Go", "go", "go", ("go.mod",)),
    ProjectType("C/C++", "cpp", "cmake", ("CMakeLists.txt", "Makefile")),
    ProjectType("C#", "csharp", "dotnet", ("*.csproj", "*.sln")),
    ProjectType("Swift", "swift", "swiftpm", ("Package.swift",)),
)

LANGUAGE_EXTENSIONS: dict[str, frozenset[str]] = {
    "kotlin": frozenset({".kt", ".kts"}),
    "java": frozenset({".java"}),
    "typescript": frozenset({".ts", ".tsx"}),
    "javascript": frozenset({".js", ".jsx", ".mjs", ".cjs"}),
    "python": frozenset({".py"}),
    "rust": frozenset({".rs"}),
    "go": frozenset({".go"}),
    "cpp": frozenset({".c", ".cc", ".cpp", ".cxx", ".h", ".hpp"}),
    "csharp": frozenset({".cs"}),
    "swift": frozenset({".swift"}),
}

_EXTENSION_TO_LANGUAGE = {ext: lang for lang, exts in LANGUAGE_EXTENSIONS.items() for ext in exts}


@dataclass(frozen=True)
class ProjectDetection:
    """Inference result. project_type is None when decided by extensions."""

    language: str | None
    project_type: ProjectType | None = None
    matched_by: Literal["build_file", "extension", "none"] = "none"
    build_file: str | None = None
    language_counts: dict[str, int] = field(default_factory=dict)

    @property
    def build_system(self) -> str | None:
        return self.project_type.build_system if self.project_type else None


def _matches_build_file(name: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch.fnmatchcase(name, p) for p in patterns)


def count_languages(paths: Iterable[str]) -> Counter[str]:
    counts: Counter[str] = Counter()
    for path in paths:
        lang = _EXTENSION_TO_LANGUAGE.get(PurePosixPath(path).suffix.lower())
        if lang is not None:
            counts[lang] += 1
    return counts


def detect_project_type(
    paths: Sequence[str], *, priority: Sequence[str] | None = None
) -> ProjectDetection:
    """Infer the build system and language of the project owning paths.

    Args:
        paths: Repository-relative or absolute file paths.
        priority: Tie-break order for extension counting. Languages not
            listed rank after every listed one, alphabetically.
    """
    names = [PurePosixPath(p).name for p in paths]
    for project_type in PROJECT_TYPES:
        for path, name in zip(paths, names):
            if _matches_build_file(name, project_type.build_files):
                return ProjectDetection(
                    language=project_type.language,
                    project_type=project_type,
                    matched_by="build_file",
                    build_file=path,
                )

    counts = count_languages(paths)
    if not counts:
        return ProjectDetection(language=None)

    order = list(priority if priority is not None else DEFAULT_LANGUAGE_PRIORITY)

    def rank(lang: str) -> tuple[int, int, str]:
        pos = order.index(lang) if lang in order else len(order)
        return (-counts[lang], pos, lang)

    best = min(counts, key=rank)
    return ProjectDetection(language=best, matched_by="extension", language_counts=dict(counts))
