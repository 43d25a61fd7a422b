"""Analyzer framework, built-in analyzers and the diagnostic engine."""

from xplat.analysis.api_misuse import ApiMisuseAnalyzer
from xplat.analysis.base import Analyzer, BaseAnalyzer, FileCallback, LineScanAnalyzer
from xplat.analysis.coroutines import CoroutineLeakAnalyzer
from xplat.analysis.engine import (
    AnalyzerResult,
    DiagnosticEngine,
    DiagnosticReport,
    default_analyzers,
)
from xplat.analysis.pairing import DeclarationPairingAnalyzer
from xplat.analysis.project import ProjectDetection, ProjectType, detect_project_type
from xplat.analysis.thread_safety import ThreadSafetyAnalyzer

__all__ = [
    "Analyzer",
    "AnalyzerResult",
    "ApiMisuseAnalyzer",
    "BaseAnalyzer",
    "CoroutineLeakAnalyzer",
    "DeclarationPairingAnalyzer",
    "DiagnosticEngine",
    "DiagnosticReport",
    "FileCallback",
    "LineScanAnalyzer",
    "ProjectDetection",
    "ProjectType",
    "ThreadSafetyAnalyzer",
    "default_analyzers",
    "detect_project_type",
]
