"""DappRank - censorship resistance analysis for ENS-hosted dapps."""

__version__ = "0.4.0"

__author__ = "DappRank"

from .config.config import Config
from .config.constants import DappRankConstants
from .indexing.index_builder import IndexBuilder
from .models import FileEntry, OwnerType, RankScore, ScriptAnalysis
from .pipeline.orchestrator import AnalysisContext, AnalysisPipeline, AnalyzeManager
from .report.report import Report
from .scoring.rank import calculate_rank_score

__all__ = [
    "AnalysisContext",
    "AnalysisPipeline",
    "AnalyzeManager",
    "Config",
    "DappRankConstants",
    "FileEntry",
    "IndexBuilder",
    "OwnerType",
    "RankScore",
    "Report",
    "ScriptAnalysis",
    "calculate_rank_score",
]
