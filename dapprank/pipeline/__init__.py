from .orchestrator import AnalysisContext, AnalysisPipeline, AnalyzeManager
from .steps import ALL_STEPS, CLEANUP_STEPS, DISTRIBUTION_STEPS, GOVERNANCE_STEPS, NETWORKING_STEPS, AnalysisStep

__all__ = ['AnalysisContext', 'AnalysisPipeline', 'AnalyzeManager', 'AnalysisStep', 'ALL_STEPS', 'CLEANUP_STEPS', 'DISTRIBUTION_STEPS', 'GOVERNANCE_STEPS', 'NETWORKING_STEPS']
