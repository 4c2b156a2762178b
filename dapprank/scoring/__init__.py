from .rank import CATEGORY_WEIGHTS, calculate_rank_score, score_distribution, score_governance, score_manifest, score_networking, validate_report_version

__all__ = ['CATEGORY_WEIGHTS', 'calculate_rank_score', 'score_distribution', 'score_governance', 'score_manifest', 'score_networking', 'validate_report_version']
