from .script_analyzer import ScriptAnalyzer, ScriptClassifier, join_inline_scripts, merge_results

__all__ = ['ScriptAnalyzer', 'ScriptClassifier', 'join_inline_scripts', 'merge_results']
