from .index_builder import CATEGORIES, IndexBuilder, LiveApp, ScoredApp

__all__ = ['CATEGORIES', 'IndexBuilder', 'LiveApp', 'ScoredApp']
