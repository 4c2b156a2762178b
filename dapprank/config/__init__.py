from .config import Config
from .constants import DappRankConstants

__all__ = ['Config', 'DappRankConstants']
