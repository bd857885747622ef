"""
유틸리티 모듈 패키지
"""

from .results_manager import ResultsManager

__all__ = ['ResultsManager']
