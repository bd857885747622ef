"""
분석 모듈 패키지

- 정규성 검정 (normality)
- 구조방정식모형 추정 및 보고 (sem_analysis)
"""

from . import normality
from . import sem_analysis

__all__ = [
    "normality",
    "sem_analysis"
]
