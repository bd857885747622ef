"""
Normality Assessment Package

SEM 추정 전 관측변수의 정규성을 평가합니다.
- 단변량: Shapiro-Wilk 검정, 왜도, 첨도
- 다변량: Mardia 왜도/첨도 검정
"""

from .normality_assessor import (
    NormalityAssessor,
    NormalityReport,
    assess_normality,
    mardia_test,
    shapiro_wilk_table
)

__all__ = [
    'NormalityAssessor',
    'NormalityReport',
    'assess_normality',
    'mardia_test',
    'shapiro_wilk_table'
]
