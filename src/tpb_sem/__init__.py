"""
TPB SEM Report - 구조방정식모형 보고서 패키지

계획된 행동 이론(TPB) 모형으로 금욕 의도 설문 자료를 분석합니다:
1. 정규성 검정 (Shapiro-Wilk, Mardia)
2. Satorra-Bentler 강건 최대우도 추정 (MLM)
3. 적합도 지수 (척도화 χ², RMSEA, CFI, SRMR)
4. 표준화 요인부하량, R², 구조경로
"""

__version__ = "1.0.0"

from . import analysis
from . import utils

__all__ = [
    "analysis",
    "utils"
]
