"""
Normality Assessment Module

지표별 단변량 정규성(Shapiro-Wilk)과 다변량 정규성(Mardia 왜도/첨도)을 검정합니다.
결과는 추정방법 선택을 위한 참고자료이며, 파이프라인의 분기를 결정하지 않습니다.
"""

from dataclasses import dataclass
from typing import Dict, Any
import logging

import numpy as np
import pandas as pd
from scipy import stats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalityReport:
    """정규성 검정 결과"""

    univariate: pd.DataFrame
    multivariate: pd.DataFrame
    alpha: float

    @property
    def non_normal_indicators(self):
        return list(self.univariate.loc[~self.univariate['Normal'], 'Indicator'])

    @property
    def multivariate_normal(self) -> bool:
        """Mardia 왜도와 첨도 모두 기각되지 않으면 True"""
        return bool((self.multivariate['P_value'] >= self.alpha).all())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'alpha': self.alpha,
            'multivariate_normal': self.multivariate_normal,
            'non_normal_indicators': self.non_normal_indicators,
            'univariate': self.univariate.to_dict('records'),
            'multivariate': self.multivariate.to_dict('records')
        }


def shapiro_wilk_table(data: pd.DataFrame, alpha: float = 0.05) -> pd.DataFrame:
    """
    지표별 Shapiro-Wilk 검정

    Args:
        data (pd.DataFrame): 관측행렬
        alpha (float): 유의수준

    Returns:
        pd.DataFrame: Indicator, W, P_value, Skewness, Kurtosis, Normal
    """
    rows = []
    for column in data.columns:
        values = data[column].dropna().to_numpy(dtype=float)
        w_stat, p_value = stats.shapiro(values)
        rows.append({
            'Indicator': column,
            'W': float(w_stat),
            'P_value': float(p_value),
            'Skewness': float(stats.skew(values, bias=False)),
            'Kurtosis': float(stats.kurtosis(values, bias=False)),
            'Normal': bool(p_value >= alpha)
        })
    return pd.DataFrame(rows)


def mardia_test(data: pd.DataFrame) -> Dict[str, float]:
    """
    Mardia 다변량 왜도/첨도 검정

    공분산은 N으로 나눈 최대우도 추정치를 사용합니다.

    Args:
        data (pd.DataFrame): 관측행렬 (결측치 없음)

    Returns:
        Dict[str, float]: b1p, 왜도 통계량/자유도/p값, b2p, 첨도 z/p값
    """
    x = np.asarray(data, dtype=float)
    n, p = x.shape
    if n <= p:
        raise ValueError(f"Mardia 검정에는 변수 수({p})보다 많은 관측치가 필요합니다: {n}")

    centered = x - x.mean(axis=0)
    cov = centered.T @ centered / n
    d = centered @ np.linalg.solve(cov, centered.T)

    b1p = float((d ** 3).sum() / n ** 2)
    b2p = float((np.diag(d) ** 2).sum() / n)

    skew_df = p * (p + 1) * (p + 2) / 6
    if n < 20:
        k = ((p + 1) * (n + 1) * (n + 3)) / (n * ((n + 1) * (p + 1) - 6))
        skew_stat = n * k * b1p / 6
    else:
        skew_stat = n * b1p / 6
    skew_p = float(stats.chi2.sf(skew_stat, skew_df))

    kurt_z = (b2p - p * (p + 2)) / np.sqrt(8 * p * (p + 2) / n)
    kurt_p = float(2 * stats.norm.sf(abs(kurt_z)))

    return {
        'b1p': b1p,
        'skewness_statistic': float(skew_stat),
        'skewness_df': float(skew_df),
        'skewness_p_value': skew_p,
        'b2p': b2p,
        'kurtosis_z': float(kurt_z),
        'kurtosis_p_value': kurt_p
    }


class NormalityAssessor:
    """단변량/다변량 정규성 평가 클래스"""

    def __init__(self, alpha: float = 0.05):
        """
        Args:
            alpha (float): 정규성 판단 유의수준
        """
        self.alpha = alpha

    def assess(self, data: pd.DataFrame) -> NormalityReport:
        """
        정규성 평가 실행

        Args:
            data (pd.DataFrame): 관측행렬

        Returns:
            NormalityReport: 평가 결과
        """
        logger.info(f"정규성 검정 시작: {data.shape}")

        univariate = shapiro_wilk_table(data, self.alpha)

        mardia = mardia_test(data.dropna())
        multivariate = pd.DataFrame([
            {
                'Test': 'Mardia Skewness',
                'Coefficient': mardia['b1p'],
                'Statistic': mardia['skewness_statistic'],
                'DF': mardia['skewness_df'],
                'P_value': mardia['skewness_p_value']
            },
            {
                'Test': 'Mardia Kurtosis',
                'Coefficient': mardia['b2p'],
                'Statistic': mardia['kurtosis_z'],
                'DF': np.nan,
                'P_value': mardia['kurtosis_p_value']
            }
        ])
        multivariate['Normal'] = multivariate['P_value'] >= self.alpha

        report = NormalityReport(univariate, multivariate, self.alpha)

        n_non_normal = len(report.non_normal_indicators)
        logger.info(f"단변량 비정규 지표: {n_non_normal}/{len(univariate)}개")
        logger.info(f"Mardia 왜도 p={mardia['skewness_p_value']:.4g}, "
                    f"첨도 p={mardia['kurtosis_p_value']:.4g}")
        if not report.multivariate_normal:
            logger.info("다변량 정규성 기각: Satorra-Bentler 보정(MLM) 추정이 권장됩니다")

        return report


def assess_normality(data: pd.DataFrame, alpha: float = 0.05) -> NormalityReport:
    """정규성 평가 편의 함수"""
    return NormalityAssessor(alpha).assess(data)
