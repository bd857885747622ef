"""
신뢰도 및 수렴타당도 계산 모듈

적합된 측정모형의 표준화 요인부하량과 원시 문항 데이터로부터 다음을 계산합니다:
- Cronbach's Alpha (크론바흐 알파)
- Composite Reliability (CR, 합성신뢰도)
- Average Variance Extracted (AVE, 평균분산추출)
"""

from typing import Dict, List, Optional, Any, Sequence
import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def cronbach_alpha(data: pd.DataFrame, items: Sequence[str]) -> float:
    """
    크론바흐 알파 계산

    Args:
        data (pd.DataFrame): 원시 데이터
        items (Sequence[str]): 해당 요인의 문항들

    Returns:
        float: 크론바흐 알파 값
    """
    k = len(items)
    if k < 2:
        logger.warning("크론바흐 알파 계산을 위해서는 최소 2개 문항이 필요합니다.")
        return np.nan

    item_data = data[list(items)].dropna()
    if len(item_data) == 0:
        logger.warning("크론바흐 알파 계산용 데이터가 없습니다.")
        return np.nan

    sum_item_var = item_data.var(ddof=1).sum()
    total_var = item_data.sum(axis=1).var(ddof=1)
    if total_var == 0:
        return np.nan

    return float((k / (k - 1)) * (1 - sum_item_var / total_var))


def composite_reliability(loadings: Sequence[float]) -> float:
    """
    합성신뢰도 (CR): (Σλ)² / [(Σλ)² + Σ(1 - λ²)]

    Args:
        loadings (Sequence[float]): 표준화 요인부하량
    """
    loadings = np.asarray(loadings, dtype=float)
    numerator = loadings.sum() ** 2
    denominator = numerator + np.sum(1 - loadings ** 2)
    if denominator == 0:
        return np.nan
    return float(numerator / denominator)


def average_variance_extracted(loadings: Sequence[float]) -> float:
    """평균분산추출 (AVE): Σλ² / k"""
    loadings = np.asarray(loadings, dtype=float)
    if len(loadings) == 0:
        return np.nan
    return float(np.mean(loadings ** 2))


class ReliabilityCalculator:
    """잠재변수별 신뢰도 통계 계산 클래스"""

    def __init__(self, parameters: pd.DataFrame, data: Optional[pd.DataFrame] = None):
        """
        Args:
            parameters (pd.DataFrame): 적합 결과 파라미터 테이블 (kind, Est_Std 포함)
            data (Optional[pd.DataFrame]): 원시 문항 데이터 (알파 계산용)
        """
        self.loadings = parameters[parameters['kind'] == 'loading']
        self.data = data

    def factor_stats(self, latent: str) -> Dict[str, Any]:
        """단일 잠재변수의 신뢰도 통계"""
        rows = self.loadings[self.loadings['rval'] == latent]
        items: List[str] = rows['lval'].tolist()
        std_loadings = rows['Est_Std'].to_numpy(dtype=float)

        alpha = np.nan
        if self.data is not None:
            alpha = cronbach_alpha(self.data, items)

        ave = average_variance_extracted(std_loadings)
        return {
            'Latent': latent,
            'n_items': len(items),
            'Cronbach_Alpha': alpha,
            'CR': composite_reliability(std_loadings),
            'AVE': ave,
            'Sqrt_AVE': np.sqrt(ave) if not np.isnan(ave) else np.nan,
            'Min_Loading': float(std_loadings.min()) if len(std_loadings) else np.nan,
            'Max_Loading': float(std_loadings.max()) if len(std_loadings) else np.nan
        }

    def calculate(self) -> pd.DataFrame:
        """
        모든 잠재변수의 신뢰도 테이블

        Returns:
            pd.DataFrame: 잠재변수별 Alpha, CR, AVE
        """
        latents = list(dict.fromkeys(self.loadings['rval']))
        table = pd.DataFrame([self.factor_stats(latent) for latent in latents])

        for _, row in table.iterrows():
            if row['AVE'] < 0.5:
                logger.warning(f"{row['Latent']}: AVE {row['AVE']:.3f} < 0.5 (수렴타당도 미흡)")
        logger.info(f"신뢰도 계산 완료: {len(table)}개 잠재변수")
        return table
