"""
Model Fit Evaluation Module

적합된 SEM으로부터 전반적 적합도 지수를 계산합니다.
- 척도화 카이제곱, 자유도, p값
- RMSEA 점추정치, 신뢰구간, 근사적합 검정 p값
- CFI / TLI (독립모형 기준)
- SRMR
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Optional, Any, Tuple
import logging

import numpy as np
from scipy import stats
from scipy.optimize import brentq

from .sem_analyzer import FittedSEM

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FitIndices:
    """전반적 적합도 지수"""

    chi2: float
    chi2_scaled: float
    df: int
    p_value: float
    scaling_factor: float
    rmsea: float
    rmsea_ci_lower: float
    rmsea_ci_upper: float
    rmsea_pvalue: float
    rmsea_robust: float
    cfi: float
    cfi_ml: float
    cfi_robust: float
    tli: float
    srmr: float
    baseline_chi2: float
    baseline_df: int
    n_observations: int
    extra: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        values = asdict(self)
        extra = values.pop('extra')
        values.update(extra)
        return values


def rmsea_point(chi2: float, df: int, n: int) -> float:
    """RMSEA = sqrt(max(χ²/df - 1, 0) / N)"""
    if df <= 0 or not np.isfinite(chi2):
        return np.nan
    return float(np.sqrt(max(chi2 / df - 1.0, 0.0) / n))


def _noncentrality_bound(chi2: float, df: int, target: float) -> float:
    """ncx2.cdf(χ², df, λ) = target 을 만족하는 λ (없으면 0)"""
    def func(lam):
        if lam == 0:
            return stats.chi2.cdf(chi2, df) - target
        return stats.ncx2.cdf(chi2, df, lam) - target

    if func(0.0) <= 0:
        return 0.0

    upper = max(chi2, 1.0)
    while func(upper) > 0:
        upper *= 2.0
    return float(brentq(func, 0.0, upper))


def rmsea_confidence_interval(chi2: float, df: int, n: int,
                              level: float = 0.90) -> Tuple[float, float]:
    """
    비중심 카이제곱 분포를 역산한 RMSEA 신뢰구간

    Returns:
        Tuple[float, float]: (하한, 상한)
    """
    if df <= 0 or not np.isfinite(chi2):
        return np.nan, np.nan
    tail = (1 - level) / 2
    lam_lower = _noncentrality_bound(chi2, df, 1 - tail)
    lam_upper = _noncentrality_bound(chi2, df, tail)
    return (float(np.sqrt(lam_lower / (n * df))),
            float(np.sqrt(lam_upper / (n * df))))


def rmsea_close_fit_pvalue(chi2: float, df: int, n: int, close: float = 0.05) -> float:
    """H0: RMSEA <= close 에 대한 단측 p값"""
    if df <= 0 or not np.isfinite(chi2):
        return np.nan
    lam = close ** 2 * n * df
    return float(stats.ncx2.sf(chi2, df, lam))


def comparative_fit_index(chi2: float, df: int, chi2_base: float, df_base: int) -> float:
    """CFI = 1 - max(χ² - df, 0) / max(χ² - df, χ²₀ - df₀, 0)"""
    numerator = max(chi2 - df, 0.0)
    denominator = max(chi2 - df, chi2_base - df_base, 0.0)
    if denominator == 0:
        return 1.0
    return float(1.0 - numerator / denominator)


def tucker_lewis_index(chi2: float, df: int, chi2_base: float, df_base: int) -> float:
    """TLI = (χ²₀/df₀ - χ²/df) / (χ²₀/df₀ - 1)"""
    if df <= 0 or df_base <= 0:
        return np.nan
    base_ratio = chi2_base / df_base
    if base_ratio == 1:
        return np.nan
    return float((base_ratio - chi2 / df) / (base_ratio - 1.0))


def standardized_rmr(sample_cov: np.ndarray, implied_cov: np.ndarray) -> float:
    """
    SRMR (Bentler): 상관 척도의 잔차를 하삼각(대각 포함) 평균으로 계산
    """
    s_sd = np.sqrt(np.diag(sample_cov))
    m_sd = np.sqrt(np.diag(implied_cov))
    residual = sample_cov / np.outer(s_sd, s_sd) - implied_cov / np.outer(m_sd, m_sd)
    rows, cols = np.tril_indices(sample_cov.shape[0])
    return float(np.sqrt(np.mean(residual[rows, cols] ** 2)))


class FitEvaluator:
    """적합도 지수 계산 클래스"""

    def __init__(self, rmsea_confidence_level: float = 0.90, rmsea_close_fit: float = 0.05):
        self.rmsea_confidence_level = rmsea_confidence_level
        self.rmsea_close_fit = rmsea_close_fit

    def evaluate(self, fitted: FittedSEM) -> FitIndices:
        """
        적합도 지수 계산

        Args:
            fitted (FittedSEM): 적합 결과

        Returns:
            FitIndices: 적합도 지수
        """
        n = fitted.n_observations
        df = fitted.df
        t_scaled = fitted.chi2_scaled
        c = fitted.scaling_factor
        base = fitted.baseline

        p_value = float(stats.chi2.sf(t_scaled, df)) if df > 0 else np.nan
        ci_lower, ci_upper = rmsea_confidence_interval(t_scaled, df, n, self.rmsea_confidence_level)

        if df > 0 and np.isfinite(c):
            rmsea_robust = float(np.sqrt(max(fitted.chi2 - c * df, 0.0) / (n * df)))
            cfi_robust = comparative_fit_index(
                fitted.chi2, c * df, base['chi2'], base['scaling_factor'] * base['df'])
        else:
            rmsea_robust = np.nan
            cfi_robust = np.nan

        indices = FitIndices(
            chi2=fitted.chi2,
            chi2_scaled=t_scaled,
            df=df,
            p_value=p_value,
            scaling_factor=c,
            rmsea=rmsea_point(t_scaled, df, n),
            rmsea_ci_lower=ci_lower,
            rmsea_ci_upper=ci_upper,
            rmsea_pvalue=rmsea_close_fit_pvalue(t_scaled, df, n, self.rmsea_close_fit),
            rmsea_robust=rmsea_robust,
            cfi=comparative_fit_index(t_scaled, df, base['chi2_scaled'], base['df']),
            cfi_ml=comparative_fit_index(fitted.chi2, df, base['chi2'], base['df']),
            cfi_robust=cfi_robust,
            tli=tucker_lewis_index(t_scaled, df, base['chi2_scaled'], base['df']),
            srmr=standardized_rmr(fitted.sample_cov, fitted.implied_cov),
            baseline_chi2=base['chi2_scaled'],
            baseline_df=base['df'],
            n_observations=n,
            extra=dict(fitted.semopy_stats)
        )

        logger.info(f"적합도: χ²={indices.chi2_scaled:.3f} (df={df}, p={indices.p_value:.4f}), "
                    f"RMSEA={indices.rmsea:.3f} [{ci_lower:.3f}, {ci_upper:.3f}], "
                    f"CFI={indices.cfi:.3f}, SRMR={indices.srmr:.3f}")
        return indices


DEFAULT_FIT_THRESHOLDS = {
    'cfi': 0.95, 'cfi_acceptable': 0.90,
    'tli': 0.95, 'tli_acceptable': 0.90,
    'rmsea': 0.06, 'rmsea_acceptable': 0.08,
    'srmr': 0.08, 'srmr_acceptable': 0.10
}


def interpret_fit(indices: FitIndices, thresholds: Optional[Dict[str, float]] = None,
                  alpha: float = 0.05) -> Dict[str, str]:
    """
    관례적 기준에 따른 적합도 해석 (Hu & Bentler)

    Args:
        indices (FitIndices): 적합도 지수
        thresholds (Optional[Dict[str, float]]): 기준값 (Good 기준과 *_acceptable 기준, 일부만 지정 가능)
        alpha (float): 카이제곱 검정 유의수준

    Returns:
        Dict[str, str]: 지수별 해석 레이블
    """
    thresholds = {**DEFAULT_FIT_THRESHOLDS, **(thresholds or {})}

    def higher_is_better(value, cutoff, acceptable):
        if not np.isfinite(value):
            return 'N/A'
        if value >= cutoff:
            return 'Good'
        return 'Acceptable' if value >= acceptable else 'Poor'

    def lower_is_better(value, cutoff, acceptable):
        if not np.isfinite(value):
            return 'N/A'
        if value <= cutoff:
            return 'Good'
        return 'Acceptable' if value <= acceptable else 'Poor'

    return {
        'chi2': 'N/A' if not np.isfinite(indices.p_value)
                else ('Good' if indices.p_value >= alpha else 'Significant misfit'),
        'cfi': higher_is_better(indices.cfi, thresholds['cfi'], thresholds['cfi_acceptable']),
        'tli': higher_is_better(indices.tli, thresholds['tli'], thresholds['tli_acceptable']),
        'rmsea': lower_is_better(indices.rmsea, thresholds['rmsea'], thresholds['rmsea_acceptable']),
        'srmr': lower_is_better(indices.srmr, thresholds['srmr'], thresholds['srmr_acceptable'])
    }


def evaluate_fit(fitted: FittedSEM, rmsea_confidence_level: float = 0.90) -> FitIndices:
    """적합도 평가 편의 함수"""
    return FitEvaluator(rmsea_confidence_level).evaluate(fitted)
