"""
Robust Inference Module (Satorra-Bentler)

비정규 연속형 자료에 대한 최대우도 추정의 강건 보정을 계산합니다.
- ML 불일치함수와 카이제곱 통계량
- 2차 적률의 점근 공분산 Γ
- Satorra-Bentler 척도화 계수 c = tr(UΓ) / df
- 샌드위치 공분산 (강건 표준오차)
- 독립(기저) 모형 통계량

모든 vech 연산은 np.tril_indices 순서를 따릅니다.
"""

from typing import Dict, Tuple
import logging

import numpy as np

logger = logging.getLogger(__name__)


def vech_indices(p: int) -> Tuple[np.ndarray, np.ndarray]:
    return np.tril_indices(p)


def duplication_matrix(p: int) -> np.ndarray:
    """
    중복행렬 D: vec(A) = D vech(A) (A 대칭)

    Returns:
        np.ndarray: (p*p x p(p+1)/2) 행렬
    """
    rows, cols = vech_indices(p)
    dup = np.zeros((p * p, len(rows)))
    for k, (i, j) in enumerate(zip(rows, cols)):
        dup[i * p + j, k] = 1.0
        dup[j * p + i, k] = 1.0
    return dup


def sample_covariance(data: np.ndarray) -> np.ndarray:
    """N으로 나눈 표본공분산 (최대우도 추정치)"""
    x = np.asarray(data, dtype=float)
    centered = x - x.mean(axis=0)
    return centered.T @ centered / x.shape[0]


def gamma_matrix(data: np.ndarray) -> np.ndarray:
    """
    2차 적률의 점근 공분산 Γ (N 분모)

    d_i = vech((x_i - x̄)(x_i - x̄)'),  Γ = mean((d_i - d̄)(d_i - d̄)')
    """
    x = np.asarray(data, dtype=float)
    n, p = x.shape
    centered = x - x.mean(axis=0)
    rows, cols = vech_indices(p)
    moments = centered[:, rows] * centered[:, cols]
    moments = moments - moments.mean(axis=0)
    return moments.T @ moments / n


def normal_theory_weight(sigma: np.ndarray) -> np.ndarray:
    """정규이론 가중행렬 W = ½ D'(Σ⁻¹ ⊗ Σ⁻¹) D"""
    p = sigma.shape[0]
    sigma_inv = np.linalg.inv(sigma)
    dup = duplication_matrix(p)
    return 0.5 * dup.T @ np.kron(sigma_inv, sigma_inv) @ dup


def ml_discrepancy(sample_cov: np.ndarray, sigma: np.ndarray) -> float:
    """ML 불일치함수 F = log|Σ| + tr(SΣ⁻¹) - log|S| - p"""
    p = sample_cov.shape[0]
    sign_sigma, logdet_sigma = np.linalg.slogdet(sigma)
    sign_s, logdet_s = np.linalg.slogdet(sample_cov)
    if sign_sigma <= 0 or sign_s <= 0:
        raise RuntimeError("공분산 행렬이 양정치가 아닙니다")
    trace = np.trace(np.linalg.solve(sigma, sample_cov))
    return float(logdet_sigma + trace - logdet_s - p)


def moment_scale(sample_cov: np.ndarray, sigma: np.ndarray) -> float:
    """
    k = tr(SΣ⁻¹) / p

    척도불변 모형의 ML 해는 tr(SΣ̂⁻¹) = p 를 만족하므로, 다른 분모(N-1)로 적합된
    Σ̂ 를 kΣ̂ 로 바꾸면 N 분모 표본공분산에 대한 ML 해가 됩니다.
    """
    p = sample_cov.shape[0]
    return float(np.trace(np.linalg.solve(sigma, sample_cov)) / p)


def residual_weight(weight: np.ndarray, delta: np.ndarray) -> np.ndarray:
    """U = W - WΔ(Δ'WΔ)⁻¹Δ'W"""
    w_delta = weight @ delta
    info = delta.T @ w_delta
    return weight - w_delta @ np.linalg.solve(info, w_delta.T)


def scaling_factor(u_mx: np.ndarray, gamma: np.ndarray, df: int) -> float:
    """Satorra-Bentler 척도화 계수 c = tr(UΓ)/df"""
    if df <= 0:
        return np.nan
    return float(np.trace(u_mx @ gamma) / df)


def normal_vcov(weight: np.ndarray, delta: np.ndarray, n: int) -> np.ndarray:
    """정규이론 (기대정보) 공분산 (Δ'WΔ)⁻¹ / N"""
    return np.linalg.inv(delta.T @ weight @ delta) / n


def sandwich_vcov(weight: np.ndarray, delta: np.ndarray, gamma: np.ndarray, n: int) -> np.ndarray:
    """강건 샌드위치 공분산 (Δ'WΔ)⁻¹ Δ'WΓWΔ (Δ'WΔ)⁻¹ / N"""
    w_delta = weight @ delta
    bread = np.linalg.inv(delta.T @ w_delta)
    meat = w_delta.T @ gamma @ w_delta
    return bread @ meat @ bread / n


def baseline_statistics(sample_cov: np.ndarray, gamma: np.ndarray, n: int,
                        robust: bool = True) -> Dict[str, float]:
    """
    독립(기저) 모형 Σ₀ = diag(S) 의 카이제곱과 척도화 계수

    Returns:
        Dict[str, float]: chi2, df, scaling_factor, chi2_scaled
    """
    p = sample_cov.shape[0]
    sigma0 = np.diag(np.diag(sample_cov))
    chi2 = n * ml_discrepancy(sample_cov, sigma0)
    df = p * (p - 1) // 2

    if robust:
        rows, cols = vech_indices(p)
        delta0 = np.zeros((len(rows), p))
        for k, (i, j) in enumerate(zip(rows, cols)):
            if i == j:
                delta0[k, i] = 1.0
        u0 = residual_weight(normal_theory_weight(sigma0), delta0)
        c0 = scaling_factor(u0, gamma, df)
    else:
        c0 = 1.0

    return {
        'chi2': float(chi2),
        'df': int(df),
        'scaling_factor': c0,
        'chi2_scaled': float(chi2 / c0) if c0 and np.isfinite(c0) else np.nan
    }


class SatorraBentlerCorrection:
    """Satorra-Bentler 보정 계산 클래스"""

    def __init__(self, data: np.ndarray, robust: bool = True):
        """
        Args:
            data (np.ndarray): 관측행렬 (N x p, 결측치 없음)
            robust (bool): False면 정규이론 결과만 계산
        """
        self.data = np.asarray(data, dtype=float)
        self.n = self.data.shape[0]
        self.robust = robust
        self.sample_cov = sample_covariance(self.data)
        self.gamma = gamma_matrix(self.data)

    def compute(self, sigma: np.ndarray, delta: np.ndarray, df: int) -> Dict[str, object]:
        """
        적합된 모형에 대한 검정통계량과 파라미터 공분산 계산

        Args:
            sigma (np.ndarray): 모형 내재 공분산 Σ̂
            delta (np.ndarray): ∂vech(Σ)/∂θ'
            df (int): 자유도

        Returns:
            Dict[str, object]: chi2, chi2_scaled, scaling_factor, moment_scale, vcov 등
        """
        k = moment_scale(self.sample_cov, sigma)
        sigma_ml = k * sigma
        if abs(k - 1.0) > 1e-3:
            logger.debug(f"내재 공분산 적률 척도 보정: k={k:.6f}")

        chi2 = self.n * ml_discrepancy(self.sample_cov, sigma_ml)
        weight = normal_theory_weight(sigma_ml)

        if self.robust:
            u_mx = residual_weight(weight, delta)
            c = scaling_factor(u_mx, self.gamma, df)
            vcov = sandwich_vcov(normal_theory_weight(sigma), delta, self.gamma, self.n)
        else:
            c = 1.0
            vcov = normal_vcov(normal_theory_weight(sigma), delta, self.n)

        chi2_scaled = chi2 / c if np.isfinite(c) and c > 0 else np.nan
        logger.info(f"카이제곱: ML={chi2:.3f}, 척도화={chi2_scaled:.3f} (c={c:.4f}, df={df})")

        return {
            'chi2': float(chi2),
            'chi2_scaled': float(chi2_scaled),
            'scaling_factor': float(c),
            'moment_scale': k,
            'sigma_ml': sigma_ml,
            'vcov': vcov
        }

    def baseline(self) -> Dict[str, float]:
        return baseline_statistics(self.sample_cov, self.gamma, self.n, self.robust)
