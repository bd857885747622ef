"""
Model Matrices Module

semopy 파라미터 테이블(inspect 결과)로부터 LISREL 형태의 행렬(Λ, B, Ψ, Θ)을 재구성하고
모형 내재 공분산, 공분산의 파라미터 미분(Δ), 표준화 추정치, R²를 계산합니다.

    Σ(θ) = Λ (I - B)^-1 Ψ (I - B)^-T Λ' + Θ
"""

from typing import List, Sequence, Tuple
import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


# 파라미터 종류
LOADING = 'loading'
REGRESSION = 'regression'
LATENT_COV = 'latent_cov'
RESIDUAL_COV = 'residual_cov'


def _is_free(std_err) -> bool:
    """semopy는 고정 파라미터의 표준오차를 '-'로 표시"""
    return str(std_err).strip() != '-'


class ModelMatrices:
    """파라미터 테이블 기반 SEM 행렬 계산 클래스"""

    def __init__(self, params: pd.DataFrame, observed: Sequence[str]):
        """
        Args:
            params (pd.DataFrame): semopy Model.inspect() 결과
            observed (Sequence[str]): 관측변수 이름 (데이터 컬럼 순서)
        """
        self.observed = list(observed)
        obs_index = {name: i for i, name in enumerate(self.observed)}

        latent = []
        for name in list(params['lval']) + list(params['rval']):
            if name not in obs_index and name not in latent:
                latent.append(name)
        self.latent = latent
        lat_index = {name: i for i, name in enumerate(self.latent)}

        kinds, positions, lvals, rvals, ops = [], [], [], [], []
        for _, row in params.iterrows():
            op, lval, rval = row['op'], row['lval'], row['rval']

            # 일부 버전은 측정관계를 '=~'(잠재 -> 지표)로 출력
            if op == '=~':
                lval, rval, op = rval, lval, '~'

            if op == '~':
                if lval in obs_index and rval in lat_index:
                    kind, pos = LOADING, (obs_index[lval], lat_index[rval])
                elif lval in lat_index and rval in lat_index:
                    kind, pos = REGRESSION, (lat_index[lval], lat_index[rval])
                else:
                    raise ValueError(f"지원하지 않는 회귀 관계: {lval} ~ {rval}")
            elif op == '~~':
                if lval in lat_index and rval in lat_index:
                    kind, pos = LATENT_COV, (lat_index[lval], lat_index[rval])
                elif lval in obs_index and rval in obs_index:
                    kind, pos = RESIDUAL_COV, (obs_index[lval], obs_index[rval])
                else:
                    raise ValueError(f"관측변수와 잠재변수 간 공분산은 지원하지 않습니다: {lval} ~~ {rval}")
            else:
                raise ValueError(f"지원하지 않는 연산자: {op}")

            kinds.append(kind)
            positions.append(pos)
            lvals.append(lval)
            rvals.append(rval)
            ops.append(op)

        self.kinds = kinds
        self.positions = positions
        self.table = pd.DataFrame({
            'lval': lvals,
            'op': ops,
            'rval': rvals,
            'kind': kinds,
            'free': [_is_free(se) for se in params['Std. Err']],
            'Estimate': pd.to_numeric(params['Estimate']).to_numpy(dtype=float)
        })

        self.values = self.table['Estimate'].to_numpy(dtype=float)
        self.free_index = np.flatnonzero(self.table['free'].to_numpy())

        self.n_observed = len(self.observed)
        self.n_latent = len(self.latent)
        self.vech_rows, self.vech_cols = np.tril_indices(self.n_observed)

        logger.debug(f"행렬 재구성: 관측 {self.n_observed}, 잠재 {self.n_latent}, "
                     f"자유모수 {self.n_free}")

    @property
    def n_free(self) -> int:
        return len(self.free_index)

    @property
    def n_moments(self) -> int:
        p = self.n_observed
        return p * (p + 1) // 2

    @property
    def degrees_of_freedom(self) -> int:
        return self.n_moments - self.n_free

    @property
    def theta_hat(self) -> np.ndarray:
        """자유모수 추정치 벡터 (테이블 순서)"""
        return self.values[self.free_index].copy()

    def _row_values(self, theta: np.ndarray) -> np.ndarray:
        values = self.values.copy()
        values[self.free_index] = theta
        return values

    def matrices(self, theta: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        자유모수 벡터로부터 Λ, B, Ψ, Θ 생성

        Returns:
            Tuple: (lambda, beta, psi, theta)
        """
        p, m = self.n_observed, self.n_latent
        lam = np.zeros((p, m))
        beta = np.zeros((m, m))
        psi = np.zeros((m, m))
        theta_mx = np.zeros((p, p))

        for kind, (i, j), value in zip(self.kinds, self.positions, self._row_values(theta)):
            if kind == LOADING:
                lam[i, j] = value
            elif kind == REGRESSION:
                beta[i, j] = value
            elif kind == LATENT_COV:
                psi[i, j] = psi[j, i] = value
            else:
                theta_mx[i, j] = theta_mx[j, i] = value

        return lam, beta, psi, theta_mx

    def _inverse_beta(self, beta: np.ndarray) -> np.ndarray:
        return np.linalg.inv(np.eye(self.n_latent) - beta)

    def implied_cov(self, theta: np.ndarray) -> np.ndarray:
        """모형 내재 공분산 Σ(θ)"""
        lam, beta, psi, theta_mx = self.matrices(theta)
        m_inv = self._inverse_beta(beta)
        return lam @ m_inv @ psi @ m_inv.T @ lam.T + theta_mx

    def latent_cov(self, theta: np.ndarray) -> np.ndarray:
        """잠재변수 총 공분산 (I-B)^-1 Ψ (I-B)^-T"""
        _, beta, psi, _ = self.matrices(theta)
        m_inv = self._inverse_beta(beta)
        return m_inv @ psi @ m_inv.T

    def vech(self, mx: np.ndarray) -> np.ndarray:
        return mx[self.vech_rows, self.vech_cols]

    def sigma_jacobian(self, theta: np.ndarray) -> np.ndarray:
        """
        Δ = ∂vech(Σ)/∂θ' 해석적 계산

        Returns:
            np.ndarray: (모멘트 수 x 자유모수 수) 행렬
        """
        lam, beta, psi, _ = self.matrices(theta)
        p, m = self.n_observed, self.n_latent
        m_inv = self._inverse_beta(beta)
        lat_cov = m_inv @ psi @ m_inv.T
        c_mx = lat_cov @ lam.T

        delta = np.zeros((self.n_moments, self.n_free))
        for col, row_idx in enumerate(self.free_index):
            kind = self.kinds[row_idx]
            i, j = self.positions[row_idx]

            if kind == LOADING:
                d_lam = np.zeros((p, m))
                d_lam[i, j] = 1.0
                a_mx = d_lam @ c_mx
                d_sigma = a_mx + a_mx.T
            elif kind == REGRESSION:
                e_mx = np.zeros((m, m))
                e_mx[i, j] = 1.0
                d_m = m_inv @ e_mx @ m_inv
                a_mx = lam @ d_m @ psi @ m_inv.T @ lam.T
                d_sigma = a_mx + a_mx.T
            elif kind == LATENT_COV:
                d_psi = np.zeros((m, m))
                d_psi[i, j] = d_psi[j, i] = 1.0
                d_sigma = lam @ m_inv @ d_psi @ m_inv.T @ lam.T
            else:
                d_sigma = np.zeros((p, p))
                d_sigma[i, j] = d_sigma[j, i] = 1.0

            delta[:, col] = self.vech(d_sigma)

        return delta

    def standardize(self, theta: np.ndarray) -> np.ndarray:
        """
        모든 파라미터 행의 완전표준화 추정치 (std.all)

        Returns:
            np.ndarray: 테이블 행 순서의 표준화 값
        """
        sd_obs = np.sqrt(np.diag(self.implied_cov(theta)))
        sd_lat = np.sqrt(np.diag(self.latent_cov(theta)))

        std_values = np.empty(len(self.kinds))
        for k, (kind, (i, j), value) in enumerate(zip(self.kinds, self.positions,
                                                      self._row_values(theta))):
            if kind == LOADING:
                std_values[k] = value * sd_lat[j] / sd_obs[i]
            elif kind == REGRESSION:
                std_values[k] = value * sd_lat[j] / sd_lat[i]
            elif kind == LATENT_COV:
                std_values[k] = value / (sd_lat[i] * sd_lat[j])
            else:
                std_values[k] = value / (sd_obs[i] * sd_obs[j])
        return std_values

    def standardized_jacobian(self, theta: np.ndarray, step: float = 1e-6) -> np.ndarray:
        """
        표준화 추정치의 자유모수에 대한 야코비안 (중심차분)

        Returns:
            np.ndarray: (행 수 x 자유모수 수) 행렬
        """
        jac = np.zeros((len(self.kinds), self.n_free))
        for k in range(self.n_free):
            h = step * max(1.0, abs(theta[k]))
            upper = theta.copy()
            lower = theta.copy()
            upper[k] += h
            lower[k] -= h
            jac[:, k] = (self.standardize(upper) - self.standardize(lower)) / (2 * h)
        return jac

    def dependent_variables(self) -> List[Tuple[str, str]]:
        """들어오는 경로가 있는 변수 목록 [(이름, 'observed'|'latent')]"""
        dependents = []
        for kind, (i, _) in zip(self.kinds, self.positions):
            if kind == LOADING:
                entry = (self.observed[i], 'observed')
            elif kind == REGRESSION:
                entry = (self.latent[i], 'latent')
            else:
                continue
            if entry not in dependents:
                dependents.append(entry)
        return dependents

    def r_squared(self, theta: np.ndarray) -> pd.DataFrame:
        """
        종속변수별 설명된 분산 비율

        Returns:
            pd.DataFrame: Variable, Type, R2
        """
        _, _, psi, theta_mx = self.matrices(theta)
        total_obs = np.diag(self.implied_cov(theta))
        total_lat = np.diag(self.latent_cov(theta))

        rows = []
        for name, var_type in self.dependent_variables():
            if var_type == 'observed':
                i = self.observed.index(name)
                r2 = 1.0 - theta_mx[i, i] / total_obs[i]
            else:
                i = self.latent.index(name)
                r2 = 1.0 - psi[i, i] / total_lat[i]
            rows.append({'Variable': name, 'Type': var_type, 'R2': float(r2)})
        return pd.DataFrame(rows, columns=['Variable', 'Type', 'R2'])

    def negative_variances(self, theta: np.ndarray) -> List[str]:
        """음수 분산 추정치(Heywood case)를 가진 변수 목록"""
        names = []
        for kind, (i, j), value in zip(self.kinds, self.positions, self._row_values(theta)):
            if i == j and kind in (LATENT_COV, RESIDUAL_COV) and value < 0:
                names.append(self.latent[i] if kind == LATENT_COV else self.observed[i])
        return names
