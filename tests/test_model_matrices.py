"""
파라미터 테이블 기반 행렬 재구성 테스트

semopy inspect()와 같은 형태의 테이블을 모집단 값으로 직접 만들어 사용합니다.
"""

import numpy as np
import pandas as pd
import pytest

from tpb_sem.analysis.sem_analysis import ModelMatrices
from conftest import INDICATORS, PHI, GAMMA, ZETA_VAR, LOADING, ERROR_VAR

LATENTS = ['attitudes', 'norms', 'control', 'intention']


def population_table(measurement_op: str = '~') -> pd.DataFrame:
    rows = []
    for k, latent in enumerate(LATENTS):
        for j, indicator in enumerate(INDICATORS[2 * k:2 * k + 2]):
            se = '-' if j == 0 else 0.05
            if measurement_op == '=~':
                rows.append((latent, '=~', indicator, LOADING, se))
            else:
                rows.append((indicator, '~', latent, LOADING, se))
    for latent, gamma in zip(LATENTS[:3], GAMMA):
        rows.append(('intention', '~', latent, gamma, 0.05))
    for i, lv1 in enumerate(LATENTS[:3]):
        for j, lv2 in enumerate(LATENTS[:3]):
            if j >= i:
                rows.append((lv1, '~~', lv2, PHI[i, j], 0.05))
    rows.append(('intention', '~~', 'intention', ZETA_VAR, 0.05))
    for indicator in INDICATORS:
        rows.append((indicator, '~~', indicator, ERROR_VAR, 0.02))
    return pd.DataFrame(rows, columns=['lval', 'op', 'rval', 'Estimate', 'Std. Err'])


@pytest.fixture
def matrices():
    return ModelMatrices(population_table(), INDICATORS)


class TestModelMatrices:
    """행렬 재구성 테스트"""

    def test_counts(self, matrices):
        assert sorted(matrices.latent) == sorted(LATENTS)
        assert matrices.n_free == 22
        assert matrices.n_moments == 36
        assert matrices.degrees_of_freedom == 14

    def test_implied_covariance_is_population(self, matrices):
        sigma = matrices.implied_cov(matrices.theta_hat)

        assert np.allclose(np.diag(sigma), 1.0)
        assert sigma[0, 1] == pytest.approx(LOADING ** 2)
        assert sigma[0, 2] == pytest.approx(LOADING ** 2 * PHI[0, 1])
        expected_cov = LOADING ** 2 * (PHI[1] @ GAMMA)
        assert sigma[2, 6] == pytest.approx(expected_cov)

    def test_measurement_operator_normalized(self):
        forward = ModelMatrices(population_table('~'), INDICATORS)
        reverse = ModelMatrices(population_table('=~'), INDICATORS)
        assert np.allclose(forward.implied_cov(forward.theta_hat),
                           reverse.implied_cov(reverse.theta_hat))

    def test_unsupported_relation(self):
        table = population_table()
        table.loc[len(table)] = ['sex_fool', '~', 'sex_harm', 0.1, 0.01]
        with pytest.raises(ValueError):
            ModelMatrices(table, INDICATORS)

    def test_sigma_jacobian_matches_finite_differences(self, matrices):
        theta = matrices.theta_hat
        delta = matrices.sigma_jacobian(theta)

        h = 1e-6
        numeric = np.zeros_like(delta)
        for k in range(len(theta)):
            upper, lower = theta.copy(), theta.copy()
            upper[k] += h
            lower[k] -= h
            numeric[:, k] = (matrices.vech(matrices.implied_cov(upper))
                             - matrices.vech(matrices.implied_cov(lower))) / (2 * h)

        assert delta.shape == (36, 22)
        assert np.allclose(delta, numeric, atol=1e-6)

    def test_standardized_solution(self, matrices):
        table = matrices.table.copy()
        table['Std'] = matrices.standardize(matrices.theta_hat)

        loadings = table[table['kind'] == 'loading']
        assert np.allclose(loadings['Std'], LOADING)

        regressions = table[table['kind'] == 'regression']
        assert np.allclose(regressions['Std'], GAMMA)

        covs = table[(table['kind'] == 'latent_cov') & (table['lval'] != table['rval'])]
        assert np.allclose(covs['Std'], 0.3)

    def test_standardized_loading_and_residual_sum_to_one(self):
        """임의의 모수에서도 λ*² + θ* = 1"""
        table = population_table()
        rng = np.random.default_rng(1)
        free = table['Std. Err'] != '-'
        table.loc[free, 'Estimate'] = table.loc[free, 'Estimate'] * rng.uniform(0.7, 1.3, free.sum())
        mats = ModelMatrices(table, INDICATORS)

        std = mats.standardize(mats.theta_hat)
        for indicator in INDICATORS:
            loading = std[(mats.table['lval'] == indicator) & (mats.table['kind'] == 'loading')][0]
            residual = std[(mats.table['lval'] == indicator) & (mats.table['rval'] == indicator)][0]
            assert loading ** 2 + residual == pytest.approx(1.0)

    def test_r_squared(self, matrices):
        r2 = matrices.r_squared(matrices.theta_hat)

        assert list(r2.columns) == ['Variable', 'Type', 'R2']
        indicators = r2[r2['Type'] == 'observed']
        assert list(indicators['Variable']) == INDICATORS
        assert np.allclose(indicators['R2'], LOADING ** 2)

        intention = r2[r2['Variable'] == 'intention']['R2'].iloc[0]
        assert intention == pytest.approx(1 - ZETA_VAR)

    def test_negative_variances(self):
        table = population_table()
        table.loc[(table['lval'] == 'how_ref') & (table['rval'] == 'how_ref'), 'Estimate'] = -0.05
        mats = ModelMatrices(table, INDICATORS)
        assert mats.negative_variances(mats.theta_hat) == ['how_ref']

    def test_standardized_jacobian_shape(self, matrices):
        jac = matrices.standardized_jacobian(matrices.theta_hat)
        assert jac.shape == (len(matrices.table), matrices.n_free)
        assert np.isfinite(jac).all()
