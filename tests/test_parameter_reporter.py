"""
파라미터 보고 테이블 및 신뢰도 테스트
"""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from tpb_sem.analysis.sem_analysis import ParameterReporter, ReliabilityCalculator
from tpb_sem.analysis.sem_analysis.reliability_calculator import (
    average_variance_extracted,
    composite_reliability,
    cronbach_alpha
)
from conftest import INDICATORS


@pytest.fixture(scope="module")
def reporter(fitted_survey, survey_data):
    return ParameterReporter(fitted_survey, survey_data)


class TestParameterReporter:
    """보고 테이블 테스트"""

    def test_measurement_table(self, reporter):
        table = reporter.measurement_table()

        assert len(table) == 8
        assert sorted(table['Indicator']) == sorted(INDICATORS)
        assert list(table.columns[:3]) == ['Latent', 'Indicator', 'Estimate']
        assert 'Std_Loading' in table.columns
        assert table['Std_Loading'].between(0, 1).all()
        assert table['Significant'].all()

    def test_measurement_rows_on_standardized_scale(self, reporter):
        """마커 지표를 포함한 모든 행이 표준화 부하량의 SE, z, p를 가짐"""
        table = reporter.measurement_table()
        z_crit = stats.norm.ppf(0.975)

        for column in ['SE', 'Z_value', 'P_value', 'CI_Lower', 'CI_Upper']:
            assert np.isfinite(table[column]).all()
        assert np.allclose(table['Z_value'], table['Std_Loading'] / table['SE'])
        assert np.allclose(table['P_value'], 2 * stats.norm.sf(np.abs(table['Z_value'])))
        assert np.allclose(table['CI_Lower'], table['Std_Loading'] - z_crit * table['SE'])
        assert np.allclose(table['CI_Upper'], table['Std_Loading'] + z_crit * table['SE'])

    def test_unstandardized_columns_kept(self, reporter):
        table = reporter.measurement_table()
        markers = table[np.isclose(table['Estimate'], 1.0) & table['SE_Unstd'].isna()]

        assert len(markers) == 4
        assert markers['Z_Unstd'].isna().all()
        assert table.loc[table['SE_Unstd'].notna(), 'P_Unstd'].notna().all()

    def test_tables_do_not_share_fitted_parameters(self, reporter, fitted_survey):
        before = fitted_survey.parameters.copy()
        for table in [reporter.measurement_table(), reporter.structural_table(),
                      reporter.variance_table(), reporter.r_squared_table()]:
            table.iloc[:, -1] = 0

        pd.testing.assert_frame_equal(fitted_survey.parameters, before)

    def test_structural_table(self, reporter):
        table = reporter.structural_table()

        assert len(table) == 3
        assert set(table['To']) == {'intention'}
        assert set(table['From']) == {'attitudes', 'norms', 'control'}
        assert (table['CI_Lower'] < table['Std_Estimate']).all()
        assert (table['Std_Estimate'] < table['CI_Upper']).all()

    def test_r_squared_table(self, reporter, fitted_survey):
        table = reporter.r_squared_table()
        pd.testing.assert_frame_equal(table, fitted_survey.r_squared)

        loadings = reporter.measurement_table().set_index('Indicator')['Std_Loading']
        indicator_r2 = table[table['Type'] == 'observed'].set_index('Variable')['R2']
        assert np.allclose(indicator_r2[INDICATORS], loadings[INDICATORS] ** 2)

    def test_covariance_table(self, reporter):
        table = reporter.covariance_table()

        assert len(table) == 3
        assert table['Correlation'].between(-1, 1).all()
        assert 'intention' not in set(table['Variable_1']) | set(table['Variable_2'])

    def test_variance_table(self, reporter):
        table = reporter.variance_table()
        assert len(table) == 8 + 4
        assert (table['Estimate'] > 0).all()

    def test_reliability_table(self, reporter):
        table = reporter.reliability_table()

        assert set(table['Latent']) == {'attitudes', 'norms', 'control', 'intention'}
        assert table['CR'].between(0, 1).all()
        assert table['AVE'].between(0, 1).all()
        assert table['Cronbach_Alpha'].between(0.5, 1).all()
        assert np.allclose(table['Sqrt_AVE'], np.sqrt(table['AVE']))


class TestReliabilityFormulas:
    """신뢰도 공식 테스트"""

    def test_composite_reliability(self):
        loadings = [0.8, 0.8]
        expected = 1.6 ** 2 / (1.6 ** 2 + 2 * 0.36)
        assert composite_reliability(loadings) == pytest.approx(expected)

    def test_ave(self):
        assert average_variance_extracted([0.6, 0.8]) == pytest.approx((0.36 + 0.64) / 2)

    def test_cronbach_alpha_parallel_items(self):
        rng = np.random.default_rng(0)
        true_score = rng.normal(size=2000)
        data = pd.DataFrame({f"i{k}": true_score + rng.normal(scale=0.5, size=2000) for k in range(3)})
        # 평행 문항: α = kρ / (1 + (k-1)ρ), ρ = 1 / 1.25
        rho = 1 / 1.25
        assert cronbach_alpha(data, list(data.columns)) == pytest.approx(3 * rho / (1 + 2 * rho), abs=0.02)

    def test_cronbach_alpha_needs_two_items(self):
        data = pd.DataFrame({'a': [1, 2, 3]})
        assert np.isnan(cronbach_alpha(data, ['a']))

    def test_calculator_without_raw_data(self, fitted_survey):
        table = ReliabilityCalculator(fitted_survey.parameters).calculate()
        assert table['Cronbach_Alpha'].isna().all()
        assert len(table) == 4
