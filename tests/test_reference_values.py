"""
실제 설문 자료에 대한 발표 결과 재현 테스트

TPB_SEM_DATA 환경변수가 설문 CSV 경로를 가리킬 때만 실행됩니다.
"""

import os
from pathlib import Path

import pytest

from tpb_sem.analysis.sem_analysis import (
    ParameterReporter,
    SEMReportPipeline,
    create_default_config,
    evaluate_fit
)

DATA_PATH = os.environ.get("TPB_SEM_DATA", "")

pytestmark = pytest.mark.skipif(
    not DATA_PATH or not Path(DATA_PATH).exists(),
    reason="TPB_SEM_DATA 설문 자료가 없습니다"
)


@pytest.fixture(scope="module")
def reference_results():
    config = create_default_config(data_path=DATA_PATH, save_results=False, create_diagrams=False)
    pipeline = SEMReportPipeline(config)
    return pipeline.run()


class TestReferenceValues:
    """발표된 MLM 결과와의 비교"""

    def test_scaled_chi_square(self, reference_results):
        indices = reference_results['fit_indices']
        assert indices.df == 14
        assert indices.chi2_scaled == pytest.approx(23.827, abs=0.05)

    def test_rmsea(self, reference_results):
        indices = reference_results['fit_indices']
        assert indices.rmsea == pytest.approx(0.045, abs=0.002)
        assert indices.rmsea_ci_lower == pytest.approx(0.010, abs=0.005)
        assert indices.rmsea_ci_upper == pytest.approx(0.073, abs=0.005)

    def test_cfi_and_srmr(self, reference_results):
        indices = evaluate_fit(reference_results['fitted'])
        assert indices.cfi == pytest.approx(0.99, abs=0.01)
        assert indices.srmr == pytest.approx(0.021, abs=0.002)

    def test_standardized_loadings(self, reference_results):
        loadings = reference_results['measurement']['Std_Loading']
        assert loadings.min() == pytest.approx(0.626, abs=0.005)
        assert loadings.max() == pytest.approx(0.897, abs=0.005)

    def test_indicator_r_squared(self, reference_results):
        r2 = reference_results['r_squared']
        indicators = r2[r2['Type'] == 'observed']['R2']
        assert indicators.min() == pytest.approx(0.393, abs=0.005)
        assert indicators.max() == pytest.approx(0.804, abs=0.005)

    def test_structural_paths(self, reference_results):
        paths = ParameterReporter(reference_results['fitted']).structural_table().set_index('From')

        assert paths.loc['norms', 'Std_Estimate'] == pytest.approx(-0.667, abs=0.01)
        assert paths.loc['norms', 'P_value'] < 0.05
        assert paths.loc['attitudes', 'Std_Estimate'] == pytest.approx(-0.189, abs=0.01)
        assert paths.loc['attitudes', 'P_value'] >= 0.05
