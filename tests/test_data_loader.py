"""
데이터 로딩 및 설정 테스트
"""

import numpy as np
import pandas as pd
import pytest

from tpb_sem.analysis.sem_analysis import (
    SEMReportConfig,
    SurveyDataLoader,
    create_default_config,
    create_normal_theory_config,
    describe_indicators,
    list_estimators,
    load_survey_data,
    restore_column_names,
    sanitize_column_name
)
from conftest import INDICATORS


@pytest.fixture
def survey_csv(tmp_path, survey_data):
    """원본 형태(점 포함 컬럼명)의 설문 CSV"""
    raw = survey_data.copy()
    raw.columns = [col.replace('_', '.', 1) for col in raw.columns]
    raw.insert(0, 'id', np.arange(len(raw)))
    raw.loc[3, 'sex.harm'] = np.nan
    path = tmp_path / "survey.csv"
    raw.to_csv(path, index=False)
    return path


class TestSanitize:
    """컬럼명 변환 테스트"""

    def test_dotted_names(self):
        assert sanitize_column_name('sex.fool') == 'sex_fool'
        assert sanitize_column_name(' int.avoid ') == 'int_avoid'

    def test_leading_digit(self):
        assert sanitize_column_name('1st item') == 'v_1st_item'


class TestSurveyDataLoader:
    """설문 데이터 로더 테스트"""

    def test_load_selects_indicators_in_order(self, survey_csv):
        loader = SurveyDataLoader(survey_csv)
        data = loader.load(INDICATORS)

        assert list(data.columns) == INDICATORS
        assert loader.original_name('sex_fool') == 'sex.fool'

    def test_listwise_deletion(self, survey_csv, survey_data):
        loader = SurveyDataLoader(survey_csv, missing_data_method='listwise')
        data = loader.load(INDICATORS)

        assert loader.n_dropped == 1
        assert len(data) == len(survey_data) - 1
        assert not data.isnull().values.any()

    def test_keep_missing(self, survey_csv):
        data = load_survey_data(survey_csv, INDICATORS, missing_data_method='none')
        assert data.isnull().values.sum() == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SurveyDataLoader(tmp_path / "nope.csv").load(INDICATORS)

    def test_missing_indicator(self, survey_csv):
        with pytest.raises(ValueError, match="not_there"):
            SurveyDataLoader(survey_csv).load(INDICATORS + ['not_there'])

    def test_indicator_names(self, survey_csv):
        loader = SurveyDataLoader(survey_csv)
        loader.load(INDICATORS)
        names = loader.indicator_names(INDICATORS)

        assert names['sex_fool'] == 'sex.fool'
        assert names['int_avoid'] == 'int.avoid'
        assert 'id' not in names

    def test_restore_column_names(self):
        table = pd.DataFrame({'Latent': ['attitudes', 'attitudes'],
                              'Indicator': ['sex_fool', 'sex_harm'],
                              'Std_Loading': [0.8, 0.7]})
        restored = restore_column_names(table, {'sex_fool': 'sex.fool'})

        assert list(restored['Indicator']) == ['sex.fool', 'sex_harm']
        assert list(restored['Latent']) == ['attitudes', 'attitudes']
        assert list(table['Indicator']) == ['sex_fool', 'sex_harm']

    def test_describe_indicators(self, survey_data):
        desc = describe_indicators(survey_data)

        assert list(desc['Indicator']) == INDICATORS
        assert (desc['min'] >= 1).all() and (desc['max'] <= 7).all()
        assert (desc['n'] == len(survey_data)).all()


class TestConfig:
    """설정 검증 테스트"""

    def test_defaults(self):
        config = create_default_config()

        assert config.estimator == 'MLM'
        assert config.robust
        assert config.rmsea_confidence_level == 0.90
        assert config.fit_thresholds['srmr'] == 0.08

    def test_normal_theory_config(self):
        config = create_normal_theory_config()
        assert config.estimator == 'ML'
        assert not config.robust
        assert not config.create_diagrams

    @pytest.mark.parametrize("kwargs", [
        {'estimator': 'WLSMV'},
        {'optimizer': 'Newton'},
        {'alpha': 1.5},
        {'confidence_level': 0},
        {'missing_data_method': 'fiml'},
        {'jacobian_step': 0}
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            SEMReportConfig(**kwargs)

    def test_to_dict(self):
        config = create_default_config(alpha=0.01)
        assert config.to_dict()['alpha'] == 0.01
        assert list_estimators() == ['MLM', 'ML']
