"""
테스트 공용 fixture

알려진 모집단 TPB 모형에서 자료를 생성합니다.
    attitudes, norms, control: 상관 .3
    intention = -.2 attitudes - .6 norms + .1 control + ζ  (Var(intention) = 1)
    지표 = .8 η + ε  (Var(ε) = .36)
"""

import numpy as np
import pandas as pd
import pytest

from tpb_sem.analysis.sem_analysis import (
    create_default_config,
    create_normal_theory_config,
    create_tpb_model_spec,
    SEMAnalyzer
)

INDICATORS = ['sex_fool', 'sex_harm', 'frnd_sex', 'love_sex',
              'self_cntl', 'how_ref', 'int_abs', 'int_avoid']

PHI = np.array([
    [1.0, 0.3, 0.3],
    [0.3, 1.0, 0.3],
    [0.3, 0.3, 1.0]
])
GAMMA = np.array([-0.2, -0.6, 0.1])
ZETA_VAR = 1.0 - GAMMA @ PHI @ GAMMA
LOADING = 0.8
ERROR_VAR = 1.0 - LOADING ** 2


def simulate_tpb_data(n: int = 500, seed: int = 42, heavy_tailed: bool = False,
                      likert: bool = False) -> pd.DataFrame:
    """
    TPB 모집단 모형에서 관측행렬 생성

    Args:
        n (int): 표본 크기
        seed (int): 난수 시드
        heavy_tailed (bool): 다변량 t(5) 분포 (분산 1로 조정)
        likert (bool): 1-7점 척도로 반올림
    """
    rng = np.random.default_rng(seed)

    exo = rng.multivariate_normal(np.zeros(3), PHI, size=n)
    intention = exo @ GAMMA + rng.normal(0, np.sqrt(ZETA_VAR), size=n)
    eta = np.column_stack([exo, intention])

    errors = rng.normal(0, np.sqrt(ERROR_VAR), size=(n, 8))
    x = LOADING * np.repeat(eta, 2, axis=1) + errors

    if heavy_tailed:
        w = rng.chisquare(5, size=n) / 5
        x = x * np.sqrt(3 / 5) / np.sqrt(w)[:, None]

    if likert:
        x = np.clip(np.round(4 + 1.2 * x), 1, 7)

    return pd.DataFrame(x, columns=INDICATORS)


@pytest.fixture(scope="session")
def tpb_spec():
    return create_tpb_model_spec()


@pytest.fixture(scope="session")
def normal_data():
    return simulate_tpb_data(n=1000, seed=7)


@pytest.fixture(scope="session")
def survey_data():
    """1-7점 척도 설문 형태 자료"""
    return simulate_tpb_data(n=500, seed=42, likert=True)


@pytest.fixture(scope="session")
def heavy_tailed_data():
    return simulate_tpb_data(n=500, seed=11, heavy_tailed=True)


@pytest.fixture(scope="session")
def fitted_survey(survey_data, tpb_spec):
    """설문 형태 자료의 MLM 적합 결과"""
    config = create_default_config(create_diagrams=False, save_results=False)
    return SEMAnalyzer(config).fit(survey_data, tpb_spec)


@pytest.fixture(scope="session")
def fitted_normal(normal_data, tpb_spec):
    config = create_default_config(create_diagrams=False, save_results=False)
    return SEMAnalyzer(config).fit(normal_data, tpb_spec)


@pytest.fixture(scope="session")
def fitted_heavy(heavy_tailed_data, tpb_spec):
    config = create_default_config(create_diagrams=False, save_results=False)
    return SEMAnalyzer(config).fit(heavy_tailed_data, tpb_spec)


@pytest.fixture(scope="session")
def fitted_ml(survey_data, tpb_spec):
    config = create_normal_theory_config(save_results=False)
    return SEMAnalyzer(config).fit(survey_data, tpb_spec)
