"""
SEM Analysis Core Module

semopy를 사용한 구조방정식모델 추정의 핵심 기능을 제공합니다.
semopy로 점추정치를 얻은 뒤 Satorra-Bentler 보정(MLM)으로 강건 표준오차와
척도화 카이제곱을 계산하여 읽기 전용 적합 결과(FittedSEM)를 만듭니다.
"""

from dataclasses import dataclass, field
import copy
from typing import Dict, List, Optional, Any, Union
import logging
import warnings

import numpy as np
import pandas as pd
from scipy import stats

# semopy 임포트
try:
    from semopy import Model
    from semopy.stats import calc_stats
except ImportError as e:
    logging.error("semopy 라이브러리를 찾을 수 없습니다. pip install semopy로 설치해주세요.")
    raise e

from .config import SEMReportConfig, create_default_config
from .model_builder import SEMModelSpec, parse_model_spec
from .model_matrices import ModelMatrices
from .robust_inference import SatorraBentlerCorrection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FittedSEM:
    """적합된 SEM 결과 (추정 후 변경 불가)"""

    spec: SEMModelSpec
    model_description: str
    estimator: str
    n_observations: int
    observed: List[str]
    latent: List[str]
    parameters: pd.DataFrame
    r_squared: pd.DataFrame
    sample_cov: np.ndarray
    implied_cov: np.ndarray
    gamma: np.ndarray
    chi2: float
    chi2_scaled: float
    scaling_factor: float
    df: int
    baseline: Dict[str, float]
    solver_info: Dict[str, Any]
    semopy_stats: Dict[str, float] = field(default_factory=dict)
    model: Any = None

    def __post_init__(self):
        for matrix in (self.sample_cov, self.implied_cov, self.gamma):
            matrix.setflags(write=False)

    @property
    def robust(self) -> bool:
        return self.estimator == 'MLM'

    def estimates(self) -> np.ndarray:
        """자유모수 점추정치 벡터"""
        free = self.parameters[self.parameters['Free']]
        return free['Estimate'].to_numpy(dtype=float)


class SEMAnalyzer:
    """semopy 기반 SEM 추정 클래스"""

    def __init__(self, config: Optional[SEMReportConfig] = None):
        """
        SEM Analyzer 초기화

        Args:
            config (Optional[SEMReportConfig]): 분석 설정
        """
        self.config = config if config is not None else create_default_config()
        self.model = None
        self.fitted = False

    def fit(self, data: pd.DataFrame, spec: Union[SEMModelSpec, str]) -> FittedSEM:
        """
        모델을 적합하고 강건 추론 결과를 반환

        Args:
            data (pd.DataFrame): 관측행렬
            spec (Union[SEMModelSpec, str]): 모델 스펙 또는 모델 문법 텍스트

        Returns:
            FittedSEM: 적합 결과
        """
        if isinstance(spec, str):
            spec = parse_model_spec(spec)
        description = spec.to_semopy()

        observed = spec.indicators
        missing = [col for col in observed if col not in data.columns]
        if missing:
            raise ValueError(f"데이터에 없는 지표 변수: {missing}")
        clean_data = data[observed]
        if clean_data.isnull().values.any():
            raise ValueError("결측치가 있는 관측행렬은 추정할 수 없습니다 (listwise 삭제를 사용하세요)")

        logger.info(f"SEM 추정 시작 (estimator={self.config.estimator}, "
                    f"solver={self.config.optimizer}, N={len(clean_data)})")

        try:
            self.model = Model(description)

            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                result = self.model.fit(
                    clean_data,
                    obj=self.config.objective,
                    solver=self.config.optimizer
                )
        except Exception as e:
            logger.error(f"모델 적합 중 오류 발생: {e}")
            raise

        solver_info = self._solver_info(result)
        if not solver_info.get('success', True):
            raise RuntimeError(f"SEM 추정이 수렴하지 않았습니다: {solver_info.get('message', '')}")

        self.fitted = True
        fitted = self._build_result(clean_data, spec, description, solver_info)
        logger.info("SEM 추정 완료")
        return fitted

    def _solver_info(self, result) -> Dict[str, Any]:
        """semopy SolverResult에서 최적화 진단 정보 추출"""
        info = {}
        for attr in ['success', 'message', 'n_it', 'fun']:
            if hasattr(result, attr):
                value = getattr(result, attr)
                if isinstance(value, (np.bool_, np.integer, np.floating)):
                    value = value.item()
                info[attr] = value

        if self.config.verbose:
            logger.info("SEM 최적화 완료:")
            if 'n_it' in info:
                logger.info(f"  반복 횟수: {info['n_it']}")
            if 'fun' in info:
                logger.info(f"  목적함수 값: {info['fun']:.6f}")
            if 'success' in info:
                logger.info(f"  수렴 여부: {info['success']}")
            if 'message' in info:
                logger.info(f"  메시지: {info['message']}")
        return info

    def _build_result(self, clean_data: pd.DataFrame, spec: SEMModelSpec,
                      description: str, solver_info: Dict[str, Any]) -> FittedSEM:
        """파라미터 테이블을 읽어 강건 추론 결과 구성"""
        params = self.model.inspect()
        matrices = ModelMatrices(params, list(clean_data.columns))
        theta = matrices.theta_hat

        df = matrices.degrees_of_freedom
        if df < 0:
            raise ValueError(f"모형이 식별되지 않습니다 (자유도 {df})")

        sigma = matrices.implied_cov(theta)
        try:
            np.linalg.cholesky(sigma)
        except np.linalg.LinAlgError:
            raise RuntimeError("모형 내재 공분산 행렬이 양정치가 아닙니다")

        heywood = matrices.negative_variances(theta)
        if heywood:
            logger.warning(f"음수 분산 추정치(Heywood case): {heywood}")

        correction = SatorraBentlerCorrection(clean_data.to_numpy(dtype=float),
                                              robust=self.config.robust)
        delta = matrices.sigma_jacobian(theta)
        test = correction.compute(sigma, delta, df)

        parameters = self._parameter_table(matrices, theta, test['vcov'])

        return FittedSEM(
            spec=copy.deepcopy(spec),
            model_description=description,
            estimator=self.config.estimator,
            n_observations=len(clean_data),
            observed=list(matrices.observed),
            latent=list(matrices.latent),
            parameters=parameters,
            r_squared=matrices.r_squared(theta),
            sample_cov=correction.sample_cov,
            implied_cov=test['sigma_ml'],
            gamma=correction.gamma,
            chi2=test['chi2'],
            chi2_scaled=test['chi2_scaled'],
            scaling_factor=test['scaling_factor'],
            df=df,
            baseline=correction.baseline(),
            solver_info=solver_info,
            semopy_stats=self._semopy_stats(),
            model=self.model
        )

    def _parameter_table(self, matrices: ModelMatrices, theta: np.ndarray,
                         vcov: np.ndarray) -> pd.DataFrame:
        """비표준화/표준화 추정치, 표준오차, 신뢰구간 테이블"""
        z_crit = stats.norm.ppf(1 - (1 - self.config.confidence_level) / 2)
        table = matrices.table.rename(columns={'free': 'Free'}).copy()

        se = np.full(len(table), np.nan)
        se[matrices.free_index] = np.sqrt(np.clip(np.diag(vcov), 0, None))
        table['SE'] = se

        std_est = matrices.standardize(theta)
        jac = matrices.standardized_jacobian(theta, self.config.jacobian_step)
        std_var = np.einsum('ij,jk,ik->i', jac, vcov, jac)
        std_se = np.sqrt(np.clip(std_var, 0, None))

        table['Est_Std'] = std_est
        table['SE_Std'] = std_se

        with np.errstate(divide='ignore', invalid='ignore'):
            table['Z_value'] = np.where(se > 0, table['Estimate'] / se, np.nan)
            table['Z_Std'] = np.where(std_se > 1e-8, std_est / std_se, np.nan)

        table['P_value'] = 2 * stats.norm.sf(np.abs(table['Z_value']))
        table['P_Std'] = 2 * stats.norm.sf(np.abs(table['Z_Std']))
        table['CI_Lower'] = std_est - z_crit * std_se
        table['CI_Upper'] = std_est + z_crit * std_se

        return table

    def _semopy_stats(self) -> Dict[str, float]:
        """semopy calc_stats의 보조 적합도 (GFI, AGFI, AIC, BIC)"""
        formatted = {}
        try:
            fit_stats = calc_stats(self.model)
        except Exception as e:
            logger.warning(f"semopy 적합도 계산 실패: {e}")
            return formatted

        for index in ['GFI', 'AGFI', 'AIC', 'BIC']:
            if index in fit_stats:
                value = fit_stats[index]
                # pandas Series인 경우 첫 번째 값 추출
                if hasattr(value, 'iloc'):
                    value = value.iloc[0]
                formatted[index] = float(value)
        return formatted


def fit_sem_model(data: pd.DataFrame, spec: Union[SEMModelSpec, str],
                  config: Optional[SEMReportConfig] = None) -> FittedSEM:
    """
    SEM 추정 편의 함수

    Args:
        data (pd.DataFrame): 관측행렬
        spec (Union[SEMModelSpec, str]): 모델 스펙
        config (Optional[SEMReportConfig]): 분석 설정

    Returns:
        FittedSEM: 적합 결과
    """
    return SEMAnalyzer(config).fit(data, spec)
