"""
SEM Report Configuration Module

구조방정식 보고서 파이프라인을 위한 설정 클래스와 유틸리티 함수들을 제공합니다.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


VALID_ESTIMATORS = ['MLM', 'ML']
VALID_OPTIMIZERS = ['SLSQP', 'L-BFGS-B', 'trust-constr']
VALID_MISSING_METHODS = ['listwise', 'none']


@dataclass
class SEMReportConfig:
    """SEM 보고서 설정 클래스"""

    # 데이터 설정
    data_path: str = "data/abstinence_survey.csv"
    separator: str = ','
    missing_data_method: str = 'listwise'  # listwise, none

    # 추정 방법
    estimator: str = 'MLM'  # MLM (Satorra-Bentler), ML
    optimizer: str = 'SLSQP'  # SLSQP, L-BFGS-B, trust-constr
    objective: str = 'MLW'  # semopy 목적함수

    # 검정 설정
    alpha: float = 0.05
    confidence_level: float = 0.95
    rmsea_confidence_level: float = 0.90
    rmsea_close_fit: float = 0.05

    # 표준화 해 델타법 수치미분 스텝
    jacobian_step: float = 1e-6

    # 결과 저장 설정
    save_results: bool = True
    results_dir: str = "results"
    archive_previous: bool = True

    # 가시화 설정
    create_diagrams: bool = True
    diagram_format: str = 'png'  # png, pdf, svg

    # 로깅 설정
    verbose: bool = True
    log_level: str = 'INFO'

    # 해석 기준 (Hu & Bentler)
    fit_thresholds: Dict[str, float] = field(default_factory=lambda: {
        'cfi': 0.95,
        'cfi_acceptable': 0.90,
        'tli': 0.95,
        'tli_acceptable': 0.90,
        'rmsea': 0.06,
        'rmsea_acceptable': 0.08,
        'srmr': 0.08,
        'srmr_acceptable': 0.10
    })

    def __post_init__(self):
        """설정 검증"""
        self._validate_estimator()
        self._validate_optimizer()
        self._validate_levels()

        if self.missing_data_method not in VALID_MISSING_METHODS:
            raise ValueError(f"missing_data_method는 {VALID_MISSING_METHODS} 중 하나여야 합니다.")

    def _validate_estimator(self):
        """추정방법 검증"""
        if self.estimator not in VALID_ESTIMATORS:
            raise ValueError(f"estimator는 {VALID_ESTIMATORS} 중 하나여야 합니다.")

    def _validate_optimizer(self):
        """최적화 방법 검증"""
        if self.optimizer not in VALID_OPTIMIZERS:
            raise ValueError(f"optimizer는 {VALID_OPTIMIZERS} 중 하나여야 합니다.")

    def _validate_levels(self):
        """유의수준 및 신뢰수준 검증"""
        for name in ['alpha', 'confidence_level', 'rmsea_confidence_level']:
            value = getattr(self, name)
            if not 0 < value < 1:
                raise ValueError(f"{name}는 0과 1 사이여야 합니다: {value}")

        if self.jacobian_step <= 0:
            raise ValueError("jacobian_step은 양수여야 합니다.")

    @property
    def robust(self) -> bool:
        """Satorra-Bentler 보정 사용 여부"""
        return self.estimator == 'MLM'

    @property
    def results_path(self) -> Path:
        return Path(self.results_dir)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def create_default_config(**kwargs) -> SEMReportConfig:
    """
    기본 SEM 보고서 설정 생성

    Args:
        **kwargs: 설정 오버라이드

    Returns:
        SEMReportConfig: 설정 객체
    """
    return SEMReportConfig(**kwargs)


def create_normal_theory_config(**kwargs) -> SEMReportConfig:
    """
    정규이론 ML 추정용 설정 생성 (비교 분석용)

    Args:
        **kwargs: 설정 오버라이드

    Returns:
        SEMReportConfig: ML 추정 설정
    """
    defaults = {
        'estimator': 'ML',
        'create_diagrams': False
    }

    merged_kwargs = {**defaults, **kwargs}
    return SEMReportConfig(**merged_kwargs)


def list_estimators() -> List[str]:
    """사용 가능한 추정방법 목록 반환"""
    return list(VALID_ESTIMATORS)
