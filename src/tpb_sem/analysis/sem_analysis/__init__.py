"""
Structural Equation Modeling Module using semopy

semopy로 점추정치를 얻고 Satorra-Bentler 보정으로 강건 추론을 수행합니다.

주요 기능:
1. 설문 데이터 로딩 및 모델 정의
2. MLM 추정 (강건 표준오차, 척도화 카이제곱)
3. 적합도 평가 (RMSEA, CFI, TLI, SRMR)
4. 측정/구조모형 테이블, R², 신뢰도
5. 결과 저장, 경로 다이어그램, 보고서
"""

from .config import (
    SEMReportConfig,
    create_default_config,
    create_normal_theory_config,
    list_estimators
)
from .data_loader import (
    SurveyDataLoader,
    describe_indicators,
    load_survey_data,
    restore_column_names,
    sanitize_column_name
)
from .model_builder import (
    SEMModelSpec,
    SEMModelBuilder,
    create_tpb_model_spec,
    parse_model_spec
)
from .model_matrices import ModelMatrices
from .robust_inference import SatorraBentlerCorrection
from .sem_analyzer import (
    FittedSEM,
    SEMAnalyzer,
    fit_sem_model
)
from .fit_evaluator import (
    FitIndices,
    FitEvaluator,
    evaluate_fit,
    interpret_fit
)
from .parameter_reporter import ParameterReporter
from .reliability_calculator import ReliabilityCalculator
from .results_exporter import SEMResultsExporter
from .visualizer import SEMPathDiagramVisualizer
from .report_writer import SEMReportWriter
from .pipeline import (
    SEMReportPipeline,
    run_sem_report
)

__all__ = [
    # Configuration
    'SEMReportConfig',
    'create_default_config',
    'create_normal_theory_config',
    'list_estimators',

    # Data
    'SurveyDataLoader',
    'describe_indicators',
    'load_survey_data',
    'restore_column_names',
    'sanitize_column_name',

    # Model
    'SEMModelSpec',
    'SEMModelBuilder',
    'create_tpb_model_spec',
    'parse_model_spec',
    'ModelMatrices',

    # Estimation
    'SatorraBentlerCorrection',
    'FittedSEM',
    'SEMAnalyzer',
    'fit_sem_model',

    # Fit and parameters
    'FitIndices',
    'FitEvaluator',
    'evaluate_fit',
    'interpret_fit',
    'ParameterReporter',
    'ReliabilityCalculator',

    # Output
    'SEMResultsExporter',
    'SEMPathDiagramVisualizer',
    'SEMReportWriter',
    'SEMReportPipeline',
    'run_sem_report'
]
