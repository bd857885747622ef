"""
SEM Report Pipeline Module

데이터 로딩부터 보고서 저장까지 전체 분석 흐름을 실행합니다.
    로딩 → 정규성 검정 → MLM 추정 → 적합도 → 파라미터 테이블 → 저장/다이어그램/보고서
"""

from typing import Dict, Optional, Any, Union
import logging

import pandas as pd

from .config import SEMReportConfig, create_default_config
from .data_loader import SurveyDataLoader, describe_indicators, restore_column_names
from .model_builder import SEMModelSpec, create_tpb_model_spec, parse_model_spec
from .sem_analyzer import SEMAnalyzer
from .fit_evaluator import FitEvaluator, interpret_fit
from .parameter_reporter import ParameterReporter
from .results_exporter import SEMResultsExporter
from .visualizer import SEMPathDiagramVisualizer
from .report_writer import SEMReportWriter
from ..normality import NormalityAssessor
from ...utils.results_manager import ResultsManager

logger = logging.getLogger(__name__)

ANALYSIS_TYPE = "sem_report"


class SEMReportPipeline:
    """TPB SEM 보고서 파이프라인"""

    def __init__(self, config: Optional[SEMReportConfig] = None,
                 spec: Optional[Union[SEMModelSpec, str]] = None):
        """
        Args:
            config (Optional[SEMReportConfig]): 분석 설정
            spec (Optional[Union[SEMModelSpec, str]]): 모델 스펙 (기본: TPB 모델)
        """
        self.config = config if config is not None else create_default_config()
        if spec is None:
            spec = create_tpb_model_spec()
        elif isinstance(spec, str):
            spec = parse_model_spec(spec)
        self.spec = spec

    def analyze(self, data: pd.DataFrame) -> Dict[str, Any]:
        """
        관측행렬에 대한 전체 분석 (저장 없음)

        Args:
            data (pd.DataFrame): 관측행렬

        Returns:
            Dict[str, Any]: 분석 결과
        """
        missing = [col for col in self.spec.indicators if col not in data.columns]
        if missing:
            raise ValueError(f"데이터에 없는 지표 변수: {missing}")
        data = data[self.spec.indicators]

        logger.info("1단계: 정규성 검정")
        normality = NormalityAssessor(self.config.alpha).assess(data)
        if not normality.multivariate_normal:
            logger.info("다변량 정규성 위배: 강건(MLM) 추정 결과를 해석에 사용합니다")

        logger.info("2단계: SEM 추정")
        fitted = SEMAnalyzer(self.config).fit(data, self.spec)

        logger.info("3단계: 적합도 평가")
        indices = FitEvaluator(self.config.rmsea_confidence_level,
                               self.config.rmsea_close_fit).evaluate(fitted)
        interpretation = interpret_fit(indices, self.config.fit_thresholds, self.config.alpha)

        logger.info("4단계: 파라미터 테이블")
        reporter = ParameterReporter(fitted, data, self.config.alpha)

        return {
            'n_observations': fitted.n_observations,
            'estimator': fitted.estimator,
            'descriptives': describe_indicators(data),
            'normality': normality,
            'fitted': fitted,
            'fit_indices': indices,
            'fit_interpretation': interpretation,
            'measurement': reporter.measurement_table(),
            'structural': reporter.structural_table(),
            'r_squared': reporter.r_squared_table(),
            'covariances': reporter.covariance_table(),
            'variances': reporter.variance_table(),
            'reliability': reporter.reliability_table()
        }

    def save(self, results: Dict[str, Any]) -> Dict[str, Any]:
        """
        결과 파일, 다이어그램, 보고서 저장

        Returns:
            Dict[str, Any]: {이름: 파일 경로}
        """
        manager = ResultsManager(self.config.results_dir, (ANALYSIS_TYPE,))
        if self.config.archive_previous:
            manager.archive_current_results(ANALYSIS_TYPE, "새 실행 전 자동 아카이브")
        output_dir = manager.analysis_dir(ANALYSIS_TYPE)

        tables = {
            'descriptives': results['descriptives'],
            'normality_univariate': results['normality'].univariate,
            'normality_multivariate': results['normality'].multivariate,
            'measurement': results['measurement'],
            'structural': results['structural'],
            'r_squared': results['r_squared'],
            'covariances': results['covariances'],
            'variances': results['variances'],
            'reliability': results['reliability'],
            'parameters': results['fitted'].parameters
        }
        column_map = results.get('column_map', {})
        tables = {name: restore_column_names(table, column_map) for name, table in tables.items()}
        fitted = results['fitted']
        model_info = {
            'model_description': fitted.model_description,
            'n_observations': fitted.n_observations,
            'observed': fitted.observed,
            'latent': fitted.latent,
            'solver': fitted.solver_info,
            'original_column_names': column_map
        }

        exporter = SEMResultsExporter(output_dir)
        saved = exporter.export_all(tables, results['fit_indices'], results['fit_interpretation'],
                                    self.config.to_dict(), model_info, results.get('report'))

        if self.config.create_diagrams:
            try:
                visualizer = SEMPathDiagramVisualizer(output_dir, self.config.diagram_format)
                diagrams = visualizer.create_diagrams(fitted, prefix=exporter.base_name)
                saved.update({f"diagram_{key}": path for key, path in diagrams.items()})
            except Exception as e:
                logger.warning(f"다이어그램 생성 실패: {e}")

        manager.register_results(ANALYSIS_TYPE, saved, results['fit_indices'].to_dict())
        return saved

    def run(self) -> Dict[str, Any]:
        """
        설정된 CSV 파일에 대해 전체 파이프라인 실행

        Returns:
            Dict[str, Any]: 분석 결과 (report, saved_files 포함)
        """
        loader = SurveyDataLoader(self.config.data_path, self.config.separator,
                                  self.config.missing_data_method)
        data = loader.load(self.spec.indicators)

        results = self.analyze(data)
        results['n_dropped'] = loader.n_dropped
        results['column_map'] = loader.indicator_names(self.spec.indicators)
        results['report'] = SEMReportWriter().render(results)

        if self.config.save_results:
            results['saved_files'] = self.save(results)
        return results


def run_sem_report(config: Optional[SEMReportConfig] = None, **kwargs) -> Dict[str, Any]:
    """
    SEM 보고서 실행 편의 함수

    Args:
        config (Optional[SEMReportConfig]): 분석 설정
        **kwargs: 설정 오버라이드 (config가 None일 때)

    Returns:
        Dict[str, Any]: 분석 결과
    """
    if config is None:
        config = create_default_config(**kwargs)
    return SEMReportPipeline(config).run()
