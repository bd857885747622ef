"""
SEM Report Writer Module

분석 결과를 일반 텍스트 보고서로 작성합니다.
"""

from datetime import datetime
from typing import Dict, Any, List
import logging

import numpy as np
import pandas as pd

from .fit_evaluator import FitIndices
from .data_loader import restore_column_names

logger = logging.getLogger(__name__)

RULE = "=" * 80
SUBRULE = "-" * 40


def _fmt(value, digits: int = 3) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return "NA"
    return f"{value:.{digits}f}"


def _p(value) -> str:
    if value is None or np.isnan(value):
        return "NA"
    return "< .001" if value < 0.001 else f"{value:.3f}"


def _table_text(table: pd.DataFrame) -> str:
    if table is None or table.empty:
        return "(결과 없음)"
    return table.to_string(index=False, float_format=lambda v: f"{v:.3f}")


class SEMReportWriter:
    """SEM 분석 보고서 작성 클래스"""

    def __init__(self, title: str = "TPB 금욕 의도 구조방정식모형 분석 보고서"):
        self.title = title

    def fit_section(self, indices: FitIndices, interpretation: Dict[str, str]) -> List[str]:
        lines = [
            f"척도화 카이제곱 (Satorra-Bentler): χ²({indices.df}) = {_fmt(indices.chi2_scaled)}, "
            f"p = {_p(indices.p_value)}",
            f"ML 카이제곱: {_fmt(indices.chi2)}, 척도화 계수 c = {_fmt(indices.scaling_factor, 4)}",
            f"RMSEA = {_fmt(indices.rmsea)} [{_fmt(indices.rmsea_ci_lower)}, "
            f"{_fmt(indices.rmsea_ci_upper)}], p-close = {_p(indices.rmsea_pvalue)} "
            f"({interpretation.get('rmsea', 'NA')})",
            f"RMSEA (robust) = {_fmt(indices.rmsea_robust)}",
            f"CFI = {_fmt(indices.cfi)} ({interpretation.get('cfi', 'NA')}), "
            f"CFI (ML) = {_fmt(indices.cfi_ml)}, CFI (robust) = {_fmt(indices.cfi_robust)}",
            f"TLI = {_fmt(indices.tli)} ({interpretation.get('tli', 'NA')})",
            f"SRMR = {_fmt(indices.srmr)} ({interpretation.get('srmr', 'NA')})",
            f"독립모형: χ²({indices.baseline_df}) = {_fmt(indices.baseline_chi2)}"
        ]
        for key, value in indices.extra.items():
            lines.append(f"{key} = {_fmt(value)}")
        return lines

    def path_summary(self, structural: pd.DataFrame) -> List[str]:
        """구조경로 해석 문장"""
        lines = []
        for _, row in structural.iterrows():
            verdict = "유의함" if row['Significant'] else "유의하지 않음"
            lines.append(
                f"{row['From']} → {row['To']}: β = {_fmt(row['Std_Estimate'])} "
                f"[{_fmt(row['CI_Lower'])}, {_fmt(row['CI_Upper'])}], "
                f"z = {_fmt(row['Z_value'], 2)}, p = {_p(row['P_value'])} ({verdict})"
            )
        return lines

    def render(self, results: Dict[str, Any]) -> str:
        """
        보고서 텍스트 생성

        Args:
            results (Dict[str, Any]): 파이프라인 결과
                (n_observations, estimator, normality, fit_indices, fit_interpretation,
                 measurement, structural, r_squared, covariances, reliability,
                 column_map: 선택, 보고서에 원래 설문 컬럼명을 표시)

        Returns:
            str: 보고서 텍스트
        """
        normality = results['normality']
        column_map = results.get('column_map', {})

        def table(value: pd.DataFrame) -> str:
            return _table_text(restore_column_names(value, column_map))

        sections = [
            RULE,
            self.title,
            RULE,
            f"생성 일시: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"표본 크기: N = {results['n_observations']}",
            f"추정 방법: {results['estimator']}",
            "",
            "1. 정규성 검정",
            SUBRULE,
            table(normality.univariate),
            "",
            _table_text(normality.multivariate),
            "",
            f"다변량 정규성: {'충족' if normality.multivariate_normal else '위배'}"
            f" (비정규 지표 {len(normality.non_normal_indicators)}개)",
            "",
            "2. 모형 적합도",
            SUBRULE,
            *self.fit_section(results['fit_indices'], results['fit_interpretation']),
            "",
            "3. 측정모형 (표준화 요인부하량)",
            SUBRULE,
            table(results['measurement']),
            "",
            "4. 구조모형",
            SUBRULE,
            _table_text(results['structural']),
            "",
            *self.path_summary(results['structural']),
            "",
            "5. 외생 잠재변수 간 상관",
            SUBRULE,
            _table_text(results['covariances']),
            "",
            "6. 설명된 분산 (R²)",
            SUBRULE,
            table(results['r_squared']),
            "",
            "7. 신뢰도 및 수렴타당도",
            SUBRULE,
            _table_text(results['reliability']),
            "",
            RULE
        ]
        logger.info("보고서 작성 완료")
        return "\n".join(sections) + "\n"
