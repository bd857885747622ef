"""
SEM Results Exporter Module

보고서 테이블을 CSV 파일(utf-8-sig)로, 적합도와 실행 설정을 JSON 메타데이터로 저장합니다.
모든 파일은 같은 타임스탬프 기반 파일명 접두어를 공유합니다.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Any, Union
import json
import logging

import numpy as np
import pandas as pd

from .fit_evaluator import FitIndices

logger = logging.getLogger(__name__)


def _json_default(value):
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (np.floating,)):
        return None if np.isnan(value) else float(value)
    if isinstance(value, np.ndarray):
        return value.tolist()
    return str(value)


def _clean_nan(obj):
    """JSON에 NaN 대신 null 기록"""
    if isinstance(obj, dict):
        return {key: _clean_nan(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_clean_nan(value) for value in obj]
    if isinstance(obj, float) and np.isnan(obj):
        return None
    return obj


class SEMResultsExporter:
    """SEM 보고서 결과를 내보내는 클래스"""

    def __init__(self, output_dir: Union[str, Path] = None, prefix: str = "tpb_sem"):
        """
        Args:
            output_dir (Union[str, Path]): 결과 저장 디렉토리
            prefix (str): 파일명 접두어
        """
        self.output_dir = Path(output_dir) if output_dir is not None else Path("results")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.base_name = f"{prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

    def export_table(self, table: pd.DataFrame, name: str) -> Path:
        """
        DataFrame을 CSV로 저장

        Args:
            table (pd.DataFrame): 저장할 테이블
            name (str): 테이블 이름 (파일명 접미어)

        Returns:
            Path: 저장된 파일 경로
        """
        file_path = self.output_dir / f"{self.base_name}_{name}.csv"
        table.to_csv(file_path, index=False, encoding='utf-8-sig')
        logger.info(f"{name} 저장 완료: {file_path}")
        return file_path

    def export_fit_indices(self, indices: FitIndices,
                           interpretation: Optional[Dict[str, str]] = None) -> Path:
        """적합도 지수를 (지수, 값, 해석) 형태의 CSV로 저장"""
        interpretation = interpretation or {}
        fit_df = pd.DataFrame([
            {'Fit_Index': index_name, 'Value': value,
             'Interpretation': interpretation.get(index_name, '')}
            for index_name, value in indices.to_dict().items()
        ])
        return self.export_table(fit_df, 'fit_indices')

    def export_metadata(self, indices: FitIndices, settings: Dict[str, Any],
                        model_info: Optional[Dict[str, Any]] = None) -> Path:
        """적합도와 실행 설정을 JSON으로 저장"""
        metadata = {
            'created': datetime.now().isoformat(),
            'fit_indices': indices.to_dict(),
            'settings': settings,
            'model_info': model_info or {}
        }
        file_path = self.output_dir / f"{self.base_name}_metadata.json"
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(_clean_nan(metadata), f, indent=2, ensure_ascii=False, default=_json_default)
        logger.info(f"메타데이터 저장 완료: {file_path}")
        return file_path

    def export_report(self, text: str) -> Path:
        file_path = self.output_dir / f"{self.base_name}_report.md"
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(text)
        logger.info(f"보고서 저장 완료: {file_path}")
        return file_path

    def export_all(self, tables: Dict[str, pd.DataFrame], indices: FitIndices,
                   interpretation: Dict[str, str], settings: Dict[str, Any],
                   model_info: Optional[Dict[str, Any]] = None,
                   report_text: Optional[str] = None) -> Dict[str, Path]:
        """
        모든 결과 저장

        Returns:
            Dict[str, Path]: {이름: 파일 경로}
        """
        saved = {}
        for name, table in tables.items():
            if table is None or table.empty:
                logger.warning(f"빈 테이블은 저장하지 않습니다: {name}")
                continue
            saved[name] = self.export_table(table, name)

        saved['fit_indices'] = self.export_fit_indices(indices, interpretation)
        saved['metadata'] = self.export_metadata(indices, settings, model_info)
        if report_text:
            saved['report'] = self.export_report(report_text)

        logger.info(f"결과 저장 완료: {len(saved)}개 파일 ({self.output_dir})")
        return saved
