"""
Survey Data Loader Module

이 모듈은 설문 응답 CSV 파일을 불러와 SEM 분석용 관측행렬로 정리합니다.
모델 문법에서 사용할 수 있도록 컬럼명을 식별자 형태로 변환합니다
(예: sex.fool -> sex_fool).
"""

import re
import pandas as pd
from pathlib import Path
from typing import Dict, List, Optional, Union
import logging

logger = logging.getLogger(__name__)


_INVALID_CHARS = re.compile(r'[^0-9A-Za-z_]')


def sanitize_column_name(name: str) -> str:
    """컬럼명을 semopy 모델 문법에서 사용 가능한 식별자로 변환"""
    clean = _INVALID_CHARS.sub('_', str(name).strip())
    if clean and clean[0].isdigit():
        clean = f"v_{clean}"
    return clean


class SurveyDataLoader:
    """설문 응답 CSV 파일을 로딩하는 클래스"""

    def __init__(self, data_path: Union[str, Path], separator: str = ',',
                 missing_data_method: str = 'listwise'):
        """
        Survey Data Loader 초기화

        Args:
            data_path (Union[str, Path]): 설문 데이터 CSV 경로
            separator (str): 구분자
            missing_data_method (str): 결측치 처리 방법 ('listwise', 'none')
        """
        self.data_path = Path(data_path)
        self.separator = separator
        self.missing_data_method = missing_data_method
        self.column_map: Dict[str, str] = {}
        self.raw_data: Optional[pd.DataFrame] = None
        self.n_dropped = 0

    def read_raw(self) -> pd.DataFrame:
        """
        원본 CSV를 읽고 컬럼명을 정리

        Returns:
            pd.DataFrame: 컬럼명이 변환된 원본 데이터
        """
        if not self.data_path.exists():
            raise FileNotFoundError(f"데이터 파일을 찾을 수 없습니다: {self.data_path}")

        df = pd.read_csv(self.data_path, sep=self.separator, encoding='utf-8-sig')
        logger.info(f"데이터 로딩 완료: {self.data_path.name} {df.shape}")

        self.column_map = {sanitize_column_name(col): col for col in df.columns}
        df.columns = list(self.column_map.keys())

        renamed = {new: old for new, old in self.column_map.items() if new != old}
        if renamed:
            logger.debug(f"컬럼명 변환: {renamed}")

        self.raw_data = df
        return df

    def load(self, indicators: List[str]) -> pd.DataFrame:
        """
        분석에 필요한 지표 컬럼만 모델 순서대로 선택

        Args:
            indicators (List[str]): 지표 변수명 (변환된 식별자)

        Returns:
            pd.DataFrame: 관측행렬 (행: 응답자, 열: 지표)
        """
        df = self.read_raw() if self.raw_data is None else self.raw_data

        missing = [col for col in indicators if col not in df.columns]
        if missing:
            raise ValueError(f"데이터에 없는 지표 변수: {missing} (사용 가능: {list(df.columns)})")

        data = df[indicators].copy()

        if self.missing_data_method == 'listwise':
            n_before = len(data)
            data = data.dropna()
            self.n_dropped = n_before - len(data)
            if self.n_dropped > 0:
                logger.warning(f"결측치가 있는 {self.n_dropped}개 응답 제거 (listwise)")
        else:
            n_missing = int(data.isnull().sum().sum())
            if n_missing > 0:
                logger.warning(f"{n_missing}개의 결측치가 그대로 추정에 전달됩니다")

        logger.info(f"관측행렬 준비 완료: 응답자 {len(data)}명, 지표 {len(indicators)}개")
        return data

    def original_name(self, column: str) -> str:
        """변환된 컬럼명에 대응하는 원래 컬럼명 반환"""
        return self.column_map.get(column, column)

    def indicator_names(self, indicators: List[str]) -> Dict[str, str]:
        """지표별 {변환된 이름: 원래 이름} (이름이 바뀐 지표만)"""
        return {col: self.original_name(col) for col in indicators
                if self.original_name(col) != col}


def restore_column_names(table: pd.DataFrame, column_map: Dict[str, str]) -> pd.DataFrame:
    """
    보고용 테이블의 변수명 값을 원래 설문 컬럼명으로 되돌림

    Args:
        table (pd.DataFrame): 보고 테이블 (Indicator, Variable, lval 등 문자열 열)
        column_map (Dict[str, str]): {변환된 이름: 원래 이름}

    Returns:
        pd.DataFrame: 변수명이 바뀐 사본
    """
    restored = table.copy()
    if not column_map:
        return restored
    for column in restored.columns:
        if (pd.api.types.is_object_dtype(restored[column])
                or pd.api.types.is_string_dtype(restored[column])):
            restored[column] = restored[column].map(lambda value: column_map.get(value, value))
    return restored


def describe_indicators(data: pd.DataFrame) -> pd.DataFrame:
    """
    지표별 기술통계 (왜도, 첨도 포함)

    Args:
        data (pd.DataFrame): 관측행렬

    Returns:
        pd.DataFrame: 지표별 n, 평균, 표준편차, 최소, 최대, 왜도, 초과첨도
    """
    desc = pd.DataFrame({
        'n': data.count(),
        'mean': data.mean(),
        'sd': data.std(ddof=1),
        'min': data.min(),
        'max': data.max(),
        'skewness': data.skew(),
        'kurtosis': data.kurtosis()
    })
    desc.index.name = 'Indicator'
    return desc.reset_index()


def load_survey_data(data_path: Union[str, Path], indicators: List[str],
                     separator: str = ',', missing_data_method: str = 'listwise') -> pd.DataFrame:
    """
    설문 데이터를 로딩하는 편의 함수

    Args:
        data_path (Union[str, Path]): CSV 경로
        indicators (List[str]): 지표 변수명
        separator (str): 구분자
        missing_data_method (str): 결측치 처리 방법

    Returns:
        pd.DataFrame: 관측행렬
    """
    loader = SurveyDataLoader(data_path, separator, missing_data_method)
    return loader.load(indicators)
