"""
Parameter Reporter Module

적합 결과(FittedSEM)로부터 보고용 테이블을 만듭니다.
- 측정모형: 표준화 요인부하량과 신뢰구간
- 구조모형: 잠재변수 간 경로계수
- R²: 경로가 들어오는 모든 변수
- 외생 잠재변수 간 상관
- 신뢰도 (Alpha, CR, AVE)

측정/구조/상관 테이블의 SE, Z_value, P_value, CI는 모두 표준화 추정치에 대한 값입니다.
비표준화 추정치와 검정 결과는 Estimate, SE_Unstd, Z_Unstd, P_Unstd 열에 함께 둡니다.
"""

from typing import Optional
import logging

import pandas as pd

from .sem_analyzer import FittedSEM
from .reliability_calculator import ReliabilityCalculator

logger = logging.getLogger(__name__)

REPORT_COLUMNS = ['Std_Estimate', 'CI_Lower', 'CI_Upper', 'SE', 'Z_value', 'P_value',
                  'Significant', 'Estimate', 'SE_Unstd', 'Z_Unstd', 'P_Unstd']


class ParameterReporter:
    """파라미터 보고 테이블 생성 클래스"""

    def __init__(self, fitted: FittedSEM, data: Optional[pd.DataFrame] = None,
                 alpha: float = 0.05):
        """
        Args:
            fitted (FittedSEM): 적합 결과
            data (Optional[pd.DataFrame]): 원시 지표 데이터 (크론바흐 알파용)
            alpha (float): 유의수준
        """
        self.fitted = fitted
        self.data = data
        self.alpha = alpha

    def _rows(self, kind: str) -> pd.DataFrame:
        params = self.fitted.parameters
        rows = params[params['kind'] == kind].copy()
        rows = rows.rename(columns={
            'SE': 'SE_Unstd', 'Z_value': 'Z_Unstd', 'P_value': 'P_Unstd'
        })
        rows = rows.rename(columns={
            'Est_Std': 'Std_Estimate', 'SE_Std': 'SE', 'Z_Std': 'Z_value', 'P_Std': 'P_value'
        })
        rows['Significant'] = rows['P_value'] < self.alpha
        return rows

    def measurement_table(self) -> pd.DataFrame:
        """
        측정모형 테이블 (지표당 1행)

        마커 지표(고정 부하량 1)는 비표준화 SE, z, p가 NaN이지만
        표준화 부하량의 SE, z, p는 델타법으로 계산됩니다.
        """
        rows = self._rows('loading')
        table = rows.rename(columns={'rval': 'Latent', 'lval': 'Indicator'})
        table = table[['Latent', 'Indicator'] + REPORT_COLUMNS]
        table = table.rename(columns={'Std_Estimate': 'Std_Loading'})
        return table.reset_index(drop=True)

    def structural_table(self) -> pd.DataFrame:
        """구조모형 경로 테이블 (예측변수 -> 결과변수)"""
        rows = self._rows('regression')
        table = rows.rename(columns={'rval': 'From', 'lval': 'To'})
        table = table[['From', 'To'] + REPORT_COLUMNS]
        return table.reset_index(drop=True)

    def r_squared_table(self) -> pd.DataFrame:
        return self.fitted.r_squared.copy()

    def covariance_table(self) -> pd.DataFrame:
        """외생 잠재변수 간 상관 (표준화 공분산)"""
        exogenous = set(self.fitted.spec.exogenous)
        rows = self._rows('latent_cov')
        rows = rows[(rows['lval'] != rows['rval'])
                    & rows['lval'].isin(exogenous) & rows['rval'].isin(exogenous)]
        table = rows.rename(columns={'lval': 'Variable_1', 'rval': 'Variable_2',
                                     'Std_Estimate': 'Correlation'})
        table = table[['Variable_1', 'Variable_2', 'Correlation'] + REPORT_COLUMNS[1:]]
        return table.reset_index(drop=True)

    def variance_table(self) -> pd.DataFrame:
        """잔차 및 잠재변수 분산 추정치"""
        params = self.fitted.parameters
        rows = params[(params['op'] == '~~') & (params['lval'] == params['rval'])].copy()
        table = rows[['lval', 'kind', 'Estimate', 'SE', 'Est_Std', 'P_value']]
        return table.rename(columns={'lval': 'Variable', 'kind': 'Type',
                                     'Est_Std': 'Std_Estimate'}).reset_index(drop=True)

    def reliability_table(self) -> pd.DataFrame:
        return ReliabilityCalculator(self.fitted.parameters, self.data).calculate()
