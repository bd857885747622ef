"""
SEM Path Diagram Visualizer Module

semopy 내장 semplot(graphviz)으로 경로 다이어그램을 생성합니다.
- 비표준화 추정치 다이어그램
- 표준화 추정치 다이어그램
Graphviz 실행 파일이 없으면 파라미터 테이블로 만든 DOT 소스만 저장합니다.
"""

from pathlib import Path
from typing import Dict, Optional, Union
import logging
import shutil

try:
    from semopy import semplot
except ImportError as e:
    logging.error("semopy 라이브러리를 찾을 수 없습니다. pip install semopy로 설치해주세요.")
    raise e

import graphviz

from .sem_analyzer import FittedSEM

logger = logging.getLogger(__name__)


def graphviz_executable_available() -> bool:
    return shutil.which('dot') is not None


class SEMPathDiagramVisualizer:
    """SEM 경로 다이어그램 생성 클래스"""

    def __init__(self, output_dir: Union[str, Path] = "results", image_format: str = "png",
                 engine: str = "dot", latshape: str = "circle"):
        """
        Args:
            output_dir (Union[str, Path]): 다이어그램 저장 디렉토리
            image_format (str): 이미지 형식 ('png', 'svg', 'pdf')
            engine (str): graphviz 엔진
            latshape (str): 잠재변수 모양
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.image_format = image_format
        self.engine = engine
        self.latshape = latshape

    def build_digraph(self, fitted: FittedSEM, standardized: bool = True) -> graphviz.Digraph:
        """
        파라미터 테이블로부터 graphviz 다이어그램 구성

        잠재변수는 원, 관측변수는 사각형, 외생 잠재변수 간 상관은 양방향 점선으로 표시합니다.
        """
        column = 'Est_Std' if standardized else 'Estimate'
        graph = graphviz.Digraph(engine=self.engine)
        graph.attr(rankdir='LR')

        for latent in fitted.latent:
            graph.node(latent, shape=self.latshape)
        for indicator in fitted.observed:
            graph.node(indicator, shape='box')

        params = fitted.parameters
        for _, row in params.iterrows():
            label = f"{row[column]:.3f}"
            if row['kind'] in ('loading', 'regression'):
                graph.edge(row['rval'], row['lval'], label=label)
            elif row['kind'] == 'latent_cov' and row['lval'] != row['rval']:
                graph.edge(row['lval'], row['rval'], label=label,
                           dir='both', style='dashed')
        return graph

    def create_diagram(self, fitted: FittedSEM, name: str,
                       standardized: bool = True) -> Optional[Path]:
        """
        단일 경로 다이어그램 생성

        Args:
            fitted (FittedSEM): 적합 결과
            name (str): 파일명 (확장자 제외)
            standardized (bool): 표준화 추정치 표시 여부

        Returns:
            Optional[Path]: 생성된 파일 경로 (실패 시 None)
        """
        target = self.output_dir / f"{name}.{self.image_format}"

        if not graphviz_executable_available():
            logger.warning("Graphviz 실행 파일(dot)을 찾을 수 없습니다. DOT 파일만 생성합니다.")
            dot_file = self.output_dir / f"{name}.dot"
            try:
                with open(dot_file, 'w', encoding='utf-8') as f:
                    f.write(self.build_digraph(fitted, standardized).source)
            except OSError as e:
                logger.warning(f"DOT 파일 생성 실패: {e}")
                return None
            logger.info(f"DOT 파일 생성 완료: {dot_file}")
            return dot_file

        try:
            semplot(fitted.model, str(target),
                    plot_covs=True,
                    std_ests=standardized,
                    engine=self.engine,
                    latshape=self.latshape)
        except Exception as e:
            logger.warning(f"semplot 다이어그램 생성 실패 ({name}): {e}")
            return None

        logger.info(f"SEM 다이어그램 생성 완료: {target}")
        return target

    def create_diagrams(self, fitted: FittedSEM, prefix: str = "tpb_sem") -> Dict[str, Path]:
        """
        비표준화/표준화 다이어그램 생성

        Returns:
            Dict[str, Path]: 생성된 다이어그램 {종류: 경로}
        """
        diagrams = {}
        for key, standardized in [('unstandardized', False), ('standardized', True)]:
            path = self.create_diagram(fitted, f"{prefix}_{key}", standardized)
            if path is not None:
                diagrams[key] = path
        logger.info(f"다이어그램 {len(diagrams)}개 생성")
        return diagrams
