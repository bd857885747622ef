"""
TPB SEM Report - 명령행 실행

설문 CSV에 대해 정규성 검정, MLM 추정, 적합도 평가, 파라미터 보고서를 생성합니다.
"""

import sys
import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .analysis.sem_analysis.config import (
    SEMReportConfig,
    VALID_ESTIMATORS,
    VALID_OPTIMIZERS,
    VALID_MISSING_METHODS
)
from .analysis.sem_analysis.pipeline import SEMReportPipeline
from .analysis.sem_analysis.model_builder import parse_model_spec

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO', log_dir: str = 'logs') -> Path:
    """파일 + 콘솔 로깅 설정"""
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file = Path(log_dir) / 'sem_report.log'
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler()
        ]
    )
    return log_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='TPB 금욕 의도 구조방정식모형 보고서',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
사용 예시:
  tpb-sem-report data/abstinence_survey.csv
  tpb-sem-report data.csv --estimator ML          # 정규이론 ML (비교용)
  tpb-sem-report data.csv --no-save --no-diagrams # 콘솔 보고서만 출력
  tpb-sem-report data.csv --model model.txt       # 사용자 정의 모델 문법
        """
    )
    parser.add_argument('data_path', nargs='?', default=SEMReportConfig.data_path,
                        help='설문 CSV 파일 경로')
    parser.add_argument('--separator', default=',', help='CSV 구분자')
    parser.add_argument('--missing', choices=VALID_MISSING_METHODS, default='listwise',
                        help='결측치 처리 방법')
    parser.add_argument('--estimator', choices=VALID_ESTIMATORS, default='MLM',
                        help='추정 방법 (MLM: Satorra-Bentler)')
    parser.add_argument('--optimizer', choices=VALID_OPTIMIZERS, default='SLSQP',
                        help='semopy 최적화 방법')
    parser.add_argument('--alpha', type=float, default=0.05, help='유의수준')
    parser.add_argument('--model', help='모델 문법 파일 (기본: TPB 모델)')
    parser.add_argument('--results-dir', default='results', help='결과 저장 디렉토리')
    parser.add_argument('--no-save', action='store_true', help='결과 파일 저장 안 함')
    parser.add_argument('--no-archive', action='store_true', help='이전 결과 아카이브 안 함')
    parser.add_argument('--no-diagrams', action='store_true', help='경로 다이어그램 생성 안 함')
    parser.add_argument('--diagram-format', choices=['png', 'svg', 'pdf'], default='png',
                        help='다이어그램 형식')
    parser.add_argument('--log-level', default='INFO', help='로그 레벨')
    parser.add_argument('--quiet', action='store_true', help='보고서를 콘솔에 출력하지 않음')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """메인 실행 함수"""
    args = build_parser().parse_args(argv)
    log_file = setup_logging(args.log_level)

    try:
        config = SEMReportConfig(
            data_path=args.data_path,
            separator=args.separator,
            missing_data_method=args.missing,
            estimator=args.estimator,
            optimizer=args.optimizer,
            alpha=args.alpha,
            save_results=not args.no_save,
            results_dir=args.results_dir,
            archive_previous=not args.no_archive,
            create_diagrams=not args.no_diagrams,
            diagram_format=args.diagram_format,
            log_level=args.log_level
        )
        spec = None
        if args.model:
            spec = parse_model_spec(Path(args.model).read_text(encoding='utf-8'))
    except (ValueError, OSError) as e:
        logger.error(f"설정 오류: {e}")
        return 2

    logger.info(f"SEM 보고서 실행 시작: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    try:
        results = SEMReportPipeline(config, spec).run()
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"입력 오류: {e}")
        return 2
    except RuntimeError as e:
        logger.error(f"추정 실패: {e}")
        return 1

    if not args.quiet:
        print(results['report'])

    if 'saved_files' in results:
        logger.info(f"결과 확인: {Path(config.results_dir) / 'current'}")
    logger.info(f"로그 확인: {log_file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
