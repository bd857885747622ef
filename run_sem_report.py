#!/usr/bin/env python3
"""
TPB SEM 보고서 실행 스크립트

사용 예시:
  python run_sem_report.py data/abstinence_survey.csv
"""

import sys

sys.path.append('src')

from tpb_sem.cli import main


if __name__ == "__main__":
    sys.exit(main())
