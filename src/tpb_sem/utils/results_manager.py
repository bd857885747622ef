"""
결과 파일 버전 관리

보고서 실행 결과를 results/current/<분석유형> 에 두고,
새 실행 전에 이전 결과를 results/archive/<타임스탬프>_<분석유형> 로 옮깁니다.
버전 정보는 results/metadata.json 에 기록됩니다.
"""

import json
import shutil
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any, Sequence, Union

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_TYPES = ("sem_report",)


class ResultsManager:
    """결과 파일 버전 관리 클래스"""

    def __init__(self, results_dir: Union[str, Path] = "results",
                 analysis_types: Sequence[str] = DEFAULT_ANALYSIS_TYPES):
        """
        Args:
            results_dir: 결과 루트 디렉토리
            analysis_types: 미리 만들어 둘 분석 유형 디렉토리
        """
        self.results_dir = Path(results_dir)
        self.current_dir = self.results_dir / "current"
        self.archive_dir = self.results_dir / "archive"
        self.metadata_file = self.results_dir / "metadata.json"

        for analysis_type in analysis_types:
            (self.current_dir / analysis_type).mkdir(parents=True, exist_ok=True)
        self.archive_dir.mkdir(parents=True, exist_ok=True)

        self.metadata = self._load_metadata()

    def _load_metadata(self) -> Dict[str, Any]:
        if self.metadata_file.exists():
            try:
                with open(self.metadata_file, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"메타데이터 로드 실패: {e}")

        return {
            "versions": {},
            "latest": {},
            "created": datetime.now().isoformat()
        }

    def _save_metadata(self):
        with open(self.metadata_file, 'w', encoding='utf-8') as f:
            json.dump(self.metadata, f, indent=2, ensure_ascii=False, default=str)

    def analysis_dir(self, analysis_type: str) -> Path:
        """현재 결과 디렉토리 (없으면 생성)"""
        path = self.current_dir / analysis_type
        path.mkdir(parents=True, exist_ok=True)
        return path

    def archive_current_results(self, analysis_type: str, description: str = "") -> str:
        """
        현재 결과를 아카이브로 이동

        Args:
            analysis_type: 분석 유형
            description: 아카이브 설명

        Returns:
            아카이브 디렉토리 경로 (아카이브할 결과가 없으면 빈 문자열)
        """
        current_analysis_dir = self.current_dir / analysis_type
        if not current_analysis_dir.exists() or not any(current_analysis_dir.iterdir()):
            logger.info(f"아카이브할 결과가 없음: {analysis_type}")
            return ""

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        archive_subdir = self.archive_dir / f"{timestamp}_{analysis_type}"

        shutil.move(str(current_analysis_dir), str(archive_subdir))
        current_analysis_dir.mkdir(parents=True, exist_ok=True)

        version_info = {
            "timestamp": timestamp,
            "analysis_type": analysis_type,
            "description": description,
            "archived_path": str(archive_subdir),
            "file_count": len([p for p in archive_subdir.rglob("*") if p.is_file()])
        }
        self.metadata["versions"].setdefault(analysis_type, []).append(version_info)
        self._save_metadata()

        logger.info(f"결과 아카이브 완료: {analysis_type} → {archive_subdir}")
        return str(archive_subdir)

    def register_results(self, analysis_type: str, saved_files: Dict[str, Any],
                         summary: Optional[Dict[str, Any]] = None):
        """
        최신 결과 메타데이터 갱신

        Args:
            analysis_type: 분석 유형
            saved_files: {이름: 경로}
            summary: 함께 기록할 요약 정보 (적합도 등)
        """
        self.metadata["latest"][analysis_type] = {
            "timestamp": datetime.now().strftime("%Y%m%d_%H%M%S"),
            "saved_files": {name: str(path) for name, path in saved_files.items()},
            "file_count": len(saved_files),
            "summary": summary or {}
        }
        self._save_metadata()
        logger.info(f"결과 등록 완료: {analysis_type} ({len(saved_files)}개 파일)")

    def get_latest_results(self, analysis_type: str) -> Optional[Dict]:
        return self.metadata["latest"].get(analysis_type)

    def list_versions(self, analysis_type: str) -> List[Dict]:
        return self.metadata["versions"].get(analysis_type, [])

    def cleanup_old_versions(self, analysis_type: str, keep_count: int = 5):
        """
        오래된 아카이브 정리

        Args:
            analysis_type: 분석 유형
            keep_count: 유지할 버전 수
        """
        versions = sorted(self.list_versions(analysis_type),
                          key=lambda x: x["timestamp"], reverse=True)
        if len(versions) <= keep_count:
            return

        for version in versions[keep_count:]:
            archive_path = Path(version["archived_path"])
            if archive_path.exists():
                shutil.rmtree(archive_path)
                logger.info(f"오래된 버전 제거: {version['timestamp']}")

        self.metadata["versions"][analysis_type] = versions[:keep_count]
        self._save_metadata()
