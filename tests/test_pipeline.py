"""
결과 저장, 보고서, 파이프라인, 명령행 테스트
"""

import json
from pathlib import Path

import pandas as pd
import pytest

from tpb_sem.analysis.sem_analysis import (
    SEMPathDiagramVisualizer,
    SEMReportPipeline,
    SEMReportWriter,
    SEMResultsExporter,
    create_default_config
)
from tpb_sem.analysis.sem_analysis import visualizer as visualizer_module
from tpb_sem.cli import build_parser, main
from tpb_sem.utils import ResultsManager


@pytest.fixture(scope="module")
def analysis_results(survey_data):
    config = create_default_config(create_diagrams=False, save_results=False)
    results = SEMReportPipeline(config).analyze(survey_data)
    results['report'] = SEMReportWriter().render(results)
    return results


@pytest.fixture
def survey_csv(tmp_path, survey_data):
    path = tmp_path / "survey.csv"
    raw = survey_data.copy()
    raw.columns = [col.replace('_', '.', 1) for col in raw.columns]
    raw.to_csv(path, index=False)
    return path


class TestSEMResultsExporter:
    """CSV / JSON 저장 테스트"""

    def test_export_table_uses_bom(self, tmp_path):
        exporter = SEMResultsExporter(tmp_path)
        path = exporter.export_table(pd.DataFrame({'a': [1, 2]}), 'demo')

        assert path.name.startswith(exporter.base_name)
        assert path.read_bytes().startswith(b'\xef\xbb\xbf')

    def test_export_all(self, tmp_path, analysis_results):
        exporter = SEMResultsExporter(tmp_path)
        saved = exporter.export_all(
            {'measurement': analysis_results['measurement'], 'empty': pd.DataFrame()},
            analysis_results['fit_indices'],
            analysis_results['fit_interpretation'],
            {'estimator': 'MLM'},
            report_text=analysis_results['report']
        )

        assert set(saved) == {'measurement', 'fit_indices', 'metadata', 'report'}
        fit_df = pd.read_csv(saved['fit_indices'], encoding='utf-8-sig')
        assert {'Fit_Index', 'Value', 'Interpretation'} <= set(fit_df.columns)

        with open(saved['metadata'], encoding='utf-8') as f:
            metadata = json.load(f)
        assert metadata['fit_indices']['df'] == 14
        assert metadata['settings'] == {'estimator': 'MLM'}


class TestResultsManager:
    """결과 버전 관리 테스트"""

    def test_archive_and_register(self, tmp_path):
        manager = ResultsManager(tmp_path / "results")
        assert manager.archive_current_results('sem_report') == ""

        output = manager.analysis_dir('sem_report')
        (output / "table.csv").write_text("a\n1\n", encoding='utf-8')
        archived = manager.archive_current_results('sem_report', "테스트")

        assert archived
        assert not any(manager.analysis_dir('sem_report').iterdir())
        assert len(manager.list_versions('sem_report')) == 1

        manager.register_results('sem_report', {'table': output / "table.csv"}, {'cfi': 0.99})
        reloaded = ResultsManager(tmp_path / "results")
        assert reloaded.get_latest_results('sem_report')['summary'] == {'cfi': 0.99}

    def test_cleanup_old_versions(self, tmp_path):
        manager = ResultsManager(tmp_path / "results")
        for k in range(3):
            (manager.analysis_dir('sem_report') / f"t{k}.csv").write_text("x", encoding='utf-8')
            manager.archive_current_results('sem_report')

        manager.cleanup_old_versions('sem_report', keep_count=1)
        assert len(manager.list_versions('sem_report')) == 1
        assert len(list(manager.archive_dir.iterdir())) == 1


class TestVisualizer:
    """경로 다이어그램 테스트"""

    def test_digraph_source(self, tmp_path, fitted_survey):
        visualizer = SEMPathDiagramVisualizer(tmp_path)
        source = visualizer.build_digraph(fitted_survey, standardized=True).source

        assert 'attitudes -> sex_fool' in source
        assert 'norms -> intention' in source
        assert 'dir=both' in source

    def test_dot_fallback_without_graphviz(self, tmp_path, fitted_survey, monkeypatch):
        monkeypatch.setattr(visualizer_module, 'graphviz_executable_available', lambda: False)
        diagrams = SEMPathDiagramVisualizer(tmp_path).create_diagrams(fitted_survey, prefix='demo')

        assert set(diagrams) == {'unstandardized', 'standardized'}
        assert all(path.suffix == '.dot' and path.exists() for path in diagrams.values())


class TestReportWriter:
    """보고서 텍스트 테스트"""

    def test_sections(self, analysis_results):
        report = analysis_results['report']

        for heading in ["1. 정규성 검정", "2. 모형 적합도", "3. 측정모형",
                        "4. 구조모형", "6. 설명된 분산", "7. 신뢰도"]:
            assert heading in report
        assert "RMSEA" in report and "SRMR" in report
        assert "norms → intention" in report

    def test_path_summary_uses_standardized_test(self, analysis_results):
        structural = analysis_results['structural']
        lines = SEMReportWriter().path_summary(structural)
        row = structural.set_index('From').loc['norms']
        line = next(text for text in lines if text.startswith("norms → intention"))

        assert f"β = {row['Std_Estimate']:.3f}" in line
        assert f"z = {row['Std_Estimate'] / row['SE']:.2f}" in line


class TestPipeline:
    """전체 파이프라인 테스트"""

    def test_analyze_keys(self, analysis_results):
        for key in ['normality', 'fitted', 'fit_indices', 'fit_interpretation', 'measurement',
                    'structural', 'r_squared', 'covariances', 'variances', 'reliability',
                    'descriptives']:
            assert key in analysis_results

    def test_run_saves_results(self, tmp_path, survey_csv):
        config = create_default_config(data_path=str(survey_csv), results_dir=str(tmp_path / "results"),
                                       create_diagrams=False)
        first = SEMReportPipeline(config).run()
        second = SEMReportPipeline(config).run()

        assert all(Path(p).exists() for p in second['saved_files'].values())
        assert first['fit_indices'].chi2_scaled == second['fit_indices'].chi2_scaled

        assert second['column_map']['sex_fool'] == 'sex.fool'
        assert 'sex.fool' in second['report']
        measurement = pd.read_csv(second['saved_files']['measurement'], encoding='utf-8-sig')
        assert 'sex.fool' in set(measurement['Indicator'])
        assert 'sex_fool' not in set(measurement['Indicator'])

        manager = ResultsManager(tmp_path / "results")
        assert len(manager.list_versions('sem_report')) == 1
        assert manager.get_latest_results('sem_report')['file_count'] == len(second['saved_files'])

    def test_normal_theory_run(self, survey_data):
        config = create_default_config(estimator='ML', create_diagrams=False, save_results=False)
        results = SEMReportPipeline(config).analyze(survey_data)
        assert results['fit_indices'].scaling_factor == 1.0
        assert results['estimator'] == 'ML'


class TestCLI:
    """명령행 테스트"""

    def test_parser_defaults(self):
        args = build_parser().parse_args(['data.csv'])
        assert args.estimator == 'MLM'
        assert args.data_path == 'data.csv'

    def test_main_success(self, tmp_path, survey_csv, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        code = main([str(survey_csv), '--no-diagrams', '--results-dir', str(tmp_path / "out")])

        assert code == 0
        assert "2. 모형 적합도" in capsys.readouterr().out
        assert (tmp_path / "out" / "current" / "sem_report").exists()

    def test_main_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert main([str(tmp_path / "missing.csv"), '--no-save', '--quiet']) == 2
