"""End-to-end tests: full batches, exports and the command-line entry points."""

import json

import pytest

import analyze_strategy
import run_simulation
from edge_lab.models.simulation import SimulationConfig
from edge_lab.simulation.metrics import calculate_statistics
from edge_lab.simulation.report import (
    CSV_HEADER,
    export_results_csv,
    generate_simulation_report,
    results_to_csv,
)
from edge_lab.simulation.runner import run_batch


@pytest.fixture(scope="module")
def default_batch():
    """10,000 paths of the default 60% / 150:100 edge."""
    config = SimulationConfig()
    results = run_batch(config, seed=2024)
    return config, results, calculate_statistics(results, config)


class TestDefaultEdge:

    def test_positive_edge_is_profitable(self, default_batch):
        config, results, stats = default_batch

        assert len(results) == 10000
        assert stats.median_return > 0
        assert stats.win_probability > 50
        assert stats.expected_value_per_trade > 0
        assert stats.probability_of_ruin < 1.0

    def test_percentile_ordering(self, default_batch):
        _, _, stats = default_batch
        assert stats.worst_case <= stats.percentile('p5').total_return
        assert stats.percentile('p5').total_return <= stats.median_return
        assert stats.median_return <= stats.percentile('p95').total_return
        assert stats.percentile('p95').total_return <= stats.best_case


class TestExports:

    def test_csv_rows(self, default_batch):
        _, results, _ = default_batch
        lines = results_to_csv(results[:3]).splitlines()

        assert lines[0] == CSV_HEADER
        assert len(lines) == 4
        first = lines[1].split(',')
        assert first[0] == '1'
        assert first[1] == f"{results[0].final_capital:.2f}"
        assert first[4] == f"{results[0].max_drawdown:.2f}"

    def test_export_and_report_files(self, default_batch, tmp_path):
        config, results, stats = default_batch

        csv_path = export_results_csv(results[:100], tmp_path / "results.csv")
        report_path = generate_simulation_report(stats, config, results, tmp_path / "REPORT.md")

        with open(csv_path) as f:
            assert len(f.read().splitlines()) == 101
        with open(report_path) as f:
            report = f.read()
        assert report.startswith("#")
        assert "Percentile" in report
        assert "Market Regimes" not in report


class TestCommandLine:

    def test_run_simulation(self, tmp_path, capsys):
        csv_path = tmp_path / "out.csv"
        report_path = tmp_path / "out.md"

        exit_code = run_simulation.main([
            '--simulations', '200', '--trades', '30', '--seed', '11',
            '--sizing', 'half_kelly', '--regimes',
            '--csv', str(csv_path), '--report', str(report_path),
        ])

        assert exit_code == 0
        assert csv_path.exists()
        assert report_path.exists()
        assert "Market Regimes" in report_path.read_text(encoding="utf-8")
        assert "100.0% complete" in capsys.readouterr().out

    def test_run_simulation_with_trade_history(self, tmp_path):
        journal = tmp_path / "journal.csv"
        journal.write_text("pnl\n120\n-80\n95\n-60\n150\n")

        assert run_simulation.main([
            '--trades-csv', str(journal), '--simulations', '50', '--trades', '20', '--seed', '1',
        ]) == 0

    def test_run_simulation_rejects_bad_config(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("win_rate: 140\n")
        assert run_simulation.main(['--config', str(bad), '--simulations', '10']) == 1

    def test_analyze_strategy_template_json(self, tmp_path):
        out = tmp_path / "condor.json"

        exit_code = analyze_strategy.main([
            '--template', 'Iron Condor', '--spot', '100', '--json', str(out),
            '--simulate', '2000', '--seed', '3',
        ])

        assert exit_code == 0
        with open(out) as f:
            data = json.load(f)
        assert data['strategy']['name'] == 'Iron Condor'
        assert len(data['strategy']['legs']) == 4
        assert len(data['risk_metrics']['breakevens']) == 2
        assert data['risk_metrics']['max_profit'] is not None
        assert 0 <= data['simulation']['probability_of_profit'] <= 100

    def test_analyze_strategy_explicit_legs(self):
        assert analyze_strategy.main([
            '--leg', 'buy:call:100', '--leg', 'sell:call:110', '--spot', '100',
        ]) == 0

    def test_analyze_strategy_bad_market(self):
        assert analyze_strategy.main(['--template', 'Long Call', '--spot', '100', '--iv', '0']) == 1

    def test_progress_printed_once_per_step(self, capsys):
        on_progress = run_simulation._progress_printer()
        for pct in (5.0, 12.0, 15.0, 19.9, 20.0, 100.0):
            on_progress(pct)

        lines = capsys.readouterr().out.splitlines()
        assert [" ".join(line.split()) for line in lines] == [
            "... 5.0% complete",
            "... 12.0% complete",
            "... 20.0% complete",
            "... 100.0% complete",
        ]
