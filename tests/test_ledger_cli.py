import importlib.util
import json
from pathlib import Path

SCRIPT_PATH = Path(__file__).resolve().parents[1] / 'scripts' / 'ledger_cli.py'


def _load_cli():
    spec = importlib.util.spec_from_file_location('ledger_cli_test', SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _base_args(tmp_path):
    return ['--backend', 'json', '--state', str(tmp_path / 'ledger.json')]


def test_summary_prints_pockets(tmp_path, capsys):
    cli = _load_cli()
    assert cli.main(_base_args(tmp_path) + ['summary', '--period', 'week']) == 0

    out = capsys.readouterr().out
    assert 'Period: week' in out
    assert 'Cash: Rp 0.00' in out


def test_export_then_import(tmp_path, capsys):
    cli = _load_cli()
    export_dir = tmp_path / 'exports'
    assert cli.main(_base_args(tmp_path) + ['export', '--dir', str(export_dir)]) == 0
    exported = next(export_dir.glob('pocket_finance_export_*.json'))

    document = json.loads(exported.read_text(encoding='utf-8'))
    document['currency'] = '$'
    exported.write_text(json.dumps(document), encoding='utf-8')

    assert cli.main(_base_args(tmp_path) + ['import', str(exported)]) == 0
    assert cli.main(_base_args(tmp_path) + ['trend', '--months', '3']) == 0
    assert '$ 0.00' in capsys.readouterr().out


def test_import_of_bad_file_fails(tmp_path, capsys):
    cli = _load_cli()
    bad = tmp_path / 'bad.json'
    bad.write_text('[]', encoding='utf-8')

    assert cli.main(_base_args(tmp_path) + ['import', str(bad)]) == 1
    assert 'Import failed' in capsys.readouterr().out
