import os
import sys
import json
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))
import pytest
import Program


def test_list_scenarios(capsys):
    assert Program.main(['--list']) == 0
    names = capsys.readouterr().out.split()
    assert 'ireland-2024' in names
    assert 'globaltech-gir' in names
    assert names == sorted(names)


def test_run_default_mode(capsys):
    assert Program.main(['ireland-2024']) == 0
    output = capsys.readouterr().out
    assert 'GLOBE TOP-UP TAX: IE FY2024' in output


def test_run_json_mode(capsys):
    assert Program.main(['globaltech-dfe', '--mode', 'Json']) == 0
    data = json.loads(capsys.readouterr().out)
    assert data['tool'] == 'dfe'
    assert data['result']['ranking'][0]['candidate']['id'] == 'c1'


def test_every_scenario_renders(capsys):
    for name in Program.list_scenarios():
        assert Program.main([name]) == 0
    assert capsys.readouterr().out


def test_missing_scenario_exits_1(capsys):
    with pytest.raises(SystemExit) as exc:
        Program.main(['no-such-scenario'])
    assert exc.value.code == Program.EXIT_MISSING_SCENARIO
    assert 'Scenario file not found' in capsys.readouterr().out


def test_mismatched_mode_exits_2(capsys):
    with pytest.raises(SystemExit) as exc:
        Program.main(['ireland-2024', '--mode', 'Deadline'])
    assert exc.value.code == Program.EXIT_VALIDATION_ERRORS
    assert 'cannot render' in capsys.readouterr().out


def test_validation_errors_exit_2(tmp_path, monkeypatch, capsys):
    scenario_dir = tmp_path / 'bad-deadline'
    scenario_dir.mkdir()
    (scenario_dir / 'spec.json').write_text(json.dumps({'tool': 'deadline', 'inputs': {'fiscalYearEnd': '2024-12-31'}}))
    monkeypatch.setattr(Program, 'INPUT_DIR', str(tmp_path))

    with pytest.raises(SystemExit) as exc:
        Program.main(['bad-deadline'])
    assert exc.value.code == Program.EXIT_VALIDATION_ERRORS
    assert 'VALIDATION ERRORS' in capsys.readouterr().out


def test_unknown_tool_exits_2(tmp_path, monkeypatch, capsys):
    scenario_dir = tmp_path / 'payroll'
    scenario_dir.mkdir()
    (scenario_dir / 'spec.json').write_text(json.dumps({'tool': 'payroll'}))
    monkeypatch.setattr(Program, 'INPUT_DIR', str(tmp_path))

    with pytest.raises(SystemExit) as exc:
        Program.main(['payroll'])
    assert exc.value.code == Program.EXIT_VALIDATION_ERRORS
    assert "Unknown tool 'payroll'" in capsys.readouterr().out
