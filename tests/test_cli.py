import importlib
import json
import os


def _write(path, data):
    with open(path, 'w') as f:
        f.write(data)


def _seed(path):
    _write(path, json.dumps({
        'version': 1,
        'servers': {
            'seedbox': [{'id': 'h1', 'done': True}, {'id': 'h2', 'done': False}],
            'nas': [{'id': 'h3', 'done': False}],
        },
    }))


def test_cli_list_and_clear_all_and_server(monkeypatch, capsys, tmp_path):
    cli = importlib.import_module('cli')
    snap_path = tmp_path / 'snapshots.json'
    monkeypatch.setenv('SNAPSHOT_FILE_PATH', str(snap_path))
    monkeypatch.setenv('CONFIG_PATH', str(tmp_path / 'missing.yaml'))
    _seed(snap_path)

    # list
    cli.cmd_list(type('N', (), {})())
    out = json.loads(capsys.readouterr().out)
    assert 'seedbox' in out['servers']

    # clear one server
    cli.cmd_clear(type('N', (), {'server': 'seedbox'})())
    assert 'Cleared seedbox' in capsys.readouterr().out
    out = json.loads(open(snap_path).read())
    assert 'seedbox' not in out['servers'] and 'nas' in out['servers']

    cli.cmd_clear(type('N', (), {'server': 'nope'})())
    assert 'not found' in capsys.readouterr().out

    # clear all
    cli.cmd_clear(type('N', (), {'server': None})())
    out = json.loads(open(snap_path).read())
    assert out['servers'] == {}


def test_cli_status(monkeypatch, capsys, tmp_path):
    cli = importlib.import_module('cli')
    snap_path = tmp_path / 'snapshots.json'
    monkeypatch.setenv('SNAPSHOT_FILE_PATH', str(snap_path))
    monkeypatch.setenv('CONFIG_PATH', str(tmp_path / 'missing.yaml'))
    _seed(snap_path)
    cli.cmd_status(type('N', (), {})())
    out = json.loads(capsys.readouterr().out)
    assert out['servers']['seedbox'] == {'torrents': 2, 'done': 1}
    assert out['servers']['nas'] == {'torrents': 1, 'done': 0}


def test_cli_servers_and_yaml_snapshot_path(monkeypatch, capsys, tmp_path):
    cli = importlib.import_module('cli')
    cfg_path = tmp_path / 'config.yaml'
    yaml_snap = tmp_path / 'from-yaml.json'
    _write(cfg_path, (
        'general:\n'
        f'  snapshot_file_path: {yaml_snap}\n'
        'servers:\n'
        '  - id: seedbox\n'
        '    type: qbittorrent\n'
        '    address: http://qb\n'
        '    alarm_on_new: true\n'
    ))
    monkeypatch.setenv('CONFIG_PATH', str(cfg_path))
    monkeypatch.setenv('SNAPSHOT_FILE_PATH', str(tmp_path / 'env.json'))

    cli.cmd_servers(type('N', (), {})())
    out = json.loads(capsys.readouterr().out)
    assert out[0]['id'] == 'seedbox' and out[0]['eligible'] is True
    assert cli._snapshot_path() == str(yaml_snap)
