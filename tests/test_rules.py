import importlib

import pytest


rules = importlib.import_module('core.rules')
models = importlib.import_module('core.models')


def _server(**kw):
    base = dict(id='s1', order=0, address='http://x', type='qbittorrent', alarm_on_new=True, alarm_on_finished=True)
    base.update(kw)
    return models.Server(**base)


def test_parse_filter_uppercases_and_keeps_empty_segments():
    assert rules.parse_filter(None) is None
    assert rules.parse_filter('') is None
    assert rules.parse_filter('ubuntu|Debian') == ['UBUNTU', 'DEBIAN']
    assert rules.parse_filter('ubuntu|') == ['UBUNTU', '']


@pytest.mark.parametrize(
    'include,exclude,name,expected',
    [
        (None, None, 'Anything', True),
        ('ubuntu', None, 'ubuntu-24.04.iso', True),
        ('ubuntu', None, 'Fedora Workstation', False),
        ('ubuntu|fedora', None, 'Fedora Workstation', True),
        # exclude overrides include
        ('ubuntu', 'beta', 'Ubuntu Beta ISO', False),
        (None, 'beta', 'Ubuntu Beta ISO', False),
        (None, 'beta', 'Ubuntu ISO', True),
        # empty include token accepts everything
        ('ubuntu|', None, 'Fedora Workstation', True),
        # empty exclude token rejects nothing
        (None, 'beta|', 'Fedora Workstation', True),
    ],
)
def test_name_filter_matrix(include, exclude, name, expected):
    accepts = rules.build_name_filter(include, exclude)
    assert accepts(name) is expected


def test_server_eligibility():
    assert rules.is_server_eligible(_server())
    assert not rules.is_server_eligible(_server(address=None))
    assert not rules.is_server_eligible(_server(address=''))
    assert not rules.is_server_eligible(_server(type=None))
    assert not rules.is_server_eligible(_server(alarm_on_new=False, alarm_on_finished=False))
    assert rules.is_server_eligible(_server(alarm_on_new=False))


def test_classify_new_and_completed():
    accept_all = rules.build_name_filter(None, None)
    prev = {'a': models.SnapshotEntry('a', False), 'b': models.SnapshotEntry('b', True)}
    srv = _server()
    C = models.Classification
    assert rules.classify_torrent(models.Torrent('x', 'X', 0.1), prev, srv, accept_all) is C.NEW
    assert rules.classify_torrent(models.Torrent('a', 'A', 1.0), prev, srv, accept_all) is C.COMPLETED
    assert rules.classify_torrent(models.Torrent('a', 'A', 0.99), prev, srv, accept_all) is C.UNCLASSIFIED
    # already done before
    assert rules.classify_torrent(models.Torrent('b', 'B', 1.0), prev, srv, accept_all) is C.UNCLASSIFIED


def test_classify_first_seen_complete_is_new_not_completed():
    accept_all = rules.build_name_filter(None, None)
    C = models.Classification
    t = models.Torrent('x', 'X', 1.0)
    assert rules.classify_torrent(t, {}, _server(), accept_all) is C.NEW
    # Without alarm_on_new it is not evaluated for completion either
    assert rules.classify_torrent(t, {}, _server(alarm_on_new=False), accept_all) is C.UNCLASSIFIED


def test_classify_respects_toggles_and_filter():
    C = models.Classification
    prev = {'a': models.SnapshotEntry('a', False)}
    t = models.Torrent('a', 'Ubuntu Beta ISO', 1.0)
    assert rules.classify_torrent(t, prev, _server(alarm_on_finished=False), rules.build_name_filter(None, None)) is C.UNCLASSIFIED
    assert rules.classify_torrent(t, prev, _server(), rules.build_name_filter('ubuntu', 'beta')) is C.UNCLASSIFIED
