import importlib


composer_mod = importlib.import_module('core.composer')
models = importlib.import_module('core.models')


def _server(order=3):
    return models.Server(id='seedbox', order=order, address='http://x', type='qbittorrent', alarm_on_new=True)


def _torrents(prefix, n):
    return [models.Torrent(f'{prefix}{i}', f'{prefix}-name-{i}', 1.0) for i in range(n)]


def test_compose_returns_none_for_empty_lists():
    c = composer_mod.NotificationComposer()
    assert c.compose(_server(), [], []) is None
    assert c.compose(_server(), None, None) is None


def test_title_variants():
    c = composer_mod.NotificationComposer()
    assert c.title(1, 0) == '1 new torrent added'
    assert c.title(3, 0) == '3 new torrents added'
    assert c.title(0, 1) == '1 torrent finished'
    assert c.title(0, 2) == '2 torrents finished'


def test_mixed_title_singular_only_when_total_is_two():
    c = composer_mod.NotificationComposer()
    one = c.title(1, 1)
    other = c.title(1, 2)
    assert one == composer_mod.DEFAULT_TEMPLATES['mixed_one'].format(new=1, done=1)
    assert other == composer_mod.DEFAULT_TEMPLATES['mixed_other'].format(new=1, done=2)
    assert c.title(2, 1) == composer_mod.DEFAULT_TEMPLATES['mixed_other'].format(new=2, done=1)


def test_body_lists_new_before_done_without_trailing_separator():
    c = composer_mod.NotificationComposer()
    batch = c.compose(_server(), _torrents('n', 2), _torrents('d', 1))
    assert batch.body == 'n-name-0, n-name-1, d-name-0'
    assert batch.affected_count == 3
    assert [t.id for t in batch.affected] == ['n0', 'n1', 'd0']


def test_detail_lines_five_affected_lists_all():
    c = composer_mod.NotificationComposer()
    batch = c.compose(_server(), _torrents('n', 3), _torrents('d', 2))
    assert batch.detail_lines == ['n-name-0', 'n-name-1', 'n-name-2', 'd-name-0', 'd-name-1']


def test_detail_lines_six_affected_references_index_five():
    c = composer_mod.NotificationComposer()
    new = _torrents('n', 4)
    done = _torrents('d', 2)
    batch = c.compose(_server(), new, done)
    assert len(batch.detail_lines) == 5
    assert batch.detail_lines[:4] == ['n-name-0', 'n-name-1', 'n-name-2', 'n-name-3']
    # affected[5] is the second finished torrent, not affected[4]
    assert batch.detail_lines[4] == 'and 2 others, such as d-name-1'
    assert 'd-name-0' not in batch.detail_lines[4]


def test_notification_id_is_base_plus_order():
    c = composer_mod.NotificationComposer()
    batch = c.compose(_server(order=7), _torrents('n', 1), [])
    assert batch.notification_id == composer_mod.NOTIFY_BASE + 7
    assert batch.server_id == 'seedbox'


def test_custom_templates_and_fallback_on_bad_template():
    c = composer_mod.NotificationComposer({
        'added_one': 'Neu: {count}',
        'finished_one': 'Fertig {missing}',
        'unknown_key': 'ignored',
    })
    assert c.title(1, 0) == 'Neu: 1'
    assert c.title(0, 1) == '1 torrent finished'
    assert 'unknown_key' not in c.templates
