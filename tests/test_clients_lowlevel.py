import importlib
import pytest


pytestmark = pytest.mark.asyncio


class FakeResp:
    def __init__(self, status=200, json_data=None, headers=None):
        self.status = status
        self._json = json_data
        self.headers = headers or {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def json(self):
        if isinstance(self._json, Exception):
            raise self._json
        return self._json


class QueueSession:
    def __init__(self, responses):
        # responses: list of tuples (method, FakeResp)
        self._q = list(responses)
        self.calls = []

    async def post(self, url, **kwargs):
        self.calls.append(('POST', url, kwargs))
        assert self._q, f"Unexpected POST call to {url}"
        m, resp = self._q.pop(0)
        assert m == 'POST'
        return resp

    async def get(self, url, **kwargs):
        self.calls.append(('GET', url, kwargs))
        assert self._q, f"Unexpected GET call to {url}"
        m, resp = self._q.pop(0)
        assert m == 'GET'
        return resp


async def test_qbittorrent_list_torrents_success():
    qb = importlib.import_module('integrations.clients.qbittorrent')
    session = QueueSession([
        ('POST', FakeResp(status=200)),  # login
        ('GET', FakeResp(status=200, json_data=[{'hash': 'ABC', 'name': 't', 'progress': 1}])),
    ])
    out = await qb.qbittorrent_list_torrents(session, 'http://qb/', 'u', 'p')
    assert out == [{'hash': 'ABC', 'name': 't', 'progress': 1}]
    assert session.calls[0][1] == 'http://qb/api/v2/auth/login'
    assert session.calls[1][1] == 'http://qb/api/v2/torrents/info'


async def test_qbittorrent_login_failure_raises():
    qb = importlib.import_module('integrations.clients.qbittorrent')
    common = importlib.import_module('integrations.clients.common')
    session = QueueSession([('POST', FakeResp(status=403))])
    with pytest.raises(common.ClientRequestError):
        await qb.qbittorrent_list_torrents(session, 'http://qb', 'u', 'bad')


async def test_transmission_session_handshake_then_list():
    tr = importlib.import_module('integrations.clients.transmission')
    session = QueueSession([
        ('POST', FakeResp(status=409, headers={'X-Transmission-Session-Id': 'abc'})),
        ('POST', FakeResp(status=200, json_data={'result': 'success', 'arguments': {'torrents': [
            {'id': 1, 'hashString': 'h1', 'name': 'A', 'percentDone': 0.5},
        ]}})),
    ])
    out = await tr.transmission_list_torrents(session, 'http://tr:9091', None, None)
    assert out[0]['hashString'] == 'h1'
    assert session.calls[0][1] == 'http://tr:9091/transmission/rpc'
    # Ensure second call included X-Transmission-Session-Id header
    assert 'X-Transmission-Session-Id' in session.calls[-1][2].get('headers', {})


async def test_transmission_rpc_error_result_raises():
    tr = importlib.import_module('integrations.clients.transmission')
    common = importlib.import_module('integrations.clients.common')
    session = QueueSession([
        ('POST', FakeResp(status=200, json_data={'result': 'no such method', 'arguments': {}})),
    ])
    with pytest.raises(common.ClientRequestError):
        await tr.transmission_list_torrents(session, 'http://tr/transmission/rpc', 'u', 'p')


async def test_deluge_list_torrents_maps_percent():
    dl = importlib.import_module('integrations.clients.deluge')
    session = QueueSession([
        ('POST', FakeResp(status=200, json_data={'result': True, 'error': None})),  # login
        ('POST', FakeResp(status=200, json_data={'result': {
            'h1': {'name': 'A', 'progress': 100.0},
            'h2': {'name': 'B', 'progress': 12.5},
        }, 'error': None})),
    ])
    out = await dl.deluge_list_torrents(session, 'http://dl:8112', 'pw')
    assert {'hash': 'h1', 'name': 'A', 'progress_percent': 100.0} in out
    assert session.calls[0][1] == 'http://dl:8112/json'


async def test_deluge_rejected_login_raises():
    dl = importlib.import_module('integrations.clients.deluge')
    common = importlib.import_module('integrations.clients.common')
    session = QueueSession([('POST', FakeResp(status=200, json_data={'result': False, 'error': None}))])
    with pytest.raises(common.ClientRequestError):
        await dl.deluge_list_torrents(session, 'http://dl/json', 'bad')
