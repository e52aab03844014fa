"""Tests for the Graph API transport and its retry policy."""
import pytest
import requests

import onedrive_fs.graph_api as graph_api
from conftest import ROOT, graph_error, make_response
from onedrive_fs.config import Config
from onedrive_fs.graph_api import GraphClient, error_detail, is_success


class FakeSession:
    """requests.Session stand-in replaying scripted outcomes."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def make_client(session, sleeps, **config_values):
    config_values.setdefault('access_token', 'token-123')
    return GraphClient(Config(**config_values), session=session, sleep=sleeps)


def test_bearer_token_and_timeout(sleeps):
    session = FakeSession(make_response(200, {"id": "root"}))
    client = make_client(session, sleeps, request_timeout=42)

    response = client.request('GET', ROOT, params={'$select': 'id'})

    assert response.status_code == 200
    method, url, kwargs = session.calls[0]
    assert (method, url) == ('GET', ROOT)
    assert kwargs['headers'] == {'Authorization': 'Bearer token-123'}
    assert kwargs['timeout'] == 42
    assert kwargs['params'] == {'$select': 'id'}


def test_pre_authenticated_urls_get_no_token(sleeps):
    session = FakeSession(make_response(202))
    client = make_client(session, sleeps)

    client.request('PUT', 'https://upload.example.com/x', headers={'Content-Range': 'bytes 0-0/1'},
                   data=b'x', authenticate=False)

    assert session.calls[0][2]['headers'] == {'Content-Range': 'bytes 0-0/1'}


def test_rate_limit_waits_for_retry_after(sleeps):
    session = FakeSession(make_response(429, headers={'Retry-After': '3'}), make_response(200, {}))
    client = make_client(session, sleeps)

    assert client.request('GET', ROOT).status_code == 200
    assert sleeps.calls == [3]
    assert client.monitor.throttled_requests.value() == 1
    assert client.monitor.retries.value() == 1


def test_server_errors_exhaust_retries_and_return_last_response(sleeps):
    session = FakeSession(graph_error(503))
    client = make_client(session, sleeps, max_retry=3)

    response = client.request('GET', ROOT)

    assert response.status_code == 503
    assert len(session.calls) == 4
    assert sleeps.calls == [2, 3, 5]


def test_client_errors_are_not_retried(sleeps):
    session = FakeSession(graph_error(404, 'itemNotFound'))
    client = make_client(session, sleeps)

    assert client.request('GET', ROOT).status_code == 404
    assert len(session.calls) == 1


def test_retries_can_be_disabled(sleeps):
    session = FakeSession(graph_error(500))
    client = make_client(session, sleeps)

    assert client.request('PUT', ROOT, max_retries=0).status_code == 500
    assert len(session.calls) == 1
    assert sleeps.calls == []


def test_connection_errors_are_retried_then_raised(sleeps):
    session = FakeSession(requests.exceptions.ConnectionError('reset'))
    client = make_client(session, sleeps, max_retry=2)

    with pytest.raises(requests.exceptions.ConnectionError):
        client.request('GET', ROOT)
    assert len(session.calls) == 3
    assert sleeps.calls == [2, 3]


def test_ssl_errors_are_not_retried(sleeps):
    session = FakeSession(requests.exceptions.SSLError('bad certificate'))
    client = make_client(session, sleeps)

    with pytest.raises(requests.exceptions.SSLError):
        client.request('GET', ROOT)
    assert len(session.calls) == 1


def test_client_credentials_token_is_acquired_once(monkeypatch, sleeps):
    acquired = []

    def fake_acquire(tenant_id, client_id, client_secret, login_endpoint, graph_endpoint):
        acquired.append((tenant_id, client_id, login_endpoint, graph_endpoint))
        return {'access_token': 'app-token', 'token_type': 'Bearer'}

    monkeypatch.setattr(graph_api, 'acquire_token', fake_acquire)
    session = FakeSession(make_response(200, {}))
    client = make_client(session, sleeps, access_token=None, tenant_id='t', client_id='c', client_secret='s')

    client.request('GET', ROOT)
    client.request('GET', ROOT)

    assert acquired == [('t', 'c', 'login.microsoftonline.com', 'graph.microsoft.com')]
    assert session.calls[1][2]['headers'] == {'Authorization': 'Bearer app-token'}


def test_requests_are_counted_by_operation(sleeps):
    session = FakeSession(make_response(200, {}))
    client = make_client(session, sleeps)

    client.request('GET', f"{ROOT}/children")
    client.request('PUT', 'https://upload.example.com/x', authenticate=False, operation='chunk_upload')

    metrics = client.monitor.get_metrics_summary()
    assert metrics['total_requests'] == 2
    assert metrics['operations']['listing'] == 1
    assert metrics['operations']['chunk_upload'] == 1
    assert metrics['request_types']['PUT'] == 1


def test_malformed_throttle_header_does_not_fail_the_request(sleeps):
    session = FakeSession(make_response(200, {"id": "root"}, headers={'x-ms-throttle-limit-percentage': 'high'}))
    client = make_client(session, sleeps)

    response = client.request('GET', ROOT)

    assert response.status_code == 200
    assert client.monitor.max_throttle_percentage == 0.0


def test_close_closes_session(sleeps):
    session = FakeSession(make_response(200))
    make_client(session, sleeps).close()
    assert session.closed


def test_error_detail():
    assert error_detail(graph_error(409, 'nameAlreadyExists', 'Name already exists')) == \
        'nameAlreadyExists: Name already exists'
    assert error_detail(make_response(502, content=b'Bad Gateway')) == 'Bad Gateway'
    assert is_success(make_response(204))
    assert not is_success(make_response(302))
