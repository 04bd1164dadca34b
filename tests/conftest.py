"""Shared fixtures: a resolved RunConfig and a stand-in for locust's HttpSession."""

import json
from datetime import timedelta

import pytest

from settings.config import resolve_config

# Header and rows as written by locust --csv, Aggregated row last
LOCUST_STATS_CSV = (
    "Type,Name,Request Count,Failure Count,Median Response Time,Average Response Time,"
    "Min Response Time,Max Response Time,Average Content Size,Requests/s,Failures/s,"
    "50%,66%,75%,80%,90%,95%,98%,99%,99.9%,99.99%,100%\n"
    "POST,login,30,1,180,201.4,95,640,32.0,1.5,0.05,180,200,220,230,300,410,520,600,640,640,640\n"
    "POST,sign-up,10,0,210,230.0,120,700,2.0,0.5,0.0,210,230,250,260,320,450,600,700,700,700,700\n"
    ",Aggregated,40,1,190,208.6,95,700,24.5,2.0,0.05,190,210,230,240,310,420,560,650,700,700,700\n"
)

# As written by the locustfile at exit, one row per scenario tag
SCENARIO_STATS_CSV = (
    "Scenario,Request Count,Failure Count,Median Response Time,Average Response Time,"
    "Min Response Time,Max Response Time,Average Content Size,Requests/s,Failures/s,"
    "50%,90%,95%,99%\n"
    "login_only,30,0,170,280.5,95,1300,32.0,1.5,0.0,170,300,1100,1250\n"
    "signup_and_login,20,1,230,250.0,120,700,17.0,1.0,0.05,230,330,460,690\n"
)


class FakeResponse:
    """Response returned by FakeClient, usable as a catch_response context."""

    def __init__(self, status_code=200, text='', elapsed=0.1):
        self.status_code = status_code
        self.text = text
        self.elapsed = timedelta(seconds=elapsed)
        self.failures = []
        self.succeeded = False

    def failure(self, message):
        self.failures.append(message)

    def success(self):
        self.succeeded = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeClient:
    """Records requests and answers each one with the next queued response."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _respond(self, method, url, **kwargs):
        self.calls.append({'method': method, 'url': url, **kwargs})
        if self.responses:
            return self.responses.pop(0)
        return FakeResponse()

    def post(self, url, **kwargs):
        return self._respond('POST', url, **kwargs)

    def get(self, url, **kwargs):
        return self._respond('GET', url, **kwargs)


@pytest.fixture
def config():
    return resolve_config(environ={})


@pytest.fixture
def users_file(tmp_path):
    path = tmp_path / 'users.json'
    path.write_text(json.dumps({
        'users': {
            'customer': [
                {'username': 'seed_customer_1', 'password': 'pw1'},
                {'username': 'seed_customer_2', 'password': 'pw2'},
            ],
            'admin': [],
        }
    }))
    return str(path)


@pytest.fixture
def products_file(tmp_path):
    path = tmp_path / 'products.json'
    path.write_text(json.dumps({
        'products': [
            {'id': 1, 'name': 'Samsung galaxy s6', 'desc': 'The Samsung Galaxy S6 is powered by Exynos'},
            {'id': 2, 'name': 'Nokia lumia 1520', 'desc': 'The Nokia Lumia 1520 is powered by Snapdragon'},
            {'id': 3, 'name': 'Nexus 6', 'desc': 'The Motorola Google Nexus 6 is powered by Snapdragon'},
        ]
    }))
    return str(path)
