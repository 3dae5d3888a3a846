import random

from tempest.models import SecurityOptions, TestConfig
from tempest.security import (
    MALFORMED_JSON_BODY,
    SENSITIVE_PATHS,
    USER_AGENTS,
    OutgoingRequest,
    apply_brute_force,
    apply_security_behaviors,
    replace_path,
)


class FixedRng:
    def __init__(self, value: float):
        self.value = value

    def random(self):
        return self.value

    def choice(self, seq):
        return seq[0]

    def randrange(self, stop):
        return 42


def _request(**headers):
    return OutgoingRequest(method="POST", headers=dict(headers), body='{"ok": true}')


def test_body_only_for_methods_that_carry_one():
    get = TestConfig(target_url="http://stub/", http_method="get", body="x")
    head = TestConfig(target_url="http://stub/", http_method="HEAD", body="x")
    post = TestConfig(target_url="http://stub/", http_method="POST", body="x")
    assert OutgoingRequest.from_config(get).body is None
    assert OutgoingRequest.from_config(head).body is None
    assert OutgoingRequest.from_config(post).body == "x"


def test_no_options_leaves_request_alone():
    req = _request()
    assert apply_security_behaviors(req, "http://stub/ok", None) == "http://stub/ok"
    assert req.body == '{"ok": true}'


def test_random_headers_overwrites_user_agent():
    req = _request(**{"user-agent": "mine"})
    apply_security_behaviors(req, "http://stub/", SecurityOptions(random_headers=True), random.Random(3))
    assert req.user_agent in USER_AGENTS
    assert "user-agent" not in req.headers


def test_error_inducing_when_drawn():
    req = _request(**{"Content-Type": "text/plain"})
    apply_security_behaviors(req, "http://stub/", SecurityOptions(error_inducing=True), FixedRng(0.1))
    assert req.body == MALFORMED_JSON_BODY
    assert req.headers == {"Content-Type": "application/json"}


def test_error_inducing_rate():
    rng = random.Random(2024)
    opts = SecurityOptions(error_inducing=True)
    hits = 0
    for _ in range(1000):
        req = _request()
        apply_security_behaviors(req, "http://stub/", opts, rng)
        if req.body == MALFORMED_JSON_BODY:
            assert req.headers["Content-Type"] == "application/json"
            hits += 1
    assert 150 <= hits <= 250


def test_endpoint_scanning_replaces_path_and_keeps_query():
    url = apply_security_behaviors(
        _request(), "https://stub:8443/ok?x=1", SecurityOptions(endpoint_scanning=True), FixedRng(0.0)
    )
    assert url == "https://stub:8443/admin?x=1"


def test_endpoint_scanning_rate():
    rng = random.Random(99)
    opts = SecurityOptions(endpoint_scanning=True)
    scanned = 0
    for _ in range(1000):
        url = apply_security_behaviors(_request(), "http://stub/ok?x=1", opts, rng)
        path = url.split("//", 1)[1].split("/", 1)[1].split("?")[0]
        if f"/{path}" in SENSITIVE_PATHS:
            scanned += 1
        else:
            assert url == "http://stub/ok?x=1"
    assert 250 <= scanned <= 350


def test_replace_path_falls_back_to_concatenation():
    assert replace_path("not a url", "/admin") == "not a url/admin"


def test_brute_force_appends_attempt():
    opts = SecurityOptions(brute_force=True)
    assert apply_brute_force("http://stub/ok", opts, FixedRng(0)) == "http://stub/ok?attempt=42"
    assert apply_brute_force("http://stub/ok?a=b", opts, FixedRng(0)) == "http://stub/ok?a=b&attempt=42"


def test_brute_force_attempt_range():
    rng = random.Random(5)
    opts = SecurityOptions(brute_force=True)
    attempts = [int(apply_brute_force("http://s/", opts, rng).rsplit("=", 1)[1]) for _ in range(200)]
    assert all(0 <= a < 10000 for a in attempts)


def test_brute_force_skipped_while_scanning():
    opts = SecurityOptions(brute_force=True, endpoint_scanning=True)
    assert apply_brute_force("http://stub/ok", opts, FixedRng(0)) == "http://stub/ok"
