"""
Tests for the remote/local dispatch policy.

============================================================
TEST SCENARIOS
============================================================
1. No backend configured -> local fallback, no request sent
2. Remote success -> RemoteScore, missing fields filled locally
3. Timeout / network error / non-2xx / bad body -> LocalFallback
4. Cancellation before sending and mid-download -> LocalFallback
5. Fallback results match the local pipeline
6. A slow or stalled real server cannot hold the caller past the
   timeout, and cancellation from another thread returns promptly

============================================================
"""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import pytest
import requests

from predictor.features import normalize
from predictor.inference import Provenance, predict
from predictor.remote import (
    DEFAULT_REMOTE_CONFIDENCE,
    REMOTE_MODEL_VERSION,
    LocalFallback,
    RemoteScore,
    RemoteScorer,
)
from predictor.risk import RiskLevel


# ============================================================
# FIXTURES
# ============================================================

class FakeResponse:
    """Minimal stand-in for a streamed requests.Response."""

    def __init__(self, status_code=200, body=None, chunks=None):
        self.status_code = status_code
        if chunks is None:
            raw = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
            chunks = [raw]
        self._chunks = chunks

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def close(self):
        pass

    def iter_content(self, chunk_size=1):
        yield from self._chunks


@pytest.fixture
def features():
    return normalize({
        "g1": 10, "g2": 12, "studytime": 2, "absences": 3,
        "effort_score": 7.5, "emotional_sentiment": 0.6, "participation_index": 8.2,
    })


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


def make_scorer(session, url="http://backend.test"):
    return RemoteScorer(url, timeout=10, session=session)


def assert_usable(result):
    assert isinstance(result.risk_level, RiskLevel)
    assert result.intervention_summary
    assert 0 <= result.predicted_score <= 20


# ============================================================
# TEST: NO BACKEND
# ============================================================

class TestNoBackend:

    def test_local_without_request(self, session, features):
        outcome = RemoteScorer(None, session=session).dispatch(features)
        assert isinstance(outcome, LocalFallback)
        assert outcome.reason == "no remote backend configured"
        assert outcome.result.provenance is Provenance.FALLBACK
        session.post.assert_not_called()


# ============================================================
# TEST: SUCCESS
# ============================================================

class TestRemoteSuccess:

    def test_full_response(self, session, features):
        session.post.return_value = FakeResponse(200, {
            "predicted_score": 13.456, "confidence": 91, "risk_level": "Medium",
            "intervention": "Weekly mentoring.",
        })
        outcome = make_scorer(session).dispatch(features)

        assert isinstance(outcome, RemoteScore)
        assert outcome.status_code == 200
        result = outcome.result
        assert result.predicted_score == 13.46
        assert result.confidence_level == 91
        assert result.risk_level is RiskLevel.MEDIUM
        assert result.intervention_summary == "Weekly mentoring."
        assert result.model_version == REMOTE_MODEL_VERSION
        assert result.provenance is Provenance.REMOTE
        assert result.feature_contributions is None

    def test_request_shape(self, session, features):
        session.post.return_value = FakeResponse(200, {"predicted_score": 12})
        make_scorer(session, "http://backend.test/").dispatch(features)

        args, kwargs = session.post.call_args
        assert args[0] == "http://backend.test/predict"
        assert kwargs["json"] == {"features": features.to_vector()}
        assert len(kwargs["json"]["features"]) == 15
        assert kwargs["timeout"] == 10

    def test_missing_fields_filled_locally(self, session, features):
        session.post.return_value = FakeResponse(200, {"prediction": 7})
        result = make_scorer(session).dispatch(features).result

        assert result.predicted_score == 7
        assert result.confidence_level == DEFAULT_REMOTE_CONFIDENCE
        assert result.risk_level is RiskLevel.HIGH
        assert "Immediate attention required." in result.intervention_summary

    def test_invalid_risk_level_derived(self, session, features):
        session.post.return_value = FakeResponse(200, {"predicted_score": 9.5, "risk_level": "banana"})
        assert make_scorer(session).dispatch(features).result.risk_level is RiskLevel.MEDIUM

    def test_remote_score_clamped(self, session, features):
        session.post.return_value = FakeResponse(200, {"predicted_score": 25, "confidence": 140})
        result = make_scorer(session).dispatch(features).result
        assert result.predicted_score == 20
        assert result.confidence_level == 100


# ============================================================
# TEST: FAILURES
# ============================================================

class TestFallback:

    def test_server_error(self, session, features):
        session.post.return_value = FakeResponse(500, {"error": "boom"})
        outcome = make_scorer(session).dispatch(features)
        assert isinstance(outcome, LocalFallback)
        assert "500" in outcome.reason
        assert_usable(outcome.result)

    def test_timeout(self, session, features):
        session.post.side_effect = requests.exceptions.Timeout()
        outcome = make_scorer(session).dispatch(features)
        assert isinstance(outcome, LocalFallback)
        assert "timed out" in outcome.reason
        assert outcome.result.provenance is Provenance.FALLBACK
        assert_usable(outcome.result)

    def test_connection_error(self, session, features):
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        outcome = make_scorer(session).dispatch(features)
        assert isinstance(outcome, LocalFallback)
        assert "could not reach remote backend" in outcome.reason

    @pytest.mark.parametrize("body", [b"not json", b"[1, 2, 3]", b'{"confidence": 90}',
                                      b'{"predicted_score": "twelve"}', b'{"predicted_score": true}'])
    def test_unusable_bodies(self, session, features, body):
        session.post.return_value = FakeResponse(200, body)
        outcome = make_scorer(session).dispatch(features)
        assert isinstance(outcome, LocalFallback)
        assert_usable(outcome.result)

    def test_fallback_matches_local_pipeline(self, session, features):
        session.post.return_value = FakeResponse(503, b"")
        outcome = make_scorer(session).dispatch(features)
        local = predict(features)
        assert outcome.result.predicted_score == local.predicted_score
        assert outcome.result.risk_level is local.risk_level
        assert outcome.result.intervention_summary == local.intervention_summary


# ============================================================
# TEST: CANCELLATION AND LIFECYCLE
# ============================================================

class TestCancellation:

    def test_cancel_before_sending(self, session, features):
        cancel = threading.Event()
        cancel.set()
        outcome = make_scorer(session).dispatch(features, cancel=cancel)
        assert isinstance(outcome, LocalFallback)
        session.post.assert_not_called()

    def test_cancel_during_download(self, session, features):
        cancel = threading.Event()

        def chunks():
            cancel.set()
            yield b'{"predicted_score": 12}'

        session.post.return_value = FakeResponse(200, chunks=chunks())
        outcome = make_scorer(session).dispatch(features, cancel=cancel)
        assert isinstance(outcome, LocalFallback)
        assert outcome.reason == "cancelled"

    def test_context_manager_closes_session(self, session):
        with make_scorer(session):
            pass
        session.close.assert_called_once()


# ============================================================
# TEST: WALL-CLOCK DEADLINE AGAINST A REAL SERVER
# ============================================================

BODY = json.dumps({"predicted_score": 12.5, "confidence": 90, "padding": "x" * 20}).encode("utf-8")


class SlowHandler(BaseHTTPRequestHandler):
    """Serves /predict with configurable stalls; set on the server object."""

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        try:
            time.sleep(self.server.header_delay)
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(BODY)))
            self.end_headers()
            for i in range(len(BODY)):
                self.wfile.write(BODY[i:i + 1])
                self.wfile.flush()
                time.sleep(self.server.byte_delay)
        except OSError:
            pass

    def log_message(self, *args):
        pass


def local_session():
    session = requests.Session()
    session.trust_env = False  # no proxies for loopback
    return session


@pytest.fixture
def slow_server():
    servers = []

    def start(header_delay=0.0, byte_delay=0.0):
        server = ThreadingHTTPServer(("127.0.0.1", 0), SlowHandler)
        server.header_delay = header_delay
        server.byte_delay = byte_delay
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return f"http://127.0.0.1:{server.server_address[1]}"

    yield start
    for server in servers:
        server.shutdown()
        server.server_close()


class TestDeadline:

    def test_fast_server_scores_remotely(self, slow_server, features):
        with RemoteScorer(slow_server(), timeout=5, session=local_session()) as scorer:
            outcome = scorer.dispatch(features)
        assert isinstance(outcome, RemoteScore)
        assert outcome.result.predicted_score == 12.5

    def test_slow_drip_body_bounded_by_timeout(self, slow_server, features):
        # the whole body takes several seconds; every single read is quick
        url = slow_server(byte_delay=0.15)
        started = time.monotonic()
        with RemoteScorer(url, timeout=1.0, session=local_session()) as scorer:
            outcome = scorer.dispatch(features)
        elapsed = time.monotonic() - started

        assert isinstance(outcome, LocalFallback)
        assert outcome.reason == "timed out after 1s"
        assert elapsed < 2.5
        assert_usable(outcome.result)

    def test_stalled_headers_bounded_by_timeout(self, slow_server, features):
        url = slow_server(header_delay=5.0)
        started = time.monotonic()
        with RemoteScorer(url, timeout=1.0, session=local_session()) as scorer:
            outcome = scorer.dispatch(features)
        assert isinstance(outcome, LocalFallback)
        assert time.monotonic() - started < 2.5

    def test_cancel_while_waiting_for_headers(self, slow_server, features):
        url = slow_server(header_delay=3.0)
        cancel = threading.Event()
        timer = threading.Timer(0.2, cancel.set)
        started = time.monotonic()
        timer.start()
        try:
            with RemoteScorer(url, timeout=10, session=local_session()) as scorer:
                outcome = scorer.dispatch(features, cancel=cancel)
        finally:
            timer.cancel()
        elapsed = time.monotonic() - started

        assert isinstance(outcome, LocalFallback)
        assert outcome.reason == "cancelled"
        assert elapsed < 1.0
