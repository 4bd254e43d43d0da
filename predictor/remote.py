"""
predictor/remote.py

Remote/local dispatch.

A user-hosted notebook service may expose `POST <base>/predict`. It is
treated as unreliable: every call either yields a RemoteScore or, for any
failure at all, a LocalFallback scored by the local pipeline. Callers always
get a usable PredictionResult and can show which path produced it.

The policy has two states. ATTEMPTING is entered only when a backend URL is
configured; any failure moves to FALLBACK, which always completes. The HTTP
call itself runs on a daemon thread so the timeout and the cancel event can
end the wait at any point, including before the response headers arrive.
"""

from __future__ import annotations

import json
import logging
import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple, Union

import requests

from predictor.features import FeatureSet
from predictor.inference import PredictionResult, Provenance, run_pipeline
from predictor.interventions import generate
from predictor.risk import RiskLevel, classify
from predictor.scoring import clamp_score
from predictor.variants import get_variant


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_REMOTE_CONFIDENCE = 85.0
REMOTE_MODEL_VERSION = "remote-backend-v1.0"
CHUNK_SIZE = 1024
POLL_SECONDS = 0.05


class DispatchState(str, Enum):
    ATTEMPTING = "attempting"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class RemoteScore:
    result: PredictionResult
    status_code: int


@dataclass(frozen=True)
class LocalFallback:
    result: PredictionResult
    reason: str


DispatchOutcome = Union[RemoteScore, LocalFallback]


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


class _InFlight:
    """
    One POST to the backend, run on a daemon thread.

    The waiting side reads `done`, `status`, `body`, `failure` and `error`
    once `done` is set, or calls `abandon()` to stop waiting early. An
    abandoned call closes its response and discards whatever it reads.
    """

    def __init__(self, session: requests.Session, url: str, vector, timeout: float):
        self._session = session
        self._url = url
        self._payload = {"features": vector}
        self._timeout = timeout
        self._abandoned = threading.Event()
        self._response = None

        self.done = threading.Event()
        self.status = 0
        self.body = b""
        self.failure: Optional[str] = None
        self.error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name="remote-predict", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def abandon(self) -> None:
        self._abandoned.set()
        response = self._response
        if response is not None:
            response.close()

    def _run(self) -> None:
        try:
            with self._session.post(
                self._url,
                json=self._payload,
                timeout=self._timeout,
                stream=True,
            ) as response:
                self._response = response
                self.status = response.status_code
                if not 200 <= self.status < 300:
                    self.failure = f"remote backend responded with status {self.status}"
                    return

                chunks = []
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if self._abandoned.is_set():
                        return
                    chunks.append(chunk)
                self.body = b"".join(chunks)
        except requests.exceptions.Timeout:
            self.failure = f"timed out after {self._timeout:g}s"
        except requests.exceptions.RequestException as e:
            self.failure = f"could not reach remote backend: {e}"
        except Exception as e:
            # closing an abandoned response can break the read in progress
            if self._abandoned.is_set():
                logger.debug("Abandoned remote call ended with %r", e)
            else:
                self.error = e
        finally:
            self.done.set()


class RemoteScorer:
    """
    Scores through the remote backend, falling back to the local formula.

    Parameters
    ----------
    base_url : str, optional
        Backend root (without `/predict`). None disables the remote attempt.
    timeout : float
        Seconds allowed for the whole call: connect, read and body download.
    model_version : str, optional
        Variant used for the fallback and for filling missing remote fields.
    session : requests.Session, optional
        Injected for tests; otherwise the scorer owns a new session.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        model_version: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self.variant = get_variant(model_version)
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "RemoteScorer":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -----------------------------------------------------------------
    # public API
    # -----------------------------------------------------------------
    def dispatch(self, features: FeatureSet, cancel: Optional[threading.Event] = None) -> DispatchOutcome:
        """
        Score `features`, remotely if possible.

        `cancel` may be set from another thread to abandon the in-flight
        request; the call then returns a LocalFallback.
        """
        state = DispatchState.ATTEMPTING if self.base_url else DispatchState.FALLBACK
        reason = "no remote backend configured"

        if state is DispatchState.ATTEMPTING:
            logger.info("Calling remote backend at %s", self.base_url)
            body, status, failure = self._attempt(features, cancel)
            if failure is None:
                result, failure = self._from_remote(body, features)
                if result is not None:
                    logger.info("Remote prediction: %s (%s)", result.predicted_score, result.risk_level.value)
                    return RemoteScore(result=result, status_code=status)
            reason = failure
            state = DispatchState.FALLBACK

        logger.warning("Using local fallback model %s: %s", self.variant.version, reason)
        result = run_pipeline(features, self.variant, Provenance.FALLBACK)
        return LocalFallback(result=result, reason=reason)

    # -----------------------------------------------------------------
    # internals
    # -----------------------------------------------------------------
    def _attempt(
        self, features: FeatureSet, cancel: Optional[threading.Event]
    ) -> Tuple[Any, int, Optional[str]]:
        """Returns (decoded body, status code, failure reason or None)."""
        if cancel is not None and cancel.is_set():
            return None, 0, "cancelled before sending"

        call = _InFlight(self._session, f"{self.base_url}/predict", features.to_vector(), self.timeout)
        call.start()

        # bounded by the wall clock, not by individual socket reads
        deadline = time.monotonic() + self.timeout
        while not call.done.wait(POLL_SECONDS):
            if cancel is not None and cancel.is_set():
                call.abandon()
                return None, call.status, "cancelled"
            if time.monotonic() >= deadline:
                call.abandon()
                return None, call.status, f"timed out after {self.timeout:g}s"

        if cancel is not None and cancel.is_set():
            return None, call.status, "cancelled"
        if call.error is not None:
            raise call.error
        if call.failure is not None:
            return None, call.status, call.failure

        try:
            return json.loads(call.body.decode("utf-8")), call.status, None
        except (UnicodeDecodeError, ValueError):
            return None, call.status, "unparseable response body"

    def _from_remote(
        self, body: Any, features: FeatureSet
    ) -> Tuple[Optional[PredictionResult], Optional[str]]:
        """Map a remote body onto a PredictionResult, filling gaps locally."""
        if not isinstance(body, dict):
            return None, "unparseable response body"

        raw_score = _number(body.get("predicted_score"))
        if raw_score is None:
            raw_score = _number(body.get("prediction"))
        if raw_score is None:
            return None, "response has no numeric predicted_score or prediction"
        score = clamp_score(raw_score)

        conf = _number(body.get("confidence"))
        conf = DEFAULT_REMOTE_CONFIDENCE if conf is None else round(max(0.0, min(100.0, conf)), 2)

        try:
            risk = RiskLevel.parse(body.get("risk_level"))
        except ValueError:
            risk = classify(score, features, self.variant.thresholds)

        summary = body.get("intervention")
        if not isinstance(summary, str) or not summary.strip():
            summary = generate(features, score, risk, self.variant.weights.attendance_basis)

        return PredictionResult(
            predicted_score=score,
            confidence_level=conf,
            risk_level=risk,
            intervention_summary=summary,
            model_version=REMOTE_MODEL_VERSION,
            provenance=Provenance.REMOTE,
        ), None
