"""
FocusSyncClient — HTTP client for the remote focus collector.

Handles:
- Session creation (server-assigned session IDs)
- Per-sample metric submission
- Sample series fetch after a session ends
- Frame analysis (scoring) uploads

Every request carries the user's bearer token when one is available.
Failures raise SyncError; the session engine runs these calls best-effort,
so nothing here ever interrupts the local timer.
"""

import json
import logging
import os
from typing import Any, Callable, Dict, List, Optional

import requests

import config
from tracking.analytics import sort_samples
from tracking.session import MetricSample

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised when a collector call fails or returns malformed data."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def load_stored_token() -> str:
    """
    Find the current user's bearer token.

    Checks FOCUS_API_TOKEN first, then the locally stored auth file.

    Returns:
        Token string, or empty string when the user is not signed in.
    """
    token = os.getenv("FOCUS_API_TOKEN", "") or config.FOCUS_API_TOKEN
    if token:
        return token
    try:
        if config.AUTH_FILE.exists():
            data = json.loads(config.AUTH_FILE.read_text())
            return data.get("access_token", "") or ""
    except (OSError, ValueError) as e:
        logger.debug(f"Could not read stored auth token: {e}")
    return ""


class FocusSyncClient:
    """
    Thin client for the collector's session, metrics and analysis endpoints.
    """

    def __init__(
        self,
        base_url: str = "",
        analyze_url: str = "",
        token_provider: Optional[Callable[[], str]] = None,
        http: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialise the client.

        Args:
            base_url: Collector base URL (falls back to config).
            analyze_url: Frame analysis base URL (falls back to config, then base_url).
            token_provider: Returns the bearer token (default load_stored_token).
            http: requests.Session to use (one is created if omitted).
            timeout: Per-request timeout in seconds; None means no timeout.
        """
        self._base_url = (base_url or config.FOCUS_API_URL).rstrip("/")
        self._analyze_url = (analyze_url or config.FOCUS_ANALYZE_URL or self._base_url).rstrip("/")
        self._token_provider = token_provider or load_stored_token
        self._http = http or requests.Session()
        self._timeout = timeout if timeout is not None else config.FOCUS_HTTP_TIMEOUT

    def is_available(self) -> bool:
        """Check if a collector URL is configured."""
        return bool(self._base_url)

    def can_analyze(self) -> bool:
        """Check if a frame-analysis URL is configured."""
        return bool(self._analyze_url)

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    def _headers(self) -> Dict[str, str]:
        """Auth header when a token exists; calls go unauthenticated otherwise."""
        try:
            token = self._token_provider()
        except Exception as e:
            logger.debug(f"Token provider failed: {e}")
            token = ""
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """
        Send a request and decode the JSON body.

        Raises:
            SyncError: On transport failure, non-2xx status or invalid JSON.
        """
        if not url.startswith(("http://", "https://")):
            raise SyncError(f"Collector URL not configured for {method} {url}")
        try:
            response = self._http.request(
                method, url, headers=self._headers(), timeout=self._timeout, **kwargs
            )
        except requests.RequestException as e:
            raise SyncError(f"{method} {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise SyncError(
                f"{method} {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise SyncError(f"{method} {url} returned invalid JSON", status_code=response.status_code) from e

    # ------------------------------------------------------------------
    # Sessions and metrics
    # ------------------------------------------------------------------

    def create_session(self, duration_minutes: int) -> str:
        """
        Register a new session with the collector.

        Args:
            duration_minutes: Planned session length.

        Returns:
            Server-assigned session ID.

        Raises:
            SyncError: If the call fails or the response has no sessionId.
        """
        body = self._request("POST", f"{self._base_url}/sessions", json={"duration": int(duration_minutes)})
        session_id = body.get("sessionId") if isinstance(body, dict) else None
        if session_id is None or session_id == "":
            raise SyncError("Create-session response has no sessionId")
        logger.info(f"Remote session created: {session_id}")
        return str(session_id)

    def submit_sample(self, session_id: str, sample: MetricSample) -> bool:
        """
        Send one metric sample.

        Returns:
            True when the collector acknowledged it.

        Raises:
            SyncError: If the call fails.
        """
        self._request(
            "POST",
            f"{self._base_url}/sessions/{session_id}/metrics",
            json=sample.to_payload(),
        )
        return True

    def fetch_samples(self, session_id: str) -> List[MetricSample]:
        """
        Fetch a session's recorded samples.

        Entries missing ts or score are skipped; scores are clamped to 0-100.

        Returns:
            Samples sorted by timestamp.

        Raises:
            SyncError: If the call fails or the body has no metrics list.
        """
        body = self._request("GET", f"{self._base_url}/sessions/{session_id}/metrics")
        entries = body.get("metrics") if isinstance(body, dict) else None
        if not isinstance(entries, list):
            raise SyncError("Fetch-samples response has no metrics list")

        samples = []
        for entry in entries:
            sample = self._parse_sample(entry)
            if sample is not None:
                samples.append(sample)
        if len(samples) < len(entries):
            logger.debug(f"Skipped {len(entries) - len(samples)} malformed samples")
        return sort_samples(samples)

    @staticmethod
    def _parse_sample(entry: Any) -> Optional[MetricSample]:
        """Build a MetricSample from a {ts, score} entry, or None if malformed."""
        if not isinstance(entry, dict):
            return None
        try:
            timestamp = int(entry["ts"])
            score = int(round(float(entry["score"])))
        except (KeyError, TypeError, ValueError):
            return None
        metrics = entry.get("metrics")
        return MetricSample(
            timestamp=timestamp,
            score=min(100, max(0, score)),
            raw_metrics=metrics if isinstance(metrics, dict) else {},
        )

    # ------------------------------------------------------------------
    # Frame analysis
    # ------------------------------------------------------------------

    def analyze_frame(self, image: bytes) -> Dict[str, Any]:
        """
        Upload one encoded frame for scoring.

        Args:
            image: JPEG bytes.

        Returns:
            Decoded response body, expected as {"metrics": {...}}.

        Raises:
            SyncError: If the call fails.
        """
        files = {"frame": ("frame.jpg", image, "image/jpeg")}
        return self._request("POST", f"{self._analyze_url}/analyze", files=files)
