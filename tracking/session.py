"""Focus session record and per-sample metric data."""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Any

import config

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    """Lifecycle states of a focus session."""
    IDLE = config.STATUS_IDLE
    RUNNING = config.STATUS_RUNNING
    PAUSED = config.STATUS_PAUSED
    COMPLETED = config.STATUS_COMPLETED


def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class MetricSample:
    """
    One scored observation produced from a captured frame.

    Samples are immutable once created. ``timestamp`` is epoch milliseconds.
    """
    timestamp: int
    score: int
    raw_metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def recorded_at(self) -> datetime:
        """Wall-clock time of the sample."""
        return datetime.fromtimestamp(self.timestamp / 1000.0)

    def to_payload(self) -> Dict[str, Any]:
        """Wire body for the submit-sample call."""
        return {"ts": self.timestamp, "score": self.score, "metrics": dict(self.raw_metrics)}


class FocusSession:
    """
    A single timed focus interval.

    Created optimistically when the user starts a session. The remote
    collector's identifier is attached later, if and when it arrives.
    """

    def __init__(self, duration_minutes: int, session_id: Optional[str] = None):
        """
        Initialize a new session.

        Args:
            duration_minutes: Planned session length in minutes.
            session_id: Optional local ID. If None, a random one is generated.
        """
        self.session_id = session_id or uuid.uuid4().hex
        self.duration_seconds: int = int(duration_minutes) * 60
        self.started_at: datetime = datetime.now()
        self.ended_at: Optional[datetime] = None
        self.status: SessionStatus = SessionStatus.RUNNING
        self.remote_session_id: Optional[str] = None
        self.samples: List[MetricSample] = []

    @property
    def duration_minutes(self) -> int:
        return self.duration_seconds // 60

    @property
    def label(self) -> str:
        """Human-readable name used for report files, e.g. "FocusFy Monday 2.45PM"."""
        day = self.started_at.strftime("%A")
        clock = self.started_at.strftime("%I.%M%p").lstrip('0')
        return f"FocusFy {day} {clock}"

    def record_sample(self, score: int, raw_metrics: Optional[Dict[str, Any]] = None) -> MetricSample:
        """
        Append a new sample, keeping timestamps non-decreasing.

        Args:
            score: Focus score (0-100).
            raw_metrics: Scorer metrics the score was derived from.

        Returns:
            The created sample.
        """
        timestamp = now_millis()
        if self.samples and timestamp < self.samples[-1].timestamp:
            # Wall clock stepped backwards; keep generation order
            timestamp = self.samples[-1].timestamp
        sample = MetricSample(timestamp=timestamp, score=int(score), raw_metrics=dict(raw_metrics or {}))
        self.samples.append(sample)
        return sample

    def average_score(self) -> Optional[float]:
        """Mean of recorded scores, or None when no sample was recorded."""
        if not self.samples:
            return None
        return sum(s.score for s in self.samples) / len(self.samples)

    def end(self, end_time: Optional[datetime] = None) -> None:
        """
        Mark the session completed.

        Note:
            Calling end() multiple times is safe - subsequent calls are ignored.
        """
        if self.ended_at is not None:
            return
        self.ended_at = end_time or datetime.now()
        self.status = SessionStatus.COMPLETED
        logger.info(f"Session {self.session_id} ended with {len(self.samples)} samples")
