"""
Scheduled Refresh Task

Fire-and-forget wrapper around the snapshot builder for the periodic
trigger. A run never raises; its outcome is published as a
RefreshObservation to registered listeners and kept as the latest status.
"""
import threading
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Callable, List, Optional

from src.publicmap.services.snapshot_builder import SnapshotBuilder
from src.publicmap.utils.clock import Clock, utcnow
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)

STARTED = "started"
COMPLETED = "completed"
FAILED = "failed"


@dataclass
class RefreshObservation:
    """Operational view of one refresh run."""
    trigger: str
    status: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    snapshot_date: Optional[date] = None
    rows_written: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


RefreshListener = Callable[[RefreshObservation], None]


class RefreshTask:
    """
    Runs snapshot refreshes and reports started/completed/failed.

    Usage:
        task = RefreshTask(SnapshotBuilder(SessionLocal))
        task.add_listener(lambda obs: print(obs.status))
        task.run(trigger="scheduled")
    """

    def __init__(self, builder: SnapshotBuilder, clock: Optional[Clock] = None):
        self.builder = builder
        self.clock = clock or utcnow
        self._listeners: List[RefreshListener] = []
        self._lock = threading.Lock()
        self._last: Optional[RefreshObservation] = None

    @property
    def last_observation(self) -> Optional[RefreshObservation]:
        with self._lock:
            return self._last

    def add_listener(self, listener: RefreshListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def run(self, trigger: str = "scheduled") -> RefreshObservation:
        """
        Refresh the snapshot, swallowing and logging any failure.

        The next scheduled run retries naturally.

        Returns:
            Final observation (completed or failed)
        """
        observation = RefreshObservation(
            trigger=trigger,
            status=STARTED,
            started_at=self.clock(),
        )
        self._publish(observation)

        try:
            result = self.builder.refresh()
        except Exception as e:
            observation = RefreshObservation(
                trigger=trigger,
                status=FAILED,
                started_at=observation.started_at,
                finished_at=self.clock(),
                error=str(e),
            )
            logger.error(
                "scheduled_refresh_failed",
                trigger=trigger,
                error=str(e),
                error_type=type(e).__name__
            )
        else:
            observation = RefreshObservation(
                trigger=trigger,
                status=COMPLETED,
                started_at=observation.started_at,
                finished_at=self.clock(),
                snapshot_date=result.snapshot_date,
                rows_written=result.rows_written,
            )

        self._publish(observation)
        return observation

    def start_background(self, trigger: str = "scheduled") -> threading.Thread:
        """Run in a daemon thread without waiting for completion."""
        thread = threading.Thread(
            target=self.run,
            kwargs={"trigger": trigger},
            name="public-map-refresh",
            daemon=True,
        )
        thread.start()
        return thread

    def _publish(self, observation: RefreshObservation) -> None:
        with self._lock:
            self._last = observation
            listeners = list(self._listeners)
        logger.info(
            "refresh_observation",
            trigger=observation.trigger,
            status=observation.status,
            rows_written=observation.rows_written,
        )
        for listener in listeners:
            try:
                listener(observation)
            except Exception as e:
                logger.warning("refresh_listener_failed", error=str(e))
