from datetime import UTC, datetime


class SystemClock:
    """Wall-clock time port shared by the services and the sweeper."""

    def now_utc(self) -> datetime:
        return datetime.now(UTC)
