"""Location providers feeding device fixes into the weather pipeline."""

from abc import ABC, abstractmethod

from wundercast.core.logging import get_logger
from wundercast.core.streams import Stream
from wundercast.models.weather import GeoPosition

logger = get_logger(__name__)


class LocationProvider(ABC):
    """Source of device location fixes.

    ``start_updates`` and ``stop_updates`` must be safe to call repeatedly.
    """

    def __init__(self):
        self.positions: Stream[GeoPosition] = Stream("positions")

    @abstractmethod
    def request_authorization(self) -> None:
        pass

    @abstractmethod
    def start_updates(self) -> None:
        pass

    @abstractmethod
    def stop_updates(self) -> None:
        pass


class ReportedLocationProvider(LocationProvider):
    """Location provider driven by fixes the client device reports."""

    def __init__(self):
        super().__init__()
        self.authorization_requested = False
        self.updating = False

    def request_authorization(self) -> None:
        if not self.authorization_requested:
            logger.info("location_authorization_requested")
        self.authorization_requested = True

    def start_updates(self) -> None:
        if not self.updating:
            logger.info("location_updates_started")
        self.updating = True

    def stop_updates(self) -> None:
        if self.updating:
            logger.info("location_updates_stopped")
        self.updating = False

    def report(self, position: GeoPosition) -> bool:
        """Publish a device fix.

        Returns:
            True if the fix was forwarded, False if updates are not running
        """
        if not self.updating:
            logger.debug("location_fix_dropped", accuracy=position.accuracy)
            return False

        logger.debug("location_fix", accuracy=position.accuracy)
        self.positions.emit(position)
        return True
