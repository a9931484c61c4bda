"""Unit tests for the reported location provider."""

from wundercast.models.weather import GeoPosition
from wundercast.services.location import ReportedLocationProvider


def test_fixes_dropped_until_updates_start():
    """Test fixes are only forwarded while updates run."""
    provider = ReportedLocationProvider()
    received = []
    provider.positions.subscribe(received.append)
    fix = GeoPosition(latitude=48.85, longitude=2.35, accuracy=30)

    assert provider.report(fix) is False

    provider.start_updates()
    assert provider.report(fix) is True

    provider.stop_updates()
    assert provider.report(fix) is False

    assert received == [fix]


def test_start_and_stop_are_idempotent():
    """Test start/stop can be called repeatedly."""
    provider = ReportedLocationProvider()

    provider.stop_updates()
    provider.start_updates()
    provider.start_updates()
    assert provider.updating is True

    provider.stop_updates()
    provider.stop_updates()
    assert provider.updating is False


def test_request_authorization():
    """Test authorization requests are recorded."""
    provider = ReportedLocationProvider()
    assert provider.authorization_requested is False

    provider.request_authorization()
    provider.request_authorization()

    assert provider.authorization_requested is True
    assert provider.updating is False


def test_fix_coordinate():
    """Test a fix exposes its coordinate."""
    fix = GeoPosition(latitude=-33.87, longitude=151.21, accuracy=12.5)

    assert fix.coordinate.latitude == -33.87
    assert fix.coordinate.longitude == 151.21
