import pytest
from django.apps import apps

from roomplanner.services.room_analyzer import RoomAnalyzer

from .factories import door, snapshot, square


@pytest.fixture
def analyzer():
    return RoomAnalyzer()


@pytest.fixture
def square_room():
    """4 x 4 m room with a 1.2 m door in the middle of the z = 0 wall."""
    return snapshot(square(4.0), [door("door-1", 2.0, 0.0, width=1.2)])


@pytest.fixture
def planner_services():
    """The app's shared services, with learned state cleared around each test."""
    services = apps.get_app_config("roomplanner").services
    services.clearance.reset_clearance_settings()
    services.workflow.clear_history()
    yield services
    services.clearance.reset_clearance_settings()
    services.workflow.clear_history()
