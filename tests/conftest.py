import pytest

from bots._browser_launch import BrowserLaunchConfig
from models import TestItem
from settings import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(
        input_path=tmp_path / "filesToCheckPersonalizer.xlsx",
        report_dir=tmp_path / "report",
        screenshot_dir=tmp_path / "screenshots",
        settle_delay_ms=0,
        console_settle_delay_ms=0,
        launch=BrowserLaunchConfig(),
    )


@pytest.fixture
def item():
    return TestItem(
        url="https://ex.com/en-us/page",
        identifier="p1",
        element_selector=".card",
        is_recommendation_flow=True,
        expected_weights=(0.5, 1.0),
    )
