"""Tests for region routing tables and logging setup."""

import logging

import pytest

from riftwatch.logging_config import setup_logging
from riftwatch.riot.regions import REGION_GROUPS, REGION_NAMES, platform_host, queue_name, regional_host


class TestRegions:
    """Platform and regional hosts."""

    def test_every_region_has_route_and_name(self):
        assert set(REGION_GROUPS) == set(REGION_NAMES)

    def test_hosts(self):
        assert platform_host("EUW1") == "https://euw1.api.riotgames.com"
        assert regional_host("EUW1") == "https://europe.api.riotgames.com"
        assert regional_host("oc1") == "https://sea.api.riotgames.com"

    def test_unknown_region(self):
        with pytest.raises(ValueError):
            platform_host("xx9")
        with pytest.raises(ValueError):
            regional_host("xx9")

    def test_queue_names(self):
        assert queue_name(420) == "Ranked Solo/Duo"
        assert queue_name(12345) == "Queue 12345"


class TestLogging:
    """setup_logging configures the package logger."""

    def test_setup_logging_sets_package_level(self):
        setup_logging("DEBUG")
        assert logging.getLogger("riftwatch").level == logging.DEBUG
        assert logging.getLogger("aiohttp").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
        setup_logging("INFO")
        assert logging.getLogger("riftwatch").level == logging.INFO

    def test_setup_logging_defaults_to_info(self):
        setup_logging()
        assert logging.getLogger("riftwatch").level == logging.INFO

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            setup_logging("VERBOSE")
