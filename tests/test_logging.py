import logging

import pytest

from apk_release.config import Settings
from apk_release.logging import parse_level


def test_parse_level_accepts_names_and_numbers():
    assert parse_level("debug") == logging.DEBUG
    assert parse_level("WARNING") == logging.WARNING
    assert parse_level(logging.ERROR) == logging.ERROR


def test_parse_level_rejects_unknown_names():
    with pytest.raises(ValueError):
        parse_level("chatty")


def test_log_level_setting_defaults_to_info():
    assert parse_level(Settings(_env_file=None).log_level) == logging.INFO
