"""Unit tests for configuration of the concurrency ceiling."""

import pytest

import mcenter
from mcenter.config import MessageCenterConfig


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, 10),
        (0, 10),
        (4, 4),
        (2.9, 2),
        (0.5, 1),
        (-3, 1),
    ],
)
def test_max_listeners_clamped(value, expected) -> None:
    """Test default, truncation and the lower bound of max_listeners."""
    assert MessageCenterConfig(max_listeners=value).max_listeners == expected


def test_from_mapping() -> None:
    """Test reading the mcenter section of an application config."""
    cnf = {"mcenter": {"maxListeners": 3}}

    assert MessageCenterConfig.from_mapping(cnf).max_listeners == 3
    assert MessageCenterConfig.from_mapping({}).max_listeners == 10
    assert MessageCenterConfig.from_mapping(None).max_listeners == 10


def test_from_env() -> None:
    """Test reading MCENTER_MAX_LISTENERS."""
    assert MessageCenterConfig.from_env({"MCENTER_MAX_LISTENERS": "7"}).max_listeners == 7
    assert MessageCenterConfig.from_env({"MCENTER_MAX_LISTENERS": "2.5"}).max_listeners == 2
    assert MessageCenterConfig.from_env({}).max_listeners == 10


def test_center_uses_config() -> None:
    """Test that the center takes its ceiling from config or keyword."""
    assert mcenter.MessageCenter().max_listeners == 10
    assert mcenter.MessageCenter(max_listeners=0).max_listeners == 10
    assert mcenter.MessageCenter(max_listeners=-1).max_listeners == 1

    config = MessageCenterConfig.from_mapping({"mcenter": {"maxListeners": 2}})
    assert mcenter.MessageCenter(config=config).max_listeners == 2


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2.5", 2),
        ("4", 4),
        ("abc", 10),
        ("", 10),
        (float("nan"), 10),
        (float("inf"), 10),
        (object(), 10),
    ],
)
def test_max_listeners_never_raises(value, expected) -> None:
    """Test that strings are parsed and junk falls back to the default."""
    assert MessageCenterConfig(max_listeners=value).max_listeners == expected


def test_from_mapping_accepts_string_value() -> None:
    """Test that a string maxListeners from a config file is parsed."""
    cnf = {"mcenter": {"maxListeners": "2.5"}}

    assert MessageCenterConfig.from_mapping(cnf).max_listeners == 2


def test_center_rejects_config_and_max_listeners_together() -> None:
    """Test that a conflicting max_listeners is not silently dropped."""
    config = MessageCenterConfig(max_listeners=2)

    with pytest.raises(ValueError, match="not both"):
        mcenter.MessageCenter(config=config, max_listeners=5)
