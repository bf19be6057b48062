"""Unit tests for the consistency check and the introspection API."""

import json

import mcenter


def _wired_center() -> mcenter.MessageCenter:
    center = mcenter.MessageCenter()
    center.register(
        "order", lambda data: None, [{"type": "charge", "timeout": 50}, "notify"]
    )
    center.register("ping", None, ["a", "b"])
    return center


def test_check_reports_unsubscribed_types() -> None:
    """Test that check() lists every declared type without a listener."""
    center = _wired_center()
    center.subscribe("order", "charge", lambda data: None)

    assert center.check() == [("order", "notify"), ("ping", "a"), ("ping", "b")]


def test_check_empty_when_fully_wired() -> None:
    """Test that check() is empty once every type has a listener."""
    center = _wired_center()
    for name, type_ in center.check():
        center.subscribe(name, type_, lambda data: None)

    assert center.check() == []


def test_check_has_no_side_effects() -> None:
    """Test that calling check() twice gives the same answer."""
    center = _wired_center()

    assert center.check() == center.check()
    assert not center.is_subscribed("order", "charge")


def test_get_messages_sorted() -> None:
    """Test that registered names come back sorted."""
    center = _wired_center()
    center.register("alpha", None, [])

    assert center.get_messages() == ["alpha", "order", "ping"]


def test_get_message_info() -> None:
    """Test the per-message info dictionary."""
    center = _wired_center()
    center.subscribe("order", "charge", lambda data: None)

    assert center.get_message_info("order") == {
        "name": "order",
        "has_validator": True,
        "types": ["charge", "notify"],
        "timeouts": {"charge": 50, "notify": 0},
        "subscribed_types": ["charge"],
        "missing_types": ["notify"],
    }
    assert center.get_message_info("ghost") is None


def test_export(tmp_path) -> None:
    """Test that the wiring description is written as JSON."""
    center = _wired_center()

    def charge_card(data):
        return data

    center.subscribe("order", "charge", charge_card)
    filepath = tmp_path / "wiring.json"
    center.export(filepath)

    with open(filepath) as infile:
        data = json.load(infile)

    assert data == center.to_dict()
    assert data["order"] == {
        "charge": "charge_card [timeout=50ms]",
        "notify": "<no listener>",
    }
    assert json.loads(center.to_string()) == data
