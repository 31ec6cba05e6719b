from __future__ import annotations

import asyncio
import base64
import json

import pytest

from lockhandler._mqtt import TtnMqttRuntime, build_bootstrap, build_downlink_message
from lockhandler.config import LockhandlerConfig
from lockhandler.exceptions import LockhandlerTransportError


def _config() -> LockhandlerConfig:
    return LockhandlerConfig(ttn_app_id="my-locks", ttn_access_key="NNSXS.SECRET")


def test_bootstrap_from_config() -> None:
    bootstrap = build_bootstrap(_config())

    assert bootstrap.broker_host == "eu1.cloud.thethings.network"
    assert bootstrap.broker_port == 8883
    assert bootstrap.tls is True
    assert bootstrap.username == "my-locks@ttn"
    assert bootstrap.password == "NNSXS.SECRET"
    assert bootstrap.uplink_topic == "v3/my-locks@ttn/devices/+/up"


@pytest.mark.parametrize(
    ("strategy", "suffix"),
    [("last", "replace"), ("replace", "replace"), ("first", "push"), ("push", "push")],
)
def test_downlink_topic(strategy: str, suffix: str) -> None:
    topic = build_bootstrap(_config()).downlink_topic("lock-01", strategy)
    assert topic == f"v3/my-locks@ttn/devices/lock-01/down/{suffix}"


def test_downlink_topic_rejects_unknown_strategy() -> None:
    with pytest.raises(ValueError):
        build_bootstrap(_config()).downlink_topic("lock-01", "whenever")


def test_downlink_message() -> None:
    body = build_downlink_message(bytes([0x01, 0x01, 0x01]), 1, False)

    (downlink,) = body["downlinks"]
    assert downlink["f_port"] == 1
    assert base64.b64decode(downlink["frm_payload"]) == bytes([0x01, 0x01, 0x01])
    assert downlink["confirmed"] is False
    json.dumps(body)


@pytest.mark.asyncio
async def test_send_without_start_raises() -> None:
    runtime = TtnMqttRuntime(loop=asyncio.get_running_loop(), on_uplink=lambda _uplink: None)

    assert runtime.is_running is False
    with pytest.raises(LockhandlerTransportError):
        runtime.send("lock-01", b"\x01", 1, False)


@pytest.mark.asyncio
async def test_stop_without_start_is_noop() -> None:
    runtime = TtnMqttRuntime(loop=asyncio.get_running_loop(), on_uplink=lambda _uplink: None)
    runtime.stop()
    assert runtime.is_connected is False
