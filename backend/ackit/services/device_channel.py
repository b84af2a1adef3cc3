# Overview: Outbound command channel to connected devices and the frontend push channel.

"""
Device Command Channel

Devices are addressed by serial number. Every command returns a result
mapping {"success": bool, "message": str | None}; a device that is not
connected answers {"success": False, "message": "Device not connected"}.

Dispatch is best-effort and always happens after the database commit:
the persisted lock state is authoritative and a device that misses a
command is resynchronised from the database when it reconnects. Errors
raised by a channel are logged and counted, never propagated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_SYNC_TEMPERATURE = 24
NOT_CONNECTED = {"success": False, "message": "Device not connected"}


class DeviceCommandChannel:
    """Interface implemented by real transports (websocket hub, MQTT bridge, ...)."""

    def send_power_command(self, device_key: str, is_on: bool) -> dict:
        raise NotImplementedError

    def send_lock_command(self, device_key: str, locked: bool) -> dict:
        raise NotImplementedError

    def send_set_temperature(self, device_key: str, temperature: int) -> dict:
        raise NotImplementedError

    def request_room_temperature(self, device_key: str) -> dict:
        raise NotImplementedError

    def is_device_connected(self, device_key: str) -> bool:
        raise NotImplementedError

    def broadcast_to_frontend(self, payload: dict) -> None:
        raise NotImplementedError


class NullDeviceChannel(DeviceCommandChannel):
    """No transport wired: nothing is ever connected."""

    def send_power_command(self, device_key, is_on):
        return dict(NOT_CONNECTED)

    def send_lock_command(self, device_key, locked):
        return dict(NOT_CONNECTED)

    def send_set_temperature(self, device_key, temperature):
        return dict(NOT_CONNECTED)

    def request_room_temperature(self, device_key):
        return dict(NOT_CONNECTED)

    def is_device_connected(self, device_key):
        return False

    def broadcast_to_frontend(self, payload):
        logger.debug("Frontend broadcast dropped (no channel): %s", payload.get("type"))


class DeviceChannelRegistry:
    """Flask extension holding the active DeviceCommandChannel."""

    def __init__(self, channel: DeviceCommandChannel | None = None):
        self.channel = channel or NullDeviceChannel()

    def init_app(self, app, channel: DeviceCommandChannel | None = None) -> None:
        if channel is not None:
            self.channel = channel
        app.extensions["ackit_device_channel"] = self

    def set_channel(self, channel: DeviceCommandChannel | None) -> None:
        self.channel = channel or NullDeviceChannel()


@dataclass
class DispatchSummary:
    sent: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return {"sent": self.sent, "skipped": self.skipped, "failed": self.failed}


def _channel() -> DeviceCommandChannel:
    from ..extensions import device_channels
    return device_channels.channel


def dispatch_lock_commands(devices, locked: bool, sync_temperature: bool = True) -> DispatchSummary:
    """
    Send LOCK/UNLOCK to each device; on a successful LOCK also push the
    persisted setpoint so the hardware follows the database.
    """
    channel = _channel()
    summary = DispatchSummary()
    for device in devices:
        key = device.serial_number
        if not key:
            summary.skipped += 1
            continue
        try:
            result = channel.send_lock_command(key, locked)
            if not result.get("success"):
                summary.skipped += 1
                logger.warning("Lock command not delivered to %s: %s", key, result.get("message"))
                continue
            if locked and sync_temperature:
                channel.send_set_temperature(key, device.temperature or DEFAULT_SYNC_TEMPERATURE)
            summary.sent += 1
        except Exception:
            summary.failed += 1
            logger.warning("Lock command to %s raised", key, exc_info=True)
    return summary


def dispatch_restore_commands(devices) -> DispatchSummary:
    """After an unlock: UNLOCK, restored setpoint, restored power state, then notify the frontend."""
    channel = _channel()
    summary = DispatchSummary()
    for device in devices:
        key = device.serial_number
        if not key:
            summary.skipped += 1
            continue
        try:
            result = channel.send_lock_command(key, False)
            if not result.get("success"):
                summary.skipped += 1
                logger.warning("Unlock command not delivered to %s: %s", key, result.get("message"))
                continue
            if device.temperature is not None:
                channel.send_set_temperature(key, device.temperature)
            channel.send_power_command(key, bool(device.is_on))
            summary.sent += 1
        except Exception:
            summary.failed += 1
            logger.warning("Restore commands to %s raised", key, exc_info=True)
        notify_frontend({
            "type": "DEVICE_STATE_UPDATE",
            "device_id": device.id,
            "serial_number": key,
            "temperature": device.temperature,
            "is_on": bool(device.is_on),
            "current_state": device.current_state,
        })
    return summary


def send_set_temperature(device) -> dict:
    """Best-effort SET_TEMP for a single device."""
    if not device.serial_number:
        return {"success": False, "message": "Device has no serial number"}
    try:
        return _channel().send_set_temperature(device.serial_number, device.temperature)
    except Exception as exc:
        logger.warning("Set-temperature command to %s raised", device.serial_number, exc_info=True)
        return {"success": False, "message": str(exc)}


def notify_frontend(payload: dict) -> None:
    try:
        _channel().broadcast_to_frontend(payload)
    except Exception:
        logger.warning("Frontend broadcast failed", exc_info=True)
