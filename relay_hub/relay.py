import logging

from pydantic import BaseModel

from relay_hub.bus import EventBus
from relay_hub.errors import Forbidden, NoDevicesAvailable, Unauthenticated, UnregisteredSender
from relay_hub.models import DeviceIPReceived, DeviceSession, Event, StartDevice
from relay_hub.registry import SessionRegistry
from relay_hub.services.authorization import can_issue_command

logger = logging.getLogger(__name__)


class StartResult(BaseModel):
    devices_notified: int


class CommandRelay:
    """Fans operator commands out to devices and device reports out to operators."""

    def __init__(self, registry: SessionRegistry, bus: EventBus):
        self.registry = registry
        self.bus = bus

    async def broadcast_start(self, from_connection_id: str) -> StartResult:
        operator = self.registry.get_operator(from_connection_id)
        if operator is None:
            raise Unauthenticated()

        allowed = can_issue_command(operator)
        logger.info(
            f"Start command from {operator.username} ({operator.role.value}): "
            f"{'allowed' if allowed else 'denied'}"
        )
        if not allowed:
            raise Forbidden()

        devices = self.registry.list_devices()
        if not devices:
            raise NoDevicesAvailable()

        directive = StartDevice(from_=operator.username, client_connection_id=from_connection_id)
        for device in devices:
            # fire-and-forget; a device that closed mid-broadcast misses it
            await self.bus.unicast(device.connection_id, Event.START_DEVICE, directive)
            logger.info(f"Command sent to device: {device.device_id}")
        return StartResult(devices_notified=len(devices))

    async def report_device_ip(self, connection_id: str, ip: str) -> DeviceSession:
        device = self.registry.update_device_ip(connection_id, ip)
        if device is None:
            raise UnregisteredSender()

        logger.info(f"Device IP received: {device.device_id} {ip}")
        await self.bus.broadcast(Event.DEVICE_IP_RECEIVED, DeviceIPReceived(device_id=device.device_id, ip=ip))
        await self.bus.broadcast(Event.DEVICES_UPDATE, self.registry.list_devices())
        return device
