import uuid
from typing import Callable, Dict, List, Optional

from relay_hub.models import DEVICE_SERVER_FIELDS, DeviceSession, DeviceStatus, OperatorSession, utc_now


class SessionRegistry:
    """In-memory presence maps for operators and devices, keyed by connection identity.

    Dicts keep insertion order, which is the order snapshots are returned in.
    Every read hands out deep copies so callers can iterate while the
    registry keeps changing.
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        self._operators: Dict[str, OperatorSession] = {}
        self._devices: Dict[str, DeviceSession] = {}
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    @property
    def operator_count(self) -> int:
        return len(self._operators)

    @property
    def device_count(self) -> int:
        return len(self._devices)

    def upsert_operator(self, connection_id: str, info: OperatorSession) -> None:
        self._operators[connection_id] = info.model_copy(update={"connection_id": connection_id}, deep=True)

    def upsert_device(self, connection_id: str, info: dict) -> str:
        """Insert a device built from ``info`` and return its freshly generated id."""
        device_id = self._new_device_id()
        fields = {key: value for key, value in info.items() if key not in DEVICE_SERVER_FIELDS}
        session = DeviceSession(**fields, connection_id=connection_id, device_id=device_id)
        self._devices[connection_id] = session
        return device_id

    def remove_operator(self, connection_id: str) -> Optional[OperatorSession]:
        return self._operators.pop(connection_id, None)

    def remove_device(self, connection_id: str) -> Optional[DeviceSession]:
        return self._devices.pop(connection_id, None)

    def get_operator(self, connection_id: str) -> Optional[OperatorSession]:
        session = self._operators.get(connection_id)
        return session.model_copy(deep=True) if session else None

    def get_device(self, connection_id: str) -> Optional[DeviceSession]:
        session = self._devices.get(connection_id)
        return session.model_copy(deep=True) if session else None

    def list_operators(self) -> List[OperatorSession]:
        return [session.model_copy(deep=True) for session in self._operators.values()]

    def list_devices(self) -> List[DeviceSession]:
        return [session.model_copy(deep=True) for session in self._devices.values()]

    def update_device_ip(self, connection_id: str, ip: str) -> Optional[DeviceSession]:
        session = self._devices.get(connection_id)
        if session is None:
            return None
        session.ip_address = ip
        session.status = DeviceStatus.READY
        session.last_ip_update = utc_now()
        return session.model_copy(deep=True)

    def _new_device_id(self) -> str:
        in_use = {session.device_id for session in self._devices.values()}
        device_id = self._id_factory()
        while device_id in in_use:
            device_id = self._id_factory()
        return device_id
