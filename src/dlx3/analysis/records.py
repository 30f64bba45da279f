"""
DLX3 Sub-Records (Functional Core)

Repeating records owned by a single parent block.  A new instance is
created for every decoded record; nothing here is shared between blocks.

Package Location: src/dlx3/analysis/records.py
"""

from dataclasses import dataclass
from typing import Optional

# Diagnostic module id of a PCU/TSL door-controller client device.
DOOR_CONTROLLER_MODULE: int = 20

# Width in bytes of one door counter record: u32 id, u8 instance, 3 x i16.
DOOR_COUNT_SIZE: int = 11

# Width in bytes of one exchange-time record: u32 id, u8 instance, 4 x u32.
EXCHANGE_TIME_SIZE: int = 17

# Legacy exchange-time record: u8 door id, 2 x u16.
LEGACY_EXCHANGE_TIME_SIZE: int = 5

# Diagnostic entry header: u32 timestamp + module/submodule/message/category.
DIAGNOSTIC_HEADER_SIZE: int = 8


@dataclass
class DoorCount:
    """Passenger counts of one door; deltas may be negative corrections."""

    device_id: int = 0
    instance: int = 0
    boarding: int = 0
    alighting: int = 0
    uncertain: int = 0

    @property
    def total(self) -> int:
        return self.boarding + self.alighting


@dataclass
class DoorConfiguration:
    """Configuration of one door on a PCU or TSL device."""

    device_id: int = 0
    instance: int = 0
    device_model: str = ""
    door_name: str = ""
    vehicle_id: str = ""
    vehicle_type: str = ""
    operator: str = ""

    def is_complete(self) -> bool:
        return all((
            self.device_model,
            self.door_name,
            self.vehicle_id,
            self.vehicle_type,
            self.operator,
        ))


@dataclass
class DiagnosticMessage:
    """
    One entry of a DIAG block.

    For door-controller messages (module 20) the free text is a list of
    ``key:value`` pairs; ``addr``, ``inst`` and ``info``/``time`` are
    lifted into ``device_id``, ``door_instance`` and ``additional_info``.
    """

    timestamp: int = 0
    module_id: int = 0
    submodule_id: int = 0
    message_id: int = 0
    category: int = 0
    message: Optional[str] = None
    device_id: Optional[int] = None
    door_instance: Optional[int] = None
    additional_info: Optional[str] = None

    @property
    def has_device_info(self) -> bool:
        return self.module_id == DOOR_CONTROLLER_MODULE

    @property
    def diag_id(self) -> int:
        return (self.module_id << 8) | self.submodule_id


@dataclass
class TrainCar:
    vehicle_id: str = ""
    vehicle_type: str = ""
    operator: str = ""


@dataclass
class DoorExchangeTime:
    """
    Passenger movement and door opening times of one door.

    A timestamp of 0 means the device did not record that moment.
    """

    device_id: int = 0
    instance: int = 0
    first_passenger_movement: int = 0
    last_passenger_movement: int = 0
    first_opening: int = 0
    last_closing: int = 0

    @property
    def passenger_exchange_seconds(self) -> Optional[int]:
        if self.first_passenger_movement and self.last_passenger_movement:
            return self.last_passenger_movement - self.first_passenger_movement
        return None

    @property
    def door_open_seconds(self) -> Optional[int]:
        if self.first_opening and self.last_closing:
            return self.last_closing - self.first_opening
        return None
