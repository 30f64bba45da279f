"""
DLX3 Code Catalogs (Functional Core)

Human-readable descriptions for the numeric codes carried by EVNT and DIAG
blocks.  Decoding never consults these tables; they exist for callers that
render or export decoded blocks.

Package Location: src/dlx3/analysis/catalogs.py
"""

from typing import Dict, Tuple

# ---------------------------------------------------------------------------
# Event types (EVNT)
# ---------------------------------------------------------------------------

EVENT_RESERVED: int = 0
EVENT_VEHICLE_STOPPED: int = 1
EVENT_VEHICLE_DRIVING: int = 2
EVENT_DOORS_ENABLED: int = 3
EVENT_DOORS_LOCKED: int = 4
EVENT_DRIVING_DIRECTION_1: int = 5
EVENT_DRIVING_DIRECTION_0: int = 6
EVENT_VEHICLE_EMPTY: int = 7
EVENT_POWER_OFF: int = 8
EVENT_POWER_ON: int = 9
EVENT_SCHEDULED_STOP_REACHED: int = 10
EVENT_SCHEDULED_STOP_LEFT: int = 11

_EVENT_DESCRIPTIONS: Dict[int, str] = {
    EVENT_RESERVED: "Reserved (placeholder only)",
    EVENT_VEHICLE_STOPPED: "Vehicle stopped",
    EVENT_VEHICLE_DRIVING: "Vehicle driving",
    EVENT_DOORS_ENABLED: "Doors enabled",
    EVENT_DOORS_LOCKED: "Doors locked",
    EVENT_DRIVING_DIRECTION_1: "Driving direction 1",
    EVENT_DRIVING_DIRECTION_0: "Driving direction 0",
    EVENT_VEHICLE_EMPTY: "Vehicle empty",
    EVENT_POWER_OFF: "Power off",
    EVENT_POWER_ON: "Power on",
    EVENT_SCHEDULED_STOP_REACHED: "Scheduled stop reached",
    EVENT_SCHEDULED_STOP_LEFT: "Scheduled stop left",
    100: "Wheelchair on board",
    101: "Wheelchair unloaded",
    102: "Wheelchair ramp accessed",
    110: "Bicycle on board",
    111: "Bicycle unloaded",
    112: "Bicycle rack accessed",
    120: "Luggage on board",
    121: "Luggage unloaded",
    122: "Luggage compartment accessed",
    130: "Lavatory occupied",
    131: "Lavatory free",
    132: "Lavatory accessed",
    140: "AUX ON",
    141: "AUX OFF",
    142: "AUX activated",
    152: "Ticket sold",
    162: "Ticket cancelled",
    170: "Engine started",
    171: "Engine stopped",
}

_RESERVED_EVENT_RANGE = range(12, 100)


def event_description(event_type: int) -> str:
    """
    Describe an EVNT type code.

    Codes 12-99 are reserved by the format; anything else not listed is
    user-defined.
    """
    if event_type in _EVENT_DESCRIPTIONS:
        return _EVENT_DESCRIPTIONS[event_type]
    if event_type in _RESERVED_EVENT_RANGE:
        return "Reserved for future use"
    return "User-defined event"


def is_stop_event(event_type: int) -> bool:
    return event_type in (EVENT_SCHEDULED_STOP_REACHED, EVENT_SCHEDULED_STOP_LEFT)


# ---------------------------------------------------------------------------
# Diagnostic codes (DIAG)
# ---------------------------------------------------------------------------

CATEGORY_WARNING: int = 2
CATEGORY_ERROR: int = 3

MODULE_MASTER: int = 11
MODULE_DOOR_CLIENT: int = 20

_CATEGORIES: Dict[int, str] = {
    CATEGORY_WARNING: "Warning",
    CATEGORY_ERROR: "Error",
}

_MODULES: Dict[int, str] = {
    MODULE_MASTER: "PCU or BBM-WEB device (master)",
    MODULE_DOOR_CLIENT: "PCU or TSL device (client)",
}

_SUBMODULES: Dict[Tuple[int, int], str] = {
    (MODULE_MASTER, 0): "Device",
    (MODULE_MASTER, 1): "Signals",
    (MODULE_DOOR_CLIENT, 0): "Door",
}

_MESSAGES: Dict[Tuple[int, int, int], str] = {
    (11, 0, 0): "Battery is empty",
    (11, 0, 1): "No GPS signal reception",
    (11, 0, 2): "GPS receiver failure",
    (11, 1, 0): "Odometer signal failure",
    (11, 1, 1): "Driving signal failure",
    (11, 1, 2): "Doors enabled while vehicle is driving",
    (11, 1, 3): "Odometer contradicts standstill signal",
    (11, 1, 4): "Standstill signal failure",
    (11, 1, 5): "'At stop' signal activated while vehicle is driving",
    (20, 0, 1): "The PCU or TSL device is not responding",
    (20, 0, 2): "Not enough nodes connected to the SSL bus",
    (20, 0, 3): "Flickering sensor",
    (20, 0, 4): "SSL bus is not operational",
    (20, 0, 5): "Sensor or door is not operating correctly",
    (20, 0, 6): "Configuration is erroneous",
    (20, 0, 7): "Door signal unavailable",
    (20, 0, 8): "Blocked sensor",
    (20, 0, 10): "Sensor optic has not detected anything for a long time",
    (20, 0, 11): "Door contact has not changed its state for a long time",
    (20, 0, 12): "Sensor has not detected any valid event for a long time",
    (20, 0, 13): (
        "Counter (counting input) has not counted any valid event "
        "for a long time"
    ),
    (20, 0, 20): "Door is erroneously reported as open",
}

# Door-client messages whose text carries a timestamp or an SSL position.
_TIMESTAMP_MESSAGES = frozenset({10, 11, 12, 13})
_SSL_POSITION_MESSAGES = frozenset({2, 3, 5, 8})


def category_description(category: int) -> str:
    return _CATEGORIES.get(category, f"Unknown Category ({category})")


def module_description(module_id: int) -> str:
    return _MODULES.get(module_id, f"Unknown Module ({module_id})")


def submodule_description(module_id: int, submodule_id: int) -> str:
    return _SUBMODULES.get(
        (module_id, submodule_id), f"Unknown SubModule ({submodule_id})"
    )


def message_description(module_id: int, submodule_id: int, message_id: int) -> str:
    return _MESSAGES.get(
        (module_id, submodule_id, message_id),
        f"Unknown Message (Module: {module_id}, SubModule: {submodule_id}, "
        f"Message: {message_id})",
    )


def has_timestamp_info(module_id: int, submodule_id: int, message_id: int) -> bool:
    return (
        module_id == MODULE_DOOR_CLIENT
        and submodule_id == 0
        and message_id in _TIMESTAMP_MESSAGES
    )


def has_ssl_position_info(module_id: int, submodule_id: int, message_id: int) -> bool:
    return (
        module_id == MODULE_DOOR_CLIENT
        and submodule_id == 0
        and message_id in _SSL_POSITION_MESSAGES
    )


def is_warning(category: int) -> bool:
    return category == CATEGORY_WARNING


def is_error(category: int) -> bool:
    return category == CATEGORY_ERROR


def full_message_description(message) -> str:
    """
    Multi-line description of a ``DiagnosticMessage``.

    Args:
        message: A decoded ``DiagnosticMessage``.

    Returns:
        Message text, category, and module/submodule names; the raw device
        text is included for door-controller messages.
    """
    lines = [
        f"{message_description(message.module_id, message.submodule_id, message.message_id)} "
        f"({category_description(message.category)})"
    ]
    if message.module_id == MODULE_DOOR_CLIENT and message.message:
        lines.append(f"Message: {message.message}")
    lines.append(
        f"Module: {module_description(message.module_id)}, "
        f"SubModule: {submodule_description(message.module_id, message.submodule_id)}"
    )
    return "\n".join(lines)
