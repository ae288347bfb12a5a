from enum import Enum, IntEnum
from typing import Dict, FrozenSet, Optional, Union


class Role(IntEnum):
    USER = 16
    VENUE_OWNER = 3
    ADMIN = 2


class Capability(str, Enum):
    CREATE_RESERVATION = "create_reservation"
    MANAGE_OWN_VENUES = "manage_own_venues"
    VIEW_RECEIVED_RESERVATIONS = "view_received_reservations"
    ADMINISTER = "administer"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.USER: frozenset({Capability.CREATE_RESERVATION}),
    Role.VENUE_OWNER: frozenset({
        Capability.CREATE_RESERVATION,
        Capability.MANAGE_OWN_VENUES,
        Capability.VIEW_RECEIVED_RESERVATIONS,
    }),
    Role.ADMIN: frozenset(Capability),
}


def parse_role(value: Union[int, str, None]) -> Optional[Role]:
    if value is None or value == "":
        return None
    try:
        return Role(int(value))
    except ValueError:
        return None


def has_capability(role: Union[Role, int, str, None], capability: Capability) -> bool:
    parsed = role if isinstance(role, Role) else parse_role(role)
    if parsed is None:
        return False
    return capability in ROLE_CAPABILITIES[parsed]
