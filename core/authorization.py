# Moderator capability check for mutating echo commands
from enum import Enum
from typing import Iterable


class Capability(Enum):
    MANAGE_GUILD = "manage-guild"
    MANAGE_MESSAGES = "manage-messages"
    ADMINISTRATOR = "administrator"


REQUIRED_CAPABILITIES = frozenset(
    {Capability.MANAGE_GUILD, Capability.MANAGE_MESSAGES, Capability.ADMINISTRATOR}
)


def is_authorized(capabilities: Iterable[Capability]) -> bool:
    return not REQUIRED_CAPABILITIES.isdisjoint(capabilities)
