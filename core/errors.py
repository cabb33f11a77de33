# Error taxonomy for echo commands and relaying
from typing import Optional


class EchoError(Exception):
    """Base error. ``message`` is safe to show to the invoking user."""

    user_visible = True
    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotInGuild(EchoError):
    default_message = "This command can only be used in a server."


class NotAuthorized(EchoError):
    default_message = "❌ You must be a moderator to use this command."


class InvalidColor(EchoError):
    default_message = "Color must be a 6-digit hex like `#ff9900`."


class InvalidChannelKind(EchoError):
    default_message = "Channel must be a text/announcement channel."


class DuplicateLink(EchoError):
    default_message = "That echo link already exists."


class LinkNotFound(EchoError):
    default_message = "No matching link found to remove."


class StorageCorrupt(EchoError):
    user_visible = False
    default_message = "Echo configuration could not be read."


class SinkUnavailable(EchoError):
    user_visible = False
    default_message = "Target channel is unreachable."
