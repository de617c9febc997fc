"""Exception hierarchy shared by the salvo modules."""


class SalvoError(Exception):
    """Base for every error raised by the game engine."""


class CapacityExceeded(SalvoError):
    """Raised when a fleet asks for more boats than the boat list can hold."""


class InvalidPlacement(SalvoError):
    """Raised when a boat would leave the board or overlap a placed boat."""


class MalformedMessage(SalvoError):
    """Raised when a datagram cannot be parsed as a protocol message."""
