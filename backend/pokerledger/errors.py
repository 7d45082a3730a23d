"""Error kinds raised by the room services.

Socket handlers catch these at their boundary and translate them into the
outbound event that matches the kind (see ``socketio_events``).
"""


class LedgerError(Exception):
    """Base class for every error raised by the room services."""


class RoomNotFound(LedgerError):
    def __init__(self, code):
        super().__init__(f'Room {code} not found')
        self.code = code


class StaleRoomReference(RoomNotFound):
    """A client acted on a room the server no longer holds."""


class Forbidden(LedgerError):
    pass


class InvalidInput(LedgerError):
    pass


class RoomCodeExhausted(RuntimeError):
    """No unused room code could be generated; a configuration problem."""


class AuthenticationFailed(LedgerError):
    pass
