from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass
class Connection:
    """What the server knows about one live socket.

    ``room_code`` is None while the connection sits in the lobby; a
    connection is in at most one room at a time.
    """
    sid: str
    room_code: Optional[str] = None
    user_id: Optional[int] = None
    display_name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


class Presence:
    """Connection id -> (room, identity) registry."""

    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def connect(self, sid: str) -> Connection:
        conn = Connection(sid=sid)
        self._connections[sid] = conn
        return conn

    def get(self, sid: str) -> Connection:
        conn = self._connections.get(sid)
        if conn is None:
            conn = self.connect(sid)
        return conn

    def disconnect(self, sid: str) -> Optional[Connection]:
        return self._connections.pop(sid, None)

    def room_of(self, sid: str) -> Optional[str]:
        conn = self._connections.get(sid)
        return conn.room_code if conn else None

    def attach(self, sid: str, code: str) -> Optional[str]:
        """Move the connection into ``code``; returns the room it left, if
        that was a different one."""
        conn = self.get(sid)
        previous = conn.room_code
        conn.room_code = code
        return previous if previous and previous != code else None

    def detach(self, sid: str) -> Optional[str]:
        conn = self._connections.get(sid)
        if conn is None:
            return None
        previous, conn.room_code = conn.room_code, None
        return previous

    def detach_room(self, code: str) -> List[str]:
        sids = self.members(code)
        for sid in sids:
            self._connections[sid].room_code = None
        return sids

    def members(self, code: str) -> List[str]:
        return [sid for sid, conn in self._connections.items() if conn.room_code == code]

    def bind_identity(self, sid: str, user_id: int, display_name: Optional[str] = None) -> Connection:
        conn = self.get(sid)
        conn.user_id = user_id
        conn.display_name = display_name
        return conn

    def clear_identity(self, sid: str) -> None:
        conn = self._connections.get(sid)
        if conn is not None:
            conn.user_id = None
            conn.display_name = None
