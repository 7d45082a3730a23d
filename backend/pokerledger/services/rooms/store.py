"""Room Store: the single owner of live rooms.

Every mutation goes through a ``RoomStore`` method and touches only the
fields it names, so two updates to different fields of the same player both
land. Updates to the same field are last-write-wins. There is no lock: the
socket server runs each handler's synchronous part to completion.
"""
import hmac
import random
import secrets
import string
from typing import Callable, Dict, Optional, Tuple

from pokerledger.errors import Forbidden, InvalidInput, RoomCodeExhausted, RoomNotFound, StaleRoomReference
from .state import BuyIn, GameSettings, Player, Room

CODE_ALPHABET = string.ascii_uppercase + string.digits


def player_key(name: str, user_id: Optional[int] = None) -> str:
    """Authenticated players are keyed by account, everybody else by name.

    The two kinds carry different prefixes so no display name can collide
    with an account key.
    """
    if user_id is not None:
        return f'user:{user_id}'
    return f'name:{name}'


class RoomStore:
    def __init__(self, code_length: int = 6, max_code_attempts: int = 100, rng=None):
        self._rooms: Dict[str, Room] = {}
        self._code_length = code_length
        self._max_code_attempts = max_code_attempts
        self._rng = rng or random.SystemRandom()
        # Never decremented, survives room deletion
        self.lifetime_created = 0

    # ---- lookups ----

    def find(self, code: str) -> Optional[Room]:
        if not code:
            return None
        return self._rooms.get(code.upper())

    def get(self, code: str) -> Room:
        room = self.find(code)
        if room is None:
            raise RoomNotFound(code)
        return room

    def live(self, code: str) -> Room:
        """Like ``get``, for callers acting inside a room they believe exists."""
        room = self.find(code)
        if room is None:
            raise StaleRoomReference(code)
        return room

    def active_count(self) -> int:
        return len(self._rooms)

    def _get_player(self, room: Room, key_or_name: str) -> Player:
        player = room.find_player(key_or_name)
        if player is None:
            raise InvalidInput(f'Player {key_or_name} is not in room {room.code}')
        return player

    # ---- lifecycle ----

    def _generate_code(self) -> str:
        for _ in range(self._max_code_attempts):
            code = ''.join(self._rng.choice(CODE_ALPHABET) for _ in range(self._code_length))
            if code not in self._rooms:
                return code
        raise RoomCodeExhausted(
            f'No free room code after {self._max_code_attempts} attempts '
            f'(length={self._code_length}, live rooms={len(self._rooms)})'
        )

    def create_room(self, connection_id: str, player_name: str, user_id: Optional[int] = None) -> Room:
        """Open a room with its creator as first player and admin."""
        room = Room(
            code=self._generate_code(),
            admin_id=connection_id,
            admin_secret=secrets.token_urlsafe(32),
            players=[Player(key=player_key(player_name, user_id), name=player_name,
                            user_id=user_id, connection_id=connection_id)],
            game_settings=GameSettings(),
        )
        self._rooms[room.code] = room
        self.lifetime_created += 1
        return room

    def join_room(self, code: str, connection_id: str, player_name: str,
                  user_id: Optional[int] = None, admin_secret: Optional[str] = None) -> Tuple[Room, bool]:
        """Attach a connection to a room, reusing the player record with the
        same identity key if there is one.

        Returns ``(room, reclaimed)`` where ``reclaimed`` tells whether the
        admin secret matched and admin rights moved to this connection.
        """
        room = self.get(code)
        key = player_key(player_name, user_id)

        player = None
        for p in room.players:
            if p.key == key:
                player = p
                break
        # Display names address players in updates and settlements
        for p in room.players:
            if p is not player and p.name == player_name:
                raise InvalidInput(f'The name {player_name} is already taken in this room')
        if player is None:
            player = Player(key=key, name=player_name, user_id=user_id)
            room.players.append(player)
        player.connection_id = connection_id
        player.name = player_name

        # One connection drives at most one player record
        for p in room.players:
            if p is not player and p.connection_id == connection_id:
                p.connection_id = None

        reclaimed = bool(admin_secret) and hmac.compare_digest(
            str(admin_secret).encode('utf-8'), room.admin_secret.encode('utf-8')
        )
        if reclaimed:
            room.admin_id = connection_id
        return room, reclaimed

    def close_room(self, code: str, requester_id: str,
                   finalize: Optional[Callable[[Room], None]] = None) -> Room:
        """Delete a room on behalf of its admin.

        ``finalize`` runs against the live room before removal; the room is
        looked up again afterwards so work done in between is not lost.
        """
        room = self.live(code)
        if not room.is_admin(requester_id):
            raise Forbidden(f'{requester_id} is not the admin of {room.code}')
        if finalize is not None:
            finalize(room)
        return self._rooms.pop(room.code, room)

    def leave_room(self, code: str, connection_id: str) -> Optional[Room]:
        """Remove the caller's player record. Returns None when that emptied
        (and therefore deleted) the room."""
        room = self.get(code)
        room.players = [p for p in room.players if p.connection_id != connection_id]
        if not room.players:
            self._rooms.pop(room.code, None)
            return None
        return room

    def mark_disconnected(self, code: str, connection_id: str) -> Optional[Room]:
        """Clear the connection of whichever player used it; the player and
        its ledger stay in the room."""
        room = self.find(code)
        if room is None:
            return None
        player = room.find_by_connection(connection_id)
        if player is not None:
            player.connection_id = None
        return room

    # ---- field updates ----

    def update_player(self, code: str, key_or_name: str, fields: Dict) -> Room:
        """Replace the given Player attributes (no list merging)."""
        room = self.live(code)
        player = self._get_player(room, key_or_name)
        for attr, value in fields.items():
            setattr(player, attr, value)
        return room

    def add_buy_in(self, code: str, key_or_name: str, buy_in: BuyIn) -> Room:
        room = self.live(code)
        self._get_player(room, key_or_name).buy_ins.append(buy_in)
        return room

    def remove_buy_in(self, code: str, key_or_name: str, index: int, requester_id: str) -> Room:
        room = self.live(code)
        if not room.is_admin(requester_id):
            raise Forbidden(f'{requester_id} is not the admin of {room.code}')
        player = self._get_player(room, key_or_name)
        if not 0 <= index < len(player.buy_ins):
            raise InvalidInput('index out of range')
        del player.buy_ins[index]
        return room

    def update_settings(self, code: str, fields: Dict) -> Room:
        room = self.live(code)
        for attr, value in fields.items():
            setattr(room.game_settings, attr, value)
        return room
