"""In-memory room entities.

These are plain dataclasses owned by the ``RoomStore``. ``to_dict`` renders
the wire snapshot sent to clients in ``room-updated`` / ``room-created``.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pokerledger.errors import InvalidInput

CASH = 'cash'
BIT = 'bit'
PAYMENT_CHANNELS = (CASH, BIT)


@dataclass
class BuyIn:
    amount: float
    type: str = CASH
    timestamp: Optional[str] = None

    def to_dict(self):
        return {'amount': self.amount, 'type': self.type, 'timestamp': self.timestamp}


@dataclass(frozen=True)
class ChipRatio:
    """``shekel`` currency units buy ``chips`` chips."""
    shekel: float = 1
    chips: float = 1

    def __post_init__(self):
        if not self.shekel > 0 or not self.chips > 0:
            raise InvalidInput('Chip ratio values must be positive')

    def to_currency(self, chip_count: float) -> float:
        return chip_count * self.shekel / self.chips

    def describe(self, symbol: str = '₪') -> str:
        return f"{symbol}{_plain(self.shekel)} = {_plain(self.chips)} chips"

    def to_dict(self):
        return {'shekel': self.shekel, 'chips': self.chips}


def _plain(value):
    return int(value) if float(value).is_integer() else value


@dataclass
class GameSettings:
    chip_ratio: ChipRatio = field(default_factory=ChipRatio)

    def to_dict(self):
        return {'chipRatio': self.chip_ratio.to_dict()}


class ConnectionState(str, Enum):
    CONNECTED = 'connected'
    DISCONNECTED = 'disconnected'
    # Left the room; there is no Player record to carry this one
    ABSENT = 'absent'


@dataclass
class Player:
    key: str
    name: str
    user_id: Optional[int] = None
    connection_id: Optional[str] = None
    buy_ins: List[BuyIn] = field(default_factory=list)
    cash_out: Optional[float] = None

    @property
    def connection_state(self) -> ConnectionState:
        if self.connection_id:
            return ConnectionState.CONNECTED
        return ConnectionState.DISCONNECTED

    @property
    def total_buy_in(self) -> float:
        return sum(b.amount for b in self.buy_ins)

    def channel_total(self, channel: str) -> float:
        return sum(b.amount for b in self.buy_ins if b.type == channel)

    def to_dict(self):
        return {
            'id': self.connection_id,
            'key': self.key,
            'name': self.name,
            'userId': self.user_id,
            'connected': self.connection_state is ConnectionState.CONNECTED,
            'buyIns': [b.to_dict() for b in self.buy_ins],
            'cashOut': self.cash_out,
        }


@dataclass
class Room:
    code: str
    admin_id: Optional[str]
    admin_secret: str
    players: List[Player] = field(default_factory=list)
    game_settings: GameSettings = field(default_factory=GameSettings)

    def find_player(self, key_or_name: str) -> Optional[Player]:
        """Match by display name (unique within a room), then by identity key."""
        for p in self.players:
            if p.name == key_or_name:
                return p
        for p in self.players:
            if p.key == key_or_name:
                return p
        return None

    def connection_state(self, key_or_name: str) -> ConnectionState:
        player = self.find_player(key_or_name)
        if player is None:
            return ConnectionState.ABSENT
        return player.connection_state

    def find_by_connection(self, connection_id: str) -> Optional[Player]:
        if not connection_id:
            return None
        for p in self.players:
            if p.connection_id == connection_id:
                return p
        return None

    def is_admin(self, connection_id: str) -> bool:
        return bool(connection_id) and self.admin_id == connection_id

    def to_dict(self, include_secret=False):
        data = {
            'code': self.code,
            'adminId': self.admin_id,
            'players': [p.to_dict() for p in self.players],
            'gameSettings': self.game_settings.to_dict(),
        }
        if include_secret:
            data['adminSecret'] = self.admin_secret
        return data
