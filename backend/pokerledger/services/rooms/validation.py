"""Payload parsing for inbound room events.

Every parser either returns fully-formed values or raises ``InvalidInput``;
nothing here touches the store, so a rejected payload cannot leave a room
half-updated.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pokerledger.errors import InvalidInput
from .state import BuyIn, ChipRatio, PAYMENT_CHANNELS

MAX_NAME_LENGTH = 40


def _number(value, label):
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f'{label} must be a number')
    if not math.isfinite(value):
        raise InvalidInput(f'{label} must be a finite number')
    return value


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_room_code(raw) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInput('roomCode is required')
    return raw.strip().upper()


def clean_player_name(raw) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInput('playerName is required')
    name = raw.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidInput(f'playerName must be at most {MAX_NAME_LENGTH} characters')
    return name


def parse_buy_in(raw) -> BuyIn:
    if not isinstance(raw, dict):
        raise InvalidInput('Each buy-in must be an object')
    amount = _number(raw.get('amount'), 'Buy-in amount')
    if amount <= 0:
        raise InvalidInput('Buy-in amount must be positive')
    channel = raw.get('type', 'cash')
    if channel not in PAYMENT_CHANNELS:
        raise InvalidInput(f"Buy-in type must be one of {', '.join(PAYMENT_CHANNELS)}")
    timestamp = raw.get('timestamp')
    if timestamp is not None and not isinstance(timestamp, str):
        raise InvalidInput('Buy-in timestamp must be a string')
    return BuyIn(amount=amount, type=channel, timestamp=timestamp or _now_iso())


def parse_buy_ins(raw) -> List[BuyIn]:
    if not isinstance(raw, list):
        raise InvalidInput('buyIns must be a list')
    return [parse_buy_in(item) for item in raw]


def parse_cash_out(raw) -> Optional[float]:
    if raw is None:
        return None
    value = _number(raw, 'Cash-out')
    if value < 0:
        raise InvalidInput('Cash-out cannot be negative')
    return value


_PLAYER_FIELDS = {
    'buyIns': ('buy_ins', parse_buy_ins),
    'cashOut': ('cash_out', parse_cash_out),
}


def parse_player_updates(raw) -> Dict[str, Any]:
    """Translate a wire ``updates`` object into Player attribute values."""
    if not isinstance(raw, dict) or not raw:
        raise InvalidInput('updates must be a non-empty object')
    unknown = set(raw) - set(_PLAYER_FIELDS)
    if unknown:
        raise InvalidInput(f"Cannot update field(s): {', '.join(sorted(unknown))}")
    fields = {}
    for wire_name, value in raw.items():
        attr, parser = _PLAYER_FIELDS[wire_name]
        fields[attr] = parser(value)
    return fields


def parse_chip_ratio(raw) -> ChipRatio:
    if not isinstance(raw, dict):
        raise InvalidInput('chipRatio must be an object')
    shekel = raw.get('shekel', raw.get('shekelUnits'))
    chips = raw.get('chips', raw.get('chipUnits'))
    if shekel is None or chips is None:
        raise InvalidInput('chipRatio requires both shekel and chips')
    return ChipRatio(shekel=_number(shekel, 'shekel'), chips=_number(chips, 'chips'))


def parse_game_settings(raw) -> Dict[str, Any]:
    if not isinstance(raw, dict) or not raw:
        raise InvalidInput('newSettings must be a non-empty object')
    unknown = set(raw) - {'chipRatio'}
    if unknown:
        raise InvalidInput(f"Unknown setting(s): {', '.join(sorted(unknown))}")
    return {'chip_ratio': parse_chip_ratio(raw['chipRatio'])}


def parse_index(raw) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        raise InvalidInput('index must be a non-negative integer')
    return raw
