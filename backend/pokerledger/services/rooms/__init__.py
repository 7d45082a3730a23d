"""Room domain services: live room state, presence and settlement.

This package holds the in-memory room logic used by the socket handlers
and HTTP routes, keeping transport concerns separated from ledger rules.
"""
from .presence import Presence
from .settlement import calculate_settlement
from .store import RoomStore, player_key

__all__ = ['Presence', 'RoomStore', 'calculate_settlement', 'player_key']
