from flask import current_app

from pokerledger.services.rooms import Presence, RoomStore

EXTENSION_KEY = 'pokerledger'


class RoomHub:
    """Per-application bundle of the live room state.

    Handlers reach it through ``get_hub()`` so a test app can be built
    around its own store.
    """

    def __init__(self, store: RoomStore, presence: Presence, verifier, namespace='/ws',
                 currency_symbol='₪', session_ttl_sec=30 * 24 * 3600):
        self.store = store
        self.presence = presence
        self.verifier = verifier
        self.namespace = namespace
        self.currency_symbol = currency_symbol
        self.session_ttl_sec = session_ttl_sec


def get_hub() -> RoomHub:
    return current_app.extensions[EXTENSION_KEY]


def socket_room(code: str) -> str:
    """Socket.IO room carrying the broadcasts of a poker room."""
    return f"room:{code}"
