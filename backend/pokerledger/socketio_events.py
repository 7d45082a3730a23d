from flask_socketio import join_room, leave_room, close_room, emit
from flask import current_app, request
from functools import wraps
from sqlalchemy.exc import SQLAlchemyError

from pokerledger import db, socketio
from pokerledger.errors import AuthenticationFailed, Forbidden, InvalidInput, RoomNotFound, StaleRoomReference
from pokerledger.hub import get_hub, socket_room
from pokerledger.services import identity, profiles
from pokerledger.services.rooms import calculate_settlement
from pokerledger.services.rooms.state import ConnectionState
from pokerledger.services.rooms.validation import (
    clean_player_name,
    normalize_room_code,
    parse_buy_in,
    parse_game_settings,
    parse_index,
    parse_player_updates,
)


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _payload(data) -> dict:
    return data if isinstance(data, dict) else {}


def _room_code(data) -> str:
    """Room named in the payload, else the room this connection is in."""
    raw = _payload(data).get('roomCode') or get_hub().presence.room_of(_get_sid())
    return normalize_room_code(raw)


# ---- fan-out ----

def _emit_room(event, payload, code):
    socketio.emit(event, payload, to=socket_room(code), namespace=get_hub().namespace)


def _broadcast_room(room):
    _emit_room('room-updated', {'room': room.to_dict()}, room.code)


def _stats_payload():
    hub = get_hub()
    total = profiles.total_rooms_created()
    if total is None:
        total = hub.store.lifetime_created
    return {'activeRooms': hub.store.active_count(), 'totalRoomsCreated': total}


def _broadcast_stats():
    socketio.emit('stats-update', _stats_payload(), namespace=get_hub().namespace)


def _depart(code, sid):
    """Take a connection out of a room it is switching away from."""
    leave_room(socket_room(code))
    room = get_hub().store.mark_disconnected(code, sid)
    if room is not None:
        _broadcast_room(room)


def room_action(fn):
    """Boundary error handling for room events.

    Invalid input and unknown room codes go back to the caller as ``error``.
    Acting on a room that is gone is answered with ``room-closed``. Forbidden
    actions are dropped without a reply.
    """
    @wraps(fn)
    def wrapper(data=None):
        try:
            return fn(data)
        except InvalidInput as exc:
            emit('error', {'message': str(exc)})
        except StaleRoomReference as exc:
            presence = get_hub().presence
            if presence.room_of(_get_sid()) == exc.code:
                presence.detach(_get_sid())
            emit('room-closed', {'roomCode': exc.code, 'reason': 'not-found'})
        except RoomNotFound:
            emit('error', {'message': 'Room not found'})
        except Forbidden as exc:
            current_app.logger.info(f"[forbidden] sid={_get_sid()} {exc}")
    return wrapper


# ---- connection lifecycle ----

def handle_connect(auth=None):
    get_hub().presence.connect(_get_sid())
    token = _payload(auth).get('sessionToken')
    if token:
        _restore_session(token)
    emit('stats-update', _stats_payload())


def handle_disconnect(reason=None):
    hub = get_hub()
    sid = _get_sid()
    conn = hub.presence.disconnect(sid)
    if not conn or not conn.room_code:
        return
    room = hub.store.mark_disconnected(conn.room_code, sid)
    current_app.logger.info(f"[disconnect] sid={sid} room={conn.room_code} reason={reason}")
    if room is not None:
        _broadcast_room(room)


# ---- identity ----

def _restore_session(token):
    hub = get_hub()
    try:
        user = identity.resolve_session(token)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[restore-session] profile store unavailable")
        user = None
    if user is None:
        emit('session-expired', {})
        return
    hub.presence.bind_identity(_get_sid(), user.id, user.display_name)
    emit('login-success', {'user': user.to_dict(), 'sessionToken': token})


def handle_login(data):
    hub = get_hub()
    payload = _payload(data)
    credential = payload.get('credential') if payload else data
    try:
        ident = hub.verifier.verify(credential)
        user = identity.upsert_user(ident)
        session = identity.open_session(user, hub.session_ttl_sec)
    except AuthenticationFailed as exc:
        emit('login-failed', {'message': str(exc)})
        return
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[login-failed] profile store unavailable")
        emit('login-failed', {'message': 'Login is unavailable right now'})
        return
    hub.presence.bind_identity(_get_sid(), user.id, user.display_name)
    current_app.logger.info(f"[login] user={user.id} sid={_get_sid()}")
    emit('login-success', {'user': user.to_dict(), 'sessionToken': session.token})


def handle_restore_session(data):
    _restore_session(_payload(data).get('sessionToken'))


def handle_logout(data=None):
    try:
        identity.end_session(_payload(data).get('sessionToken'))
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[logout] profile store unavailable")
    get_hub().presence.clear_identity(_get_sid())
    emit('logged-out', {})


# ---- room protocol ----

@room_action
def handle_create_room(data):
    hub = get_hub()
    sid = _get_sid()
    conn = hub.presence.get(sid)
    raw_name = _payload(data).get('playerName') if isinstance(data, dict) else data
    name = clean_player_name(raw_name or conn.display_name)

    room = hub.store.create_room(sid, name, user_id=conn.user_id)
    code = room.code
    current_app.logger.info(f"[room-created] code={code} player={name}")

    previous = hub.presence.attach(sid, code)
    if previous:
        _depart(previous, sid)
    join_room(socket_room(code))

    profiles.record_room_created()
    # The counter write may have yielded; work from the current room state
    room = hub.store.find(code) or room
    emit('room-created', {'roomCode': code, 'room': room.to_dict(), 'adminSecret': room.admin_secret})
    _broadcast_stats()


@room_action
def handle_join_room(data):
    hub = get_hub()
    sid = _get_sid()
    payload = _payload(data)
    code = normalize_room_code(payload.get('roomCode'))
    conn = hub.presence.get(sid)
    name = clean_player_name(payload.get('playerName') or conn.display_name)
    existing = hub.store.find(code)
    rejoin = existing is not None and existing.connection_state(name) is not ConnectionState.ABSENT

    room, reclaimed = hub.store.join_room(
        code, sid, name, user_id=conn.user_id, admin_secret=payload.get('adminSecret')
    )
    previous = hub.presence.attach(sid, room.code)
    if previous:
        _depart(previous, sid)
    join_room(socket_room(room.code))

    if reclaimed:
        current_app.logger.info(f"[admin-reclaim] code={room.code} sid={sid}")
    current_app.logger.info(f"[room-joined] code={room.code} player={name} rejoin={rejoin}")
    _broadcast_room(room)


@room_action
def handle_update_player(data):
    payload = _payload(data)
    code = _room_code(data)
    target = clean_player_name(payload.get('playerName'))
    fields = parse_player_updates(payload.get('updates'))
    room = get_hub().store.update_player(code, target, fields)
    _broadcast_room(room)


@room_action
def handle_add_buy_in(data):
    payload = _payload(data)
    code = _room_code(data)
    target = clean_player_name(payload.get('playerName'))
    buy_in = parse_buy_in(payload)
    room = get_hub().store.add_buy_in(code, target, buy_in)
    _broadcast_room(room)


@room_action
def handle_remove_buy_in(data):
    payload = _payload(data)
    code = _room_code(data)
    target = clean_player_name(payload.get('playerName'))
    index = parse_index(payload.get('index'))
    room = get_hub().store.remove_buy_in(code, target, index, _get_sid())
    _broadcast_room(room)


@room_action
def handle_update_game_settings(data):
    code = _room_code(data)
    fields = parse_game_settings(_payload(data).get('newSettings'))
    room = get_hub().store.update_settings(code, fields)
    _broadcast_room(room)


@room_action
def handle_get_settlement(data=None):
    hub = get_hub()
    room = hub.store.live(_room_code(data))
    settlement = calculate_settlement(room.players, room.game_settings.chip_ratio, hub.currency_symbol)
    emit('settlement', {'roomCode': room.code, 'settlement': settlement.to_dict()})


def handle_close_room(data=None):
    hub = get_hub()
    sid = _get_sid()
    code = hub.presence.room_of(sid)
    if not code:
        return

    def _finalize(room):
        settlement = calculate_settlement(room.players, room.game_settings.chip_ratio, hub.currency_symbol)
        profiles.finalize_room(room.code, settlement)

    try:
        hub.store.close_room(code, sid, finalize=_finalize)
    except Forbidden:
        current_app.logger.info(f"[close-ignored] code={code} sid={sid} is not admin")
        return
    except StaleRoomReference:
        hub.presence.detach(sid)
        emit('room-closed', {'roomCode': code, 'reason': 'not-found'})
        return

    _emit_room('room-closed', {'roomCode': code}, code)
    hub.presence.detach_room(code)
    close_room(socket_room(code))
    current_app.logger.info(f"[room-closed] code={code}")
    _broadcast_stats()


def handle_leave_room(data=None):
    hub = get_hub()
    sid = _get_sid()
    code = hub.presence.detach(sid)
    if not code:
        return
    leave_room(socket_room(code))
    emit('left-room', {'roomCode': code})
    try:
        room = hub.store.leave_room(code, sid)
    except RoomNotFound:
        return
    if room is None:
        hub.presence.detach_room(code)
        close_room(socket_room(code))
        current_app.logger.info(f"[room-emptied] code={code}")
        _broadcast_stats()
        return
    _broadcast_room(room)


HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'login': handle_login,
    'restore-session': handle_restore_session,
    'logout': handle_logout,
    'create-room': handle_create_room,
    'join-room': handle_join_room,
    'update-player': handle_update_player,
    'add-buy-in': handle_add_buy_in,
    'remove-buy-in': handle_remove_buy_in,
    'update-game-settings': handle_update_game_settings,
    'get-settlement': handle_get_settlement,
    'close-room': handle_close_room,
    'leave-room': handle_leave_room,
}


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register the room protocol on ``namespace``."""
    for event, handler in HANDLERS.items():
        socketio.on_event(event, handler, namespace=namespace)
