from flask import Blueprint, jsonify, request, current_app
from pokerledger.errors import InvalidInput
from pokerledger.hub import get_hub
from pokerledger.services.rooms import calculate_settlement, player_key
from pokerledger.services.rooms.state import Player
from pokerledger.services.rooms.validation import (
    clean_player_name,
    normalize_room_code,
    parse_buy_ins,
    parse_cash_out,
    parse_chip_ratio,
)


rooms = Blueprint('rooms', __name__)


@rooms.errorhandler(InvalidInput)
def invalid_input(exc):
    return jsonify({'error': str(exc)}), 400


def _room_or_404(code):
    room = get_hub().store.find(normalize_room_code(code))
    if room is None:
        return None, (jsonify({'error': 'Room not found'}), 404)
    return room, None


@rooms.route('/rooms/<string:code>', methods=['GET'])
def get_room(code):
    room, missing = _room_or_404(code)
    if missing:
        return missing
    # Public snapshot: never includes the admin secret
    return jsonify(room.to_dict())


@rooms.route('/rooms/<string:code>/settlement', methods=['GET'])
def get_room_settlement(code):
    room, missing = _room_or_404(code)
    if missing:
        return missing
    settlement = calculate_settlement(
        room.players, room.game_settings.chip_ratio, get_hub().currency_symbol
    )
    return jsonify(settlement.to_dict())


@rooms.route('/settlement', methods=['POST'])
def compute_settlement():
    """Settle an ad-hoc ledger posted as ``{players, gameSettings}``."""
    data = request.get_json(silent=True) or {}
    raw_players = data.get('players')
    if not isinstance(raw_players, list):
        raise InvalidInput('players must be a list')

    players = []
    for raw in raw_players:
        if not isinstance(raw, dict):
            raise InvalidInput('Each player must be an object')
        name = clean_player_name(raw.get('name'))
        players.append(Player(
            key=player_key(name),
            name=name,
            buy_ins=parse_buy_ins(raw.get('buyIns') or []),
            cash_out=parse_cash_out(raw.get('cashOut')),
        ))
    if len({p.name for p in players}) != len(players):
        raise InvalidInput('Player names must be unique')

    settings = data.get('gameSettings') or {}
    if not isinstance(settings, dict):
        raise InvalidInput('gameSettings must be an object')
    chip_ratio = parse_chip_ratio(settings.get('chipRatio') or {'shekel': 1, 'chips': 1})
    settlement = calculate_settlement(players, chip_ratio, current_app.config.get('CURRENCY_SYMBOL', '₪'))
    return jsonify(settlement.to_dict())
