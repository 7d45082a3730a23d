from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from pokerledger.hub import get_hub
from pokerledger.services import profiles

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return 'Poker Server is running'

@main.route('/api/stats')
def stats():
    hub = get_hub()
    total = profiles.total_rooms_created()
    if total is None:
        total = hub.store.lifetime_created
    return jsonify({'activeRooms': hub.store.active_count(), 'totalRoomsCreated': total})

@main.route('/api/profile')
@login_required
def profile():
    return jsonify(current_user.to_dict())
