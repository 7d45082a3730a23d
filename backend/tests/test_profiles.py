from datetime import datetime, timedelta, timezone

import pytest

from pokerledger import db
from pokerledger.errors import AuthenticationFailed
from pokerledger.models import AuthSession, GlobalStats, User
from pokerledger.services import profiles
from pokerledger.services.identity import (
    Identity,
    SignedTokenVerifier,
    end_session,
    open_session,
    purge_expired_sessions,
    resolve_session,
    upsert_user,
)
from pokerledger.services.rooms.settlement import calculate_settlement
from pokerledger.services.rooms.state import BuyIn, Player


def test_streaks_and_extremes():
    user = User(subject='s', display_name='D')
    profiles.apply_session_result(user, 40, 100, 1)
    profiles.apply_session_result(user, 10.004, 100, 3)
    assert user.current_streak == 2
    assert user.wins == 2
    assert user.total_profit == 50
    assert user.total_rebuys_count == 2

    profiles.apply_session_result(user, -70, 200, 2)
    assert user.current_streak == -1
    assert user.best_session == 40
    assert user.worst_session == -70
    assert user.games_played == 3
    assert user.total_buy_ins_amount == 400

    # Break-even games leave the streak alone
    profiles.apply_session_result(user, 0, 50, 1)
    assert user.current_streak == -1
    assert user.wins == 2


def test_finalize_room_only_counts_signed_in_players_with_cash_out(flask_app):
    dana = upsert_user(Identity(subject='g-1', name='Dana'))
    noa = upsert_user(Identity(subject='g-2', name='Noa'))
    players = [
        Player(key=f'user:{dana.id}', name='Dana', user_id=dana.id, buy_ins=[BuyIn(100, 'cash')], cash_out=130),
        Player(key=f'user:{noa.id}', name='Noa', user_id=noa.id, buy_ins=[BuyIn(100, 'cash')]),
        Player(key='Guest', name='Guest', buy_ins=[BuyIn(30, 'bit')], cash_out=0),
    ]
    updated = profiles.finalize_room('ABC123', calculate_settlement(players))
    assert updated == 1
    assert db.session.get(User, dana.id).total_profit == 30
    assert db.session.get(User, noa.id).games_played == 0


def test_finalize_room_survives_database_errors(flask_app, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def boom():
        raise OperationalError('commit', {}, Exception('db down'))

    user = upsert_user(Identity(subject='g-5', name='Ori'))
    players = [Player(key='x', name='Ori', user_id=user.id, buy_ins=[BuyIn(10)], cash_out=20)]
    monkeypatch.setattr(db.session, 'commit', boom)
    assert profiles.finalize_room('ABC123', calculate_settlement(players)) == 0
    assert profiles.record_room_created() is None


def test_room_counter_is_monotonic(flask_app):
    assert profiles.total_rooms_created() == 0
    assert profiles.record_room_created() == 1
    assert profiles.record_room_created() == 2
    assert db.session.get(GlobalStats, 1).total_rooms_created == 2


def test_signed_token_verifier_round_trip():
    verifier = SignedTokenVerifier('k', max_age=60)
    ident = verifier.verify(verifier.issue('sub-1', '  Dana  ', 'd@example.com'))
    assert ident == Identity(subject='sub-1', name='Dana', email='d@example.com')
    with pytest.raises(AuthenticationFailed):
        SignedTokenVerifier('other-key').verify(verifier.issue('sub-1', 'Dana'))
    with pytest.raises(AuthenticationFailed):
        verifier.verify(None)


def test_upsert_user_updates_existing(flask_app):
    first = upsert_user(Identity(subject='g-9', name='Dana'))
    second = upsert_user(Identity(subject='g-9', name='Dana K.', email='dk@example.com'))
    assert first.id == second.id
    assert second.display_name == 'Dana K.'
    assert User.query.count() == 1


def test_sessions_expire_lazily_and_by_sweep(flask_app):
    user = upsert_user(Identity(subject='g-4', name='Noa'))
    live = open_session(user, 3600)
    stale = open_session(user, 3600)
    stale.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    db.session.commit()

    assert resolve_session(live.token).id == user.id
    stale_token = stale.token
    assert resolve_session(stale_token) is None
    assert AuthSession.query.filter_by(token=stale_token).first() is None

    another = open_session(user, 3600)
    another.expires_at = datetime.now(timezone.utc) - timedelta(minutes=5)
    db.session.commit()
    assert purge_expired_sessions() == 1

    assert end_session(live.token)
    assert resolve_session(live.token) is None
    assert not end_session('missing')
