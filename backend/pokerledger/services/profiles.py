"""Lifetime statistics persisted outside the live rooms.

Database errors are rolled back and logged, never raised: rooms open and
close whether or not the database is reachable.
"""
from datetime import datetime, timezone
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from pokerledger import db
from pokerledger.models import GlobalStats, User
from pokerledger.services.rooms.settlement import Settlement, round_money


def apply_session_result(user: User, net: float, total_buy_in: float, buy_in_count: int, now=None) -> None:
    """Fold one finished game into a user's lifetime numbers."""
    net = round_money(net)
    user.total_profit = round_money((user.total_profit or 0) + net)
    user.games_played = (user.games_played or 0) + 1
    if net > 0:
        user.wins = (user.wins or 0) + 1
    user.best_session = net if user.best_session is None else max(user.best_session, net)
    user.worst_session = net if user.worst_session is None else min(user.worst_session, net)
    user.total_buy_ins_amount = (user.total_buy_ins_amount or 0) + total_buy_in
    user.total_rebuys_count = (user.total_rebuys_count or 0) + max(0, buy_in_count - 1)

    streak = user.current_streak or 0
    if net > 0:
        user.current_streak = streak + 1 if streak > 0 else 1
    elif net < 0:
        user.current_streak = streak - 1 if streak < 0 else -1
    user.last_played = now or datetime.now(timezone.utc)


def finalize_room(code: str, settlement: Settlement) -> int:
    """Record the result of a closing room for every signed-in player who
    reported a cash-out. Returns the number of profiles updated."""
    now = datetime.now(timezone.utc)
    updated = 0
    try:
        for balance in settlement.balances:
            player = balance.player
            if player.user_id is None or player.cash_out is None:
                continue
            user = db.session.get(User, player.user_id)
            if user is None:
                current_app.logger.warning(f"[stats-skip] room={code} user={player.user_id} has no profile")
                continue
            apply_session_result(user, balance.net, balance.total_buy_in, len(player.buy_ins), now=now)
            updated += 1
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[stats-persist-failed] room={code}")
        return 0
    current_app.logger.info(f"[stats-persisted] room={code} profiles={updated}")
    return updated


def record_room_created() -> Optional[int]:
    try:
        stats = GlobalStats.singleton()
        stats.total_rooms_created = (stats.total_rooms_created or 0) + 1
        db.session.commit()
        return stats.total_rooms_created
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[room-counter-failed]")
        return None


def total_rooms_created() -> Optional[int]:
    try:
        stats = db.session.get(GlobalStats, 1)
        return stats.total_rooms_created if stats else 0
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[room-counter-read-failed]")
        return None
