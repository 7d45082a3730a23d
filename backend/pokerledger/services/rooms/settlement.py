"""Settlement engine.

Turns per-player buy-ins and cash-outs into a short list of transfers that
zeroes everybody's net. Pure: no store access, no I/O, callable at any time.

Greedy matching: winners sorted by net descending, losers by net ascending
(most negative first), both stable on ties so the output only depends on the
input order. Each step settles the smaller of the two current remainders,
which bounds the result at ``players with nonzero net - 1`` transfers.
"""
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .state import CASH, BIT, ChipRatio, Player

TOLERANCE = 0.01

CHANNEL_DESCRIPTIONS = {CASH: 'Cash', BIT: 'Bit'}


def round_money(value: float) -> float:
    """Round to cents, halves toward +infinity."""
    return math.floor(value * 100 + 0.5) / 100


@dataclass
class PlayerBalance:
    player: Player
    total_buy_in: float
    cash_out: float
    cash_out_value: float
    net: float

    @property
    def name(self):
        return self.player.name

    def to_dict(self):
        data = self.player.to_dict()
        data.update({
            'totalBuyIn': self.total_buy_in,
            'cashOut': self.cash_out,
            'cashOutValue': self.cash_out_value,
            'net': self.net,
        })
        return data


@dataclass
class Transfer:
    # Direction follows the ledger's display convention: the winner is listed
    # first, the loser who settles the amount second.
    from_player: str
    to_player: str
    amount: float
    payment_channel: str

    def to_dict(self):
        return {
            'from': self.from_player,
            'to': self.to_player,
            'amount': self.amount,
            'paymentMethod': {
                'type': self.payment_channel,
                'description': CHANNEL_DESCRIPTIONS[self.payment_channel],
            },
        }


@dataclass
class Settlement:
    balances: List[PlayerBalance]
    transfers: List[Transfer]
    is_balanced: bool
    discrepancy: float
    chip_ratio: ChipRatio
    currency_symbol: str = '₪'
    total_buy_ins: float = field(init=False)
    total_cash_outs: float = field(init=False)

    def __post_init__(self):
        self.total_buy_ins = sum(b.total_buy_in for b in self.balances)
        self.total_cash_outs = sum(b.cash_out_value for b in self.balances)

    def to_dict(self):
        return {
            'players': [b.to_dict() for b in self.balances],
            'transactions': [t.to_dict() for t in self.transfers],
            'isBalanced': self.is_balanced,
            'discrepancy': self.discrepancy,
            'gameSettings': {'chipRatio': self.chip_ratio.to_dict()},
            'summary': {
                'totalBuyIns': self.total_buy_ins,
                'totalCashOuts': self.total_cash_outs,
                'transactionCount': len(self.transfers),
                'chipRatioDescription': self.chip_ratio.describe(self.currency_symbol),
            },
        }


def player_balance(player: Player, chip_ratio: ChipRatio) -> PlayerBalance:
    cash_out = player.cash_out or 0
    total_buy_in = player.total_buy_in
    cash_out_value = chip_ratio.to_currency(cash_out)
    return PlayerBalance(
        player=player,
        total_buy_in=total_buy_in,
        cash_out=cash_out,
        cash_out_value=cash_out_value,
        net=cash_out_value - total_buy_in,
    )


def recommend_channel(payer: Player, receiver: Player, amount: float) -> str:
    """Suggest cash when the payer bought in with enough cash and the receiver
    used cash at all; otherwise the alternate channel.

    Each transfer is judged on its own, so a payer's cash may be counted for
    more than one transfer in the same settlement.
    """
    if payer.channel_total(CASH) >= amount and receiver.channel_total(CASH) > 0:
        return CASH
    return BIT


def calculate_settlement(players: Iterable[Player], chip_ratio: Optional[ChipRatio] = None,
                         currency_symbol: str = '₪') -> Settlement:
    chip_ratio = chip_ratio or ChipRatio()
    balances = [player_balance(p, chip_ratio) for p in players]

    total_net = sum(b.net for b in balances)

    # sorted() is stable, ties keep the original player order
    winners = sorted((b for b in balances if b.net > TOLERANCE), key=lambda b: -b.net)
    losers = sorted((b for b in balances if b.net < -TOLERANCE), key=lambda b: b.net)

    winner_left = [w.net for w in winners]
    loser_left = [abs(l.net) for l in losers]

    transfers = []
    wi = li = 0
    while wi < len(winners) and li < len(losers):
        amount = min(winner_left[wi], loser_left[li])
        if amount > TOLERANCE:
            winner, loser = winners[wi], losers[li]
            transfers.append(Transfer(
                from_player=winner.name,
                to_player=loser.name,
                amount=round_money(amount),
                payment_channel=recommend_channel(loser.player, winner.player, amount),
            ))
            winner_left[wi] -= amount
            loser_left[li] -= amount
        if winner_left[wi] <= TOLERANCE:
            wi += 1
        if loser_left[li] <= TOLERANCE:
            li += 1

    discrepancy = round_money(total_net)
    return Settlement(
        balances=balances,
        transfers=transfers,
        is_balanced=abs(discrepancy) < TOLERANCE,
        discrepancy=discrepancy,
        chip_ratio=chip_ratio,
        currency_symbol=currency_symbol,
    )
