import pytest

from pokerledger.errors import InvalidInput
from pokerledger.services.rooms.validation import (
    clean_player_name,
    normalize_room_code,
    parse_buy_in,
    parse_cash_out,
    parse_chip_ratio,
    parse_game_settings,
    parse_index,
    parse_player_updates,
)


def test_room_code_is_case_insensitive():
    assert normalize_room_code(' ab12cd ') == 'AB12CD'
    with pytest.raises(InvalidInput):
        normalize_room_code('   ')
    with pytest.raises(InvalidInput):
        normalize_room_code(None)


def test_player_name_trimmed_and_bounded():
    assert clean_player_name('  Dana ') == 'Dana'
    with pytest.raises(InvalidInput):
        clean_player_name('')
    with pytest.raises(InvalidInput):
        clean_player_name('x' * 41)


def test_buy_in_defaults():
    buy_in = parse_buy_in({'amount': 50})
    assert buy_in.amount == 50
    assert buy_in.type == 'cash'
    assert buy_in.timestamp


@pytest.mark.parametrize('raw', [
    {'amount': 0},
    {'amount': -10},
    {'amount': '50'},
    {'amount': True},
    {'amount': float('nan')},
    {'amount': 10, 'type': 'paypal'},
    {'amount': 10, 'timestamp': 12345},
    'not-an-object',
])
def test_bad_buy_ins_rejected(raw):
    with pytest.raises(InvalidInput):
        parse_buy_in(raw)


def test_cash_out_rules():
    assert parse_cash_out(0) == 0
    assert parse_cash_out(None) is None
    with pytest.raises(InvalidInput):
        parse_cash_out(-1)


def test_player_updates_map_to_fields():
    fields = parse_player_updates({
        'buyIns': [{'amount': 100, 'type': 'bit', 'timestamp': '2024-01-01T20:00:00Z'}],
        'cashOut': 80,
    })
    assert fields['cash_out'] == 80
    assert fields['buy_ins'][0].type == 'bit'
    assert fields['buy_ins'][0].timestamp == '2024-01-01T20:00:00Z'


def test_player_updates_reject_unknown_fields_and_bad_values():
    with pytest.raises(InvalidInput):
        parse_player_updates({'name': 'Mallory'})
    with pytest.raises(InvalidInput):
        parse_player_updates({})
    with pytest.raises(InvalidInput):
        parse_player_updates({'buyIns': [{'amount': 100}, {'amount': -5}]})


def test_chip_ratio_accepts_aliases():
    assert parse_chip_ratio({'shekel': 1, 'chips': 2}).chips == 2
    ratio = parse_chip_ratio({'shekelUnits': 5, 'chipUnits': 100})
    assert (ratio.shekel, ratio.chips) == (5, 100)


@pytest.mark.parametrize('raw', [
    {'shekel': 0, 'chips': 1},
    {'shekel': 1, 'chips': 0},
    {'shekel': 1},
    {'shekel': 'one', 'chips': 1},
])
def test_chip_ratio_rejects_non_positive(raw):
    with pytest.raises(InvalidInput):
        parse_chip_ratio(raw)


def test_game_settings():
    assert parse_game_settings({'chipRatio': {'shekel': 1, 'chips': 4}})['chip_ratio'].chips == 4
    with pytest.raises(InvalidInput):
        parse_game_settings({'blinds': 5})


def test_index():
    assert parse_index(2) == 2
    for bad in (-1, '1', True, None):
        with pytest.raises(InvalidInput):
            parse_index(bad)
