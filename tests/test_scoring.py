import pytest

from partyhub.scoring import (
    backdoor_awards,
    card_runs,
    count_bid_matches,
    draft_round_breakdown,
    emperor_tally,
    emperor_winner,
    fruit_value,
    is_bid_higher,
    majority_awards,
    mission_fails,
    run_compressed_score,
)


def test_run_only_counts_lowest_card():
    assert run_compressed_score([21, 22, 23], 2) == 19


def test_run_score_is_order_independent_and_repeatable():
    cards = [35, 3, 4, 20, 22, 21]
    first = run_compressed_score(cards, 5)
    assert first == run_compressed_score(list(reversed(cards)), 5)
    assert first == run_compressed_score(cards, 5)
    assert first == 3 + 20 + 35 - 5


def test_card_runs_groups_consecutive_cards():
    assert card_runs([10, 8, 9, 12]) == [[8, 9, 10], [12]]


@pytest.mark.parametrize(
    "quantity, face, legal",
    [(3, 3, False), (3, 4, False), (3, 5, True), (4, 1, True), (2, 6, False)],
)
def test_bid_escalation(quantity, face, legal):
    assert is_bid_higher((3, 4), quantity, face) is legal


def test_any_opening_bid_is_higher():
    assert is_bid_higher(None, 1, 1)


def test_ones_are_wild_except_when_bid_on():
    dice = [1, 1, 4, 4, 6]
    assert count_bid_matches(dice, 4) == 4
    assert count_bid_matches(dice, 1) == 2
    assert count_bid_matches(dice, 5) == 2


def test_fourth_mission_with_seven_players_needs_two_sabotages():
    assert mission_fails(1, 7, 3) is False
    assert mission_fails(2, 7, 3) is True


def test_single_sabotage_fails_other_missions():
    assert mission_fails(1, 7, 2) is True
    assert mission_fails(1, 6, 3) is True
    assert mission_fails(0, 10, 0) is False


def test_fruit_value_sums_card_values():
    assert fruit_value(["STRAWBERRY", "PINEAPPLE", "PEACH"]) == 14
    assert fruit_value([]) == 0


def test_exploit_triples_next_cache():
    breakdown = draft_round_breakdown(["EXPLOIT", "CACHE_3", "CACHE_2"])
    assert breakdown.cache == 3 * 3 + 2


def test_exploit_after_cache_does_nothing():
    breakdown = draft_round_breakdown(["CACHE_3", "EXPLOIT"])
    assert breakdown.cache == 3


def test_draft_sets_and_keys():
    kept = ["GPU", "GPU", "GPU", "MAINFRAME", "MAINFRAME", "MAINFRAME", "KEY", "KEY", "BOTNET_3"]
    breakdown = draft_round_breakdown(kept)
    assert breakdown.gpu == 5
    assert breakdown.mainframe == 10
    assert breakdown.keys == 3
    assert breakdown.botnet_strength == 3
    assert breakdown.total == 18


def test_majority_awards_split_ties_with_floor():
    awards = majority_awards({"a": 5, "b": 5, "c": 5, "d": 1})
    assert awards == {"a": 2, "b": 2, "c": 2, "d": 0}


def test_majority_second_place_only_with_unique_leader():
    assert majority_awards({"a": 6, "b": 3, "c": 3}) == {"a": 6, "b": 1, "c": 1}
    assert majority_awards({"a": 0, "b": 0}) == {"a": 0, "b": 0}


def test_backdoor_awards_bonus_and_penalty():
    awards = backdoor_awards({"a": 4, "b": 2, "c": 0})
    assert awards == {"a": 6, "b": 0, "c": -6}


def test_backdoor_penalty_skipped_for_two_players():
    assert backdoor_awards({"a": 3, "b": 1}) == {"a": 6, "b": 0}


def test_emperor_winner_by_kingdoms_or_points():
    owners = {"TREASURE": None, "WEAPON": "red", "ART": "red", "CLOTH": "red", "FOOD": "red"}
    assert emperor_winner(owners, ["red", "blue"])[0] == "red"
    owners = {"TREASURE": "blue", "WEAPON": "blue", "HEALTH": "blue", "ART": "red"}
    assert emperor_tally(owners)["blue"] == (3, 11)
    assert emperor_winner(owners, ["red", "blue"])[0] == "blue"
    assert emperor_winner({"ART": "red"}, ["red", "blue"]) is None
