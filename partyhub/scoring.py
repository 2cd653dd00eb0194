"""Pure scoring functions used at turn, round and game end."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

FRUIT_VALUES: Dict[str, int] = {
    "STRAWBERRY": 1,
    "TANGERINE": 2,
    "PEACH": 3,
    "GRAPE": 4,
    "BANANA": 5,
    "COCONUT": 6,
    "PEAR": 7,
    "DRAGONFRUIT": 8,
    "MELON": 9,
    "PINEAPPLE": 10,
}

DRAFT_CARD_VALUES: Dict[str, int] = {
    "CACHE_1": 1,
    "CACHE_2": 2,
    "CACHE_3": 3,
    "EXPLOIT": 0,
    "GPU": 0,
    "MAINFRAME": 0,
    "KEY": 0,
    "BOTNET_1": 1,
    "BOTNET_2": 2,
    "BOTNET_3": 3,
    "PROXY": 0,
    "BACKDOOR": 0,
}

KEY_SCORES = (0, 1, 3, 6, 10, 15)
GPU_PAIR_SCORE = 5
MAINFRAME_SET_SCORE = 10
EXPLOIT_MULTIPLIER = 3
MAJORITY_FIRST = 6
MAJORITY_SECOND = 3
BACKDOOR_BONUS = 6

KING_VALUES: Dict[str, int] = {
    "TREASURE": 5,
    "WEAPON": 4,
    "ART": 3,
    "CLOTH": 3,
    "FOOD": 2,
    "HOUSING": 2,
    "HEALTH": 2,
}
KINGDOMS_TO_WIN = 4
POINTS_TO_WIN = 11


def run_compressed_score(cards: Iterable[int], tokens: int) -> int:
    """Sum of the lowest card of every run of consecutive values, minus tokens.

    >>> run_compressed_score([21, 22, 23], 2)
    19
    """
    ordered = sorted(cards)
    score = 0
    for index, card in enumerate(ordered):
        if index == 0 or card != ordered[index - 1] + 1:
            score += card
    return score - tokens


def card_runs(cards: Iterable[int]) -> List[List[int]]:
    ordered = sorted(cards)
    runs: List[List[int]] = []
    for card in ordered:
        if runs and card == runs[-1][-1] + 1:
            runs[-1].append(card)
        else:
            runs.append([card])
    return runs


def is_bid_higher(current: Optional[Tuple[int, int]], quantity: int, face: int) -> bool:
    """A raise needs more dice, or as many dice showing a higher face."""
    if current is None:
        return True
    current_quantity, current_face = current
    if quantity > current_quantity:
        return True
    return quantity == current_quantity and face > current_face


def count_bid_matches(dice: Iterable[int], face: int) -> int:
    """Dice showing ``face``; ones are wild unless the bid is on ones."""
    return sum(1 for die in dice if die == face or (die == 1 and face != 1))


def mission_fails(sabotages: int, player_count: int, mission_index: int) -> bool:
    """The fourth mission with seven or more players needs two sabotages."""
    if player_count >= 7 and mission_index == 3:
        return sabotages >= 2
    return sabotages >= 1


def fruit_value(cards: Iterable[str]) -> int:
    return sum(FRUIT_VALUES.get(card, 0) for card in cards)


@dataclass
class DraftBreakdown:
    total: int
    botnet_strength: int
    cache: int = 0
    gpu: int = 0
    mainframe: int = 0
    keys: int = 0


def draft_round_breakdown(kept: Sequence[str]) -> DraftBreakdown:
    """Score one player's kept cards for a round, before majority bonuses.

    Kept order matters: an Exploit triples the next Cache picked after it.
    """
    cache = 0
    exploits = 0
    gpus = 0
    mainframes = 0
    keys = 0
    strength = 0
    for card in kept:
        if card == "EXPLOIT":
            exploits += 1
        elif card.startswith("CACHE"):
            value = DRAFT_CARD_VALUES[card]
            if exploits > 0:
                cache += value * EXPLOIT_MULTIPLIER
                exploits -= 1
            else:
                cache += value
        elif card == "GPU":
            gpus += 1
        elif card == "MAINFRAME":
            mainframes += 1
        elif card == "KEY":
            keys += 1
        elif card.startswith("BOTNET"):
            strength += DRAFT_CARD_VALUES[card]
    gpu_score = (gpus // 2) * GPU_PAIR_SCORE
    mainframe_score = (mainframes // 3) * MAINFRAME_SET_SCORE
    key_score = KEY_SCORES[min(keys, len(KEY_SCORES) - 1)]
    return DraftBreakdown(
        total=cache + gpu_score + mainframe_score + key_score,
        botnet_strength=strength,
        cache=cache,
        gpu=gpu_score,
        mainframe=mainframe_score,
        keys=key_score,
    )


def majority_awards(
    strengths: Mapping[str, int],
    first: int = MAJORITY_FIRST,
    second: int = MAJORITY_SECOND,
) -> Dict[str, int]:
    """Split the first and second place bonuses among tied leaders.

    Second place only pays out when first place is not shared.
    """
    levels = sorted({value for value in strengths.values() if value > 0}, reverse=True)
    awards = {player_id: 0 for player_id in strengths}
    if not levels:
        return awards
    leaders = [pid for pid, value in strengths.items() if value == levels[0]]
    for pid in leaders:
        awards[pid] = first // len(leaders)
    if len(leaders) == 1 and len(levels) > 1:
        runners_up = [pid for pid, value in strengths.items() if value == levels[1]]
        for pid in runners_up:
            awards[pid] = second // len(runners_up)
    return awards


def backdoor_awards(counts: Mapping[str, int], bonus: int = BACKDOOR_BONUS) -> Dict[str, int]:
    """End-of-game bonus for most Backdoors and penalty for fewest.

    The penalty is skipped in two-player games. When everyone ties, all share
    the bonus.
    """
    if not counts:
        return {}
    most = max(counts.values())
    fewest = min(counts.values())
    leaders = [pid for pid, value in counts.items() if value == most]
    trailers = [pid for pid, value in counts.items() if value == fewest]
    penalty = (-bonus) // len(trailers) if len(counts) > 2 else 0
    awards: Dict[str, int] = {}
    for pid, value in counts.items():
        if value == most:
            awards[pid] = bonus // len(leaders)
        elif value == fewest:
            awards[pid] = penalty
        else:
            awards[pid] = 0
    return awards


def emperor_tally(owners: Mapping[str, Optional[str]]) -> Dict[str, Tuple[int, int]]:
    """Kingdom count and victory points per colour from king ownership."""
    tally: Dict[str, Tuple[int, int]] = {}
    for king, owner in owners.items():
        if owner is None:
            continue
        kingdoms, points = tally.get(owner, (0, 0))
        tally[owner] = (kingdoms + 1, points + KING_VALUES[king])
    return tally


def emperor_winner(owners: Mapping[str, Optional[str]], colors: Sequence[str]) -> Optional[Tuple[str, str]]:
    """First colour (in seat order) that holds 4 kingdoms or 11 points."""
    tally = emperor_tally(owners)
    for color in colors:
        kingdoms, points = tally.get(color, (0, 0))
        if kingdoms >= KINGDOMS_TO_WIN:
            return color, f"controlled {KINGDOMS_TO_WIN} kingdoms"
        if points >= POINTS_TO_WIN:
            return color, f"scored {POINTS_TO_WIN} victory points"
    return None
