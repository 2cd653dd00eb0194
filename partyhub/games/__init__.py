from typing import Dict, Type

from partyhub.constants import GameKind
from partyhub.games.angry_virus import AngryVirusRules
from partyhub.games.emperor import EmperorRules
from partyhub.games.fructose_fury import FructoseFuryRules
from partyhub.games.ghost_dice import GhostDiceRules
from partyhub.games.neon_draft import NeonDraftRules
from partyhub.games.protocol import ProtocolRules
from partyhub.rules import GameRules

GAME_RULES: Dict[GameKind, Type[GameRules]] = {
    rules.game: rules
    for rules in (
        AngryVirusRules,
        EmperorRules,
        FructoseFuryRules,
        GhostDiceRules,
        NeonDraftRules,
        ProtocolRules,
    )
}

__all__ = [
    "GAME_RULES",
    "AngryVirusRules",
    "EmperorRules",
    "FructoseFuryRules",
    "GhostDiceRules",
    "NeonDraftRules",
    "ProtocolRules",
]
