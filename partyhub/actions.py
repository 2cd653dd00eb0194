"""Command objects for applying game actions."""

from dataclasses import dataclass
from typing import Dict, List, Type

from partyhub.errors import IllegalActionError
from partyhub.models import ActionResult, Room


@dataclass
class ActionContext:
    player_id: str
    payload: Dict[str, object]
    room: Room
    result: ActionResult


class GameAction:
    name: str = ""

    def apply(self, rules, context: ActionContext) -> None:
        raise NotImplementedError


def action_registry(*actions: Type[GameAction]) -> Dict[str, Type[GameAction]]:
    return {action.name: action for action in actions}


def require_int(payload: Dict[str, object], key: str) -> int:
    value = payload.get(key)
    if value is None or isinstance(value, bool):
        raise IllegalActionError(f"Missing {key}.")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise IllegalActionError(f"{key} must be an integer.") from exc


def require_str(payload: Dict[str, object], key: str) -> str:
    value = payload.get(key)
    if not value:
        raise IllegalActionError(f"Missing {key}.")
    return str(value)


def require_bool(payload: Dict[str, object], key: str) -> bool:
    value = payload.get(key)
    if not isinstance(value, bool):
        raise IllegalActionError(f"{key} must be true or false.")
    return value


def require_int_list(payload: Dict[str, object], key: str) -> List[int]:
    value = payload.get(key)
    if not isinstance(value, list):
        raise IllegalActionError(f"{key} must be a list.")
    try:
        return [int(item) for item in value]
    except (TypeError, ValueError) as exc:
        raise IllegalActionError(f"{key} must contain integers.") from exc
