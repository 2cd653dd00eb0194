"""Per-viewer projection of a room document."""

from typing import Any, Dict

from partyhub.models import Room
from partyhub.rules import GameRules


def project_room(rules: GameRules, room: Room, viewer_id: str) -> Dict[str, Any]:
    """Everything ``viewer_id`` may see, plus the actions open to them.

    Opponents' private holdings are replaced by counts. A viewer who is not
    seated gets the same redaction as any opponent.
    """
    active = room.active_player
    seated = room.has_player(viewer_id)
    return {
        "room_id": room.room_id,
        "game": room.game.value,
        "host_id": room.host_id,
        "status": room.status.value,
        "turn_index": room.turn_index,
        "active_player_id": active.id if active else None,
        "winner": room.winner,
        "version": room.version,
        "logs": [entry.model_dump(mode="json") for entry in room.logs],
        "players": [rules.project_player(room, player, viewer_id) for player in room.players],
        "state": rules.project_state(room, viewer_id),
        "viewer": {
            "player_id": viewer_id if seated else None,
            "is_host": room.host_id == viewer_id,
            "is_my_turn": seated and rules.is_my_turn(room, viewer_id),
            "awaiting_my_response": seated and rules.awaiting_response(room, viewer_id),
            "legal_actions": rules.legal_actions(room, viewer_id) if seated else [],
            **(rules.project_private(room, viewer_id) if seated else {}),
        },
    }
