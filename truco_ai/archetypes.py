from typing import Dict, Union

from truco_core.game_state import ActionType, Archetype
from truco_ai.reasons import AiMove, ReasonCode

ModifierKey = Union[ReasonCode, ActionType]

ARCHETYPE_MODIFIERS: Dict[Archetype, Dict[ModifierKey, float]] = {
    Archetype.AGGRESSIVE: {
        ActionType.CALL_ENVIDO: 1.4,
        ActionType.CALL_REAL_ENVIDO: 4.0,
        ActionType.CALL_FALTA_ENVIDO: 1.2,
        ReasonCode.CALL_TRUCO_PARDA_Y_GANO: 2.0,
        ReasonCode.CALL_TRUCO_CERTAIN_WIN: 2.0,
        ActionType.CALL_RETRUCO: 1.7,
        ActionType.CALL_VALE_CUATRO: 2.0,
        ReasonCode.ESCALATE_TRUCO_BLUFF: 1.5,
        ReasonCode.CALL_TRUCO_BLUFF: 1.4,
        ActionType.DECLINE: 0.6,
        ReasonCode.DISCARD_LOW: 0.8,
    },
    Archetype.CAUTIOUS: {
        ActionType.CALL_ENVIDO: 2.0,
        ReasonCode.PLAY_CARD_PARDA_Y_GANO: 1.5,
        ReasonCode.PLAY_CARD_CERTAIN_WIN: 1.5,
        ActionType.DECLINE: 1.6,
        ActionType.CALL_REAL_ENVIDO: 0.4,
        ActionType.CALL_FALTA_ENVIDO: 0.1,
        ReasonCode.CALL_TRUCO_PARDA_Y_GANO: 0.4,
        ReasonCode.CALL_TRUCO_CERTAIN_WIN: 0.4,
        ActionType.CALL_RETRUCO: 0.5,
        ReasonCode.CALL_TRUCO_BLUFF: 0.1,
        ReasonCode.ACCEPT_TRUCO_BLUFF_CALL: 0.3,
    },
    Archetype.DECEPTIVE: {
        ReasonCode.CALL_ENVIDO_BLUFF: 2.2,
        ReasonCode.CALL_TRUCO_BLUFF: 2.0,
        # slow-play
        ReasonCode.PLAY_CARD_PARDA_Y_GANO: 1.8,
        ReasonCode.PLAY_CARD_CERTAIN_WIN: 1.8,
        ReasonCode.CALL_TRUCO_PARDA_Y_GANO: 0.6,
        ReasonCode.CALL_TRUCO_CERTAIN_WIN: 0.6,
        ReasonCode.BAIT_LOPSIDED_HAND: 2.5,
        ReasonCode.PARDA_Y_CANTO: 1.8,
        ReasonCode.PROBE_LOW_VALUE: 1.5,
        ReasonCode.SECURE_HAND: 0.8,
        ReasonCode.ACCEPT_TRUCO_TRAP: 5.0,
        ReasonCode.ESCALATE_TRUCO_DOMINANT_CARD: 0.2,
    },
    Archetype.BALANCED: {
        ActionType.CALL_ENVIDO: 1.8,
        ActionType.CALL_REAL_ENVIDO: 1.2,
    },
}

MIN_MODIFIER = 0.01


def parse_archetype(name: Union[str, Archetype]) -> Archetype:
    if isinstance(name, Archetype):
        return name
    for archetype in Archetype:
        if archetype.value.lower() == str(name).lower():
            return archetype
    raise ValueError(f"Unrecognized archetype: {name}")


def archetype_modifier(archetype: Archetype, reason: ReasonCode, action_type: ActionType) -> float:
    """Multiplier for a move under ``archetype``: reason first, then action type, else 1.0."""
    modifiers = ARCHETYPE_MODIFIERS.get(archetype, {})
    if reason in modifiers:
        return modifiers[reason]
    if action_type in modifiers:
        return modifiers[action_type]
    return 1.0


def move_modifier(archetype: Archetype, move: AiMove, base_ev: float) -> float:
    if move.action.type is ActionType.DECLINE and base_ev >= 0:
        return 1.0
    return archetype_modifier(archetype, move.reason, move.action.type)


def calculate_modified_ev(ev: float, modifier: float) -> float:
    """Apply an archetype modifier without ever flipping the sign of ``ev``."""
    if ev >= 0:
        return ev * max(MIN_MODIFIER, modifier)
    return ev / max(MIN_MODIFIER, modifier)
