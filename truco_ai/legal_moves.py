from typing import List, Optional

from hand_eval.hand_strength import has_flor
from truco_core.game_state import ActionType, GamePhase, GameState, truco_call_for_level
from truco_core.rules import AI, PLAYER


def is_ai_turn(state: GameState) -> bool:
    return state.current_turn == AI


def is_responding_to_call(state: GameState) -> bool:
    return state.game_phase.is_call_pending and is_ai_turn(state) and state.last_caller == PLAYER


def ai_holds_flor(state: GameState) -> bool:
    return state.is_flor_enabled and has_flor(state.initial_ai_hand)


def flor_in_play(state: GameState) -> bool:
    return state.is_flor_enabled and (ai_holds_flor(state) or state.player_has_flor)


def _before_first_ai_card(state: GameState) -> bool:
    return state.current_trick == 0 and state.ai_tricks[0] is None


def _is_envido_primero_window(state: GameState) -> bool:
    return (
        state.game_phase is GamePhase.TRUCO_CALLED
        and state.last_caller == PLAYER
        and state.truco_level <= 1
    )


def can_play_card(state: GameState) -> bool:
    return (
        is_ai_turn(state)
        and state.game_phase.is_trick
        and state.ai_card_on_table is None
        and len(state.ai_hand) > 0
    )


def can_call_envido(state: GameState) -> bool:
    if not is_ai_turn(state) or not _before_first_ai_card(state):
        return False
    if state.has_envido_been_called_this_round or state.has_flor_been_called_this_round:
        return False
    if flor_in_play(state):
        return False
    return state.game_phase is GamePhase.TRICK_1 or _is_envido_primero_window(state)


def can_declare_flor(state: GameState) -> bool:
    if not ai_holds_flor(state) or state.has_flor_been_called_this_round:
        return False
    if not is_ai_turn(state) or not _before_first_ai_card(state):
        return False
    return state.game_phase in (GamePhase.TRICK_1, GamePhase.ENVIDO_CALLED) or _is_envido_primero_window(state)


def envido_escalations(state: GameState) -> List[ActionType]:
    """Raises the AI may answer an open envido with, in escalation order."""
    if not (state.game_phase is GamePhase.ENVIDO_CALLED and is_responding_to_call(state)):
        return []
    options = []
    no_raise_yet = not state.has_real_envido_been_called_this_sequence and not state.has_falta_envido_been_called_this_sequence
    if no_raise_yet and state.envido_points_on_offer == 2 and state.previous_envido_points == 0:
        options.append(ActionType.CALL_ENVIDO)
    if no_raise_yet:
        options.append(ActionType.CALL_REAL_ENVIDO)
    if not state.has_falta_envido_been_called_this_sequence:
        options.append(ActionType.CALL_FALTA_ENVIDO)
    return options


def can_call_truco(state: GameState) -> bool:
    return (
        is_ai_turn(state)
        and state.game_phase.is_trick
        and state.truco_level < 3
        and state.last_caller != AI
        and state.ai_card_on_table is None
        and len(state.ai_hand) > 0
    )


def next_truco_call(state: GameState) -> Optional[ActionType]:
    if state.truco_level >= 3:
        return None
    return truco_call_for_level(state.truco_level)


def truco_escalation(state: GameState) -> Optional[ActionType]:
    if not (state.game_phase.is_truco_call and is_responding_to_call(state)):
        return None
    return next_truco_call(state)
