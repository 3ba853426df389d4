import random
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from game_sim.inference import hand_probabilities_for_state
from game_sim.simulator import DEFAULT_ITERATIONS
from truco_core.game_state import ActionType, Archetype, GamePhase, GameState
from truco_core.messages import Reasoning, message
from truco_core.opponent_model import OpponentHandProbabilities, OpponentModel
from truco_ai.archetypes import parse_archetype
from truco_ai.case_base import RETENTION_RATE, Case, bluff_case_success_rate, build_case, retain_case
from truco_ai.decision_context import DecisionContext
from truco_ai.envido_strategy import get_envido_call, get_envido_primero_options, get_envido_response_options
from truco_ai.flor_strategy import get_flor_call, get_flor_response
from truco_ai.legal_moves import ai_holds_flor, can_declare_flor, is_ai_turn, is_responding_to_call
from truco_ai.model_updater import PlayerHistory, update_opponent_model
from truco_ai.move_evaluator import evaluate_moves
from truco_ai.play_card_strategy import find_best_card_to_play
from truco_ai.pressure import pressure_status
from truco_ai.reasons import AiMove
from truco_ai.truco_strategy import certain_win_truco_call, get_truco_call, get_truco_response_options

logger = logging.getLogger(__name__)


class IllegalStateError(RuntimeError):
    """Raised when the agent is asked to move in a state where it has no legal move."""


def _dedupe(moves: List[AiMove]) -> List[AiMove]:
    seen = set()
    unique = []
    for move in moves:
        key = (move.action.type, move.action.player, move.action.card_index)
        if key in seen:
            continue
        seen.add(key)
        unique.append(move)
    return unique


class TrucoAiAgent:

    def __init__(
        self,
        archetype: Union[str, Archetype] = Archetype.BALANCED,
        seed: Optional[int] = None,
        verbose: bool = False,
        simulation_iterations: int = DEFAULT_ITERATIONS,
        case_sample_rate: float = RETENTION_RATE,
    ):
        self.archetype = parse_archetype(archetype)
        self.seed = seed
        self.rng = random.Random(seed)
        self.verbose = verbose
        self.simulation_iterations = simulation_iterations
        self.case_sample_rate = case_sample_rate

        self.opponent_model = OpponentModel()
        self.hand_probabilities: Optional[OpponentHandProbabilities] = None
        self.cases: List[Case] = []
        self._round_moves: List[Tuple[GameState, AiMove]] = []

    def choose_move(self, state: GameState) -> AiMove:
        if not is_ai_turn(state):
            raise IllegalStateError(f"Not the AI's turn (current turn: {state.current_turn})")
        if state.ai_archetype is not self.archetype:
            state = state.with_changes(ai_archetype=self.archetype)
        self.hand_probabilities = hand_probabilities_for_state(state)
        state = state.with_changes(opponent_hand_probabilities=self.hand_probabilities)

        ctx = DecisionContext.for_state(
            state,
            rng=self.rng,
            simulation_iterations=self.simulation_iterations,
            bluff_case_rate=bluff_case_success_rate(self.cases),
        )
        reasoning: Reasoning = [
            message("ai_logic.strategic_analysis"),
            message("ai_logic.game_pressure", pressure=ctx.game_pressure, status=pressure_status(ctx.game_pressure)),
        ]

        if is_responding_to_call(state):
            move = self._respond_to_call(ctx, reasoning)
        else:
            move = self._act(ctx, reasoning)

        if self.verbose:
            logger.debug(
                f"Round {state.round}, trick {state.current_trick + 1}: "
                f"{move.action.type.value} ({move.reason.value}), ev={move.modified_ev}"
            )
        self._round_moves.append((state, move))
        return move

    def choose_action(self, state: GameState) -> Dict[str, Any]:
        return self.choose_move(state).action.to_dict()

    def _respond_to_call(self, ctx: DecisionContext, reasoning: Reasoning) -> AiMove:
        state = ctx.state
        phase = state.game_phase
        reasoning = reasoning + [message("ai_logic.response_logic", call=phase.value)]

        if phase.is_flor_call:
            flor_move = get_flor_response(ctx, reasoning)
            if flor_move is None:
                raise IllegalStateError(f"No flor response available in phase {phase.value}")
            return evaluate_moves([flor_move], ctx)

        moves: List[AiMove] = []
        if phase is GamePhase.ENVIDO_CALLED:
            if ai_holds_flor(state) and can_declare_flor(state):
                moves.extend(get_flor_call(ctx, reasoning))
            else:
                moves.extend(get_envido_response_options(ctx, reasoning))
        elif phase.is_truco_call:
            if state.current_trick == 0 and not state.has_envido_been_called_this_round and can_declare_flor(state):
                moves.extend(get_flor_call(ctx, reasoning + [message("ai_logic.flor_priority_on_truco")]))
            else:
                moves.extend(get_envido_primero_options(ctx, reasoning))
            moves.extend(get_truco_response_options(ctx, reasoning))

        if not moves:
            raise IllegalStateError(f"No response available in phase {phase.value}")
        return evaluate_moves(_dedupe(moves), ctx)

    def _act(self, ctx: DecisionContext, reasoning: Reasoning) -> AiMove:
        state = ctx.state
        if not state.game_phase.is_trick:
            raise IllegalStateError(f"AI cannot act in phase {state.game_phase.value}")

        card_move = find_best_card_to_play(ctx, reasoning)
        if card_move.action.type is ActionType.NO_OP:
            return card_move

        candidates = [card_move]
        certain_call = certain_win_truco_call(ctx, card_move.reason, card_move.reasoning)
        if certain_call is not None:
            candidates.append(certain_call)

        flor_moves = get_flor_call(ctx, reasoning)
        if flor_moves:
            candidates.extend(flor_moves)
        else:
            candidates.extend(get_envido_call(ctx, reasoning))

        truco_move = get_truco_call(ctx, reasoning)
        if truco_move is not None:
            candidates.append(truco_move)

        return evaluate_moves(_dedupe(candidates), ctx)

    def record_round_outcome(self, outcome: str) -> List[Case]:
        """Turn this round's decisions into cases and keep the ones worth remembering."""
        retained = []
        for state, move in self._round_moves:
            if move.action.type is ActionType.NO_OP:
                continue
            case = build_case(state, move, outcome)
            if retain_case(case, self.rng, self.case_sample_rate):
                retained.append(case)
        self.cases.extend(retained)
        self._round_moves = []
        if self.verbose:
            logger.debug(f"Recorded {len(retained)} cases ({len(self.cases)} total)")
        return retained

    def finish_round_and_update(self, history: PlayerHistory, model: Optional[OpponentModel] = None) -> OpponentModel:
        self.opponent_model = update_opponent_model(model or self.opponent_model, history)
        self._round_moves = []
        return self.opponent_model
