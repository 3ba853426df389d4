from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence
import random

import numpy as np

from truco_core.game_state import GameState
from truco_ai.reasons import AiMove

WIN = "win"
LOSS = "loss"
RETENTION_RATE = 0.10
MIN_BLUFF_CASES = 5


@dataclass(frozen=True)
class Case:
    round: int
    reason: str
    action: str
    strength: Optional[float]
    is_bluff: bool
    strategy_category: str
    opponent_fold_rate_at_time_of_call: float
    outcome: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_case(state: GameState, move: AiMove, outcome: str) -> Case:
    if outcome not in (WIN, LOSS):
        raise ValueError(f"Unrecognized case outcome: {outcome}")
    context = move.action.truco_context
    return Case(
        round=state.round,
        reason=move.reason.value,
        action=move.action.type.value,
        strength=context.strength if context is not None else None,
        is_bluff=move.is_bluff,
        strategy_category=move.strategy_category,
        opponent_fold_rate_at_time_of_call=state.opponent_model.truco_fold_rate,
        outcome=outcome,
    )


def retain_case(case: Case, rng: random.Random, rate: float = RETENTION_RATE) -> bool:
    """Deceptive plays are always worth remembering; everything else is sampled."""
    if case.strategy_category == "deceptive":
        return True
    return rng.random() < rate


def bluff_case_success_rate(cases: Sequence[Case], min_cases: int = MIN_BLUFF_CASES) -> Optional[float]:
    outcomes: List[float] = [1.0 if c.outcome == WIN else 0.0 for c in cases if c.is_bluff]
    if len(outcomes) < min_cases:
        return None
    return float(np.mean(outcomes))
