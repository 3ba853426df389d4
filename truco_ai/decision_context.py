from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import random

from game_sim.inference import CombinationCache
from game_sim.simulator import DEFAULT_ITERATIONS
from truco_core.game_state import GameState
from truco_ai.pressure import compute_game_pressure


@dataclass
class DecisionContext:
    """Everything one decision needs. Built fresh per call to the agent and then discarded."""
    state: GameState
    rng: random.Random
    game_pressure: float
    simulation_iterations: int = DEFAULT_ITERATIONS
    bluff_case_rate: Optional[float] = None
    cache: CombinationCache = field(default_factory=CombinationCache)
    memo: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_state(
        cls,
        state: GameState,
        rng: Optional[random.Random] = None,
        simulation_iterations: int = DEFAULT_ITERATIONS,
        bluff_case_rate: Optional[float] = None,
    ) -> "DecisionContext":
        return cls(
            state=state,
            rng=rng or random.Random(),
            game_pressure=compute_game_pressure(state.ai_score, state.player_score),
            simulation_iterations=simulation_iterations,
            bluff_case_rate=bluff_case_rate,
        )
