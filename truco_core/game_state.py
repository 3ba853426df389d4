from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from truco_core.cards import Card
from truco_core.opponent_model import OpponentModel, OpponentHandProbabilities
from truco_core.rules import AI, PLAYER


class Archetype(str, Enum):
    BALANCED = "Balanced"
    AGGRESSIVE = "Aggressive"
    CAUTIOUS = "Cautious"
    DECEPTIVE = "Deceptive"


class GamePhase(str, Enum):
    INITIAL = "initial"
    TRICK_1 = "trick_1"
    TRICK_2 = "trick_2"
    TRICK_3 = "trick_3"
    ENVIDO_CALLED = "envido_called"
    TRUCO_CALLED = "truco_called"
    RETRUCO_CALLED = "retruco_called"
    VALE_CUATRO_CALLED = "vale_cuatro_called"
    FLOR_CALLED = "flor_called"
    CONTRAFLOR_CALLED = "contraflor_called"
    ROUND_END = "round_end"
    GAME_OVER = "game_over"

    @property
    def is_trick(self) -> bool:
        return self in (GamePhase.TRICK_1, GamePhase.TRICK_2, GamePhase.TRICK_3)

    @property
    def is_call_pending(self) -> bool:
        return self.value.endswith("_called")

    @property
    def is_truco_call(self) -> bool:
        return self in (GamePhase.TRUCO_CALLED, GamePhase.RETRUCO_CALLED, GamePhase.VALE_CUATRO_CALLED)

    @property
    def is_envido_call(self) -> bool:
        return self is GamePhase.ENVIDO_CALLED

    @property
    def is_flor_call(self) -> bool:
        return self in (GamePhase.FLOR_CALLED, GamePhase.CONTRAFLOR_CALLED)


class ActionType(str, Enum):
    PLAY_CARD = "PLAY_CARD"
    CALL_ENVIDO = "CALL_ENVIDO"
    CALL_REAL_ENVIDO = "CALL_REAL_ENVIDO"
    CALL_FALTA_ENVIDO = "CALL_FALTA_ENVIDO"
    DECLARE_FLOR = "DECLARE_FLOR"
    RESPOND_TO_ENVIDO_WITH_FLOR = "RESPOND_TO_ENVIDO_WITH_FLOR"
    ACKNOWLEDGE_FLOR = "ACKNOWLEDGE_FLOR"
    CALL_CONTRAFLOR = "CALL_CONTRAFLOR"
    ACCEPT_CONTRAFLOR = "ACCEPT_CONTRAFLOR"
    DECLINE_CONTRAFLOR = "DECLINE_CONTRAFLOR"
    CALL_TRUCO = "CALL_TRUCO"
    CALL_RETRUCO = "CALL_RETRUCO"
    CALL_VALE_CUATRO = "CALL_VALE_CUATRO"
    ACCEPT = "ACCEPT"
    DECLINE = "DECLINE"
    NO_OP = "NO_OP"


ENVIDO_CALLS = (ActionType.CALL_ENVIDO, ActionType.CALL_REAL_ENVIDO, ActionType.CALL_FALTA_ENVIDO)
TRUCO_CALLS = (ActionType.CALL_TRUCO, ActionType.CALL_RETRUCO, ActionType.CALL_VALE_CUATRO)


def truco_call_for_level(level: int) -> ActionType:
    if level < 0 or level >= len(TRUCO_CALLS):
        raise ValueError(f"No truco escalation from level {level}")
    return TRUCO_CALLS[level]


@dataclass(frozen=True)
class TrucoContext:
    strength: float
    is_bluff: bool


@dataclass(frozen=True)
class Action:
    type: ActionType
    player: Optional[str] = None
    card_index: Optional[int] = None
    truco_context: Optional[TrucoContext] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value}
        if self.player is not None:
            data["player"] = self.player
        if self.card_index is not None:
            data["card_index"] = self.card_index
        if self.truco_context is not None:
            data["truco_context"] = {
                "strength": self.truco_context.strength,
                "is_bluff": self.truco_context.is_bluff,
            }
        return data


@dataclass(frozen=True)
class TrucoCallRecord:
    """Hand strength of the player when they called truco, kept for behavioral inference."""
    strength: int
    was_mano: bool
    is_bluff: bool = False


@dataclass(frozen=True)
class GameState:
    player_hand: List[Card]
    ai_hand: List[Card]
    initial_player_hand: List[Card]
    initial_ai_hand: List[Card]
    player_tricks: List[Optional[Card]] = field(default_factory=lambda: [None, None, None])
    ai_tricks: List[Optional[Card]] = field(default_factory=lambda: [None, None, None])
    trick_winners: List[Optional[str]] = field(default_factory=lambda: [None, None, None])
    current_trick: int = 0
    player_score: int = 0
    ai_score: int = 0
    round: int = 1
    mano: str = PLAYER
    current_turn: Optional[str] = PLAYER
    game_phase: GamePhase = GamePhase.TRICK_1
    last_caller: Optional[str] = None
    truco_level: int = 0
    envido_points_on_offer: int = 0
    previous_envido_points: int = 0
    has_envido_been_called_this_round: bool = False
    has_real_envido_been_called_this_sequence: bool = False
    has_falta_envido_been_called_this_sequence: bool = False
    has_flor_been_called_this_round: bool = False
    is_flor_enabled: bool = True
    player_has_flor: bool = False
    player_envido_value: Optional[int] = None
    player_called_high_envido: bool = False
    player_truco_call_history: List[TrucoCallRecord] = field(default_factory=list)
    opponent_model: OpponentModel = field(default_factory=OpponentModel)
    opponent_hand_probabilities: Optional[OpponentHandProbabilities] = None
    ai_archetype: Archetype = Archetype.BALANCED

    @property
    def played_cards(self) -> List[Card]:
        return [c for c in list(self.player_tricks) + list(self.ai_tricks) if c is not None]

    @property
    def player_played_cards(self) -> List[Card]:
        return [c for c in self.player_tricks if c is not None]

    @property
    def ai_is_mano(self) -> bool:
        return self.mano == AI

    @property
    def player_context(self) -> str:
        """Calling-position context of the human player for opponent-model lookups."""
        return "mano" if self.mano == PLAYER else "pie"

    @property
    def player_card_on_table(self) -> Optional[Card]:
        if self.current_trick > 2:
            return None
        return self.player_tricks[self.current_trick]

    @property
    def ai_card_on_table(self) -> Optional[Card]:
        if self.current_trick > 2:
            return None
        return self.ai_tricks[self.current_trick]

    def with_changes(self, **changes) -> "GameState":
        return replace(self, **changes)
