from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from truco_core.game_state import Action
from truco_core.messages import Reasoning


class ReasonCode(str, Enum):
    # Card play
    PLAY_CARD_PARDA_Y_GANO = "play_card_parda_y_gano"
    PLAY_CARD_CERTAIN_WIN = "play_card_certain_win"
    WIN_ROUND_CHEAP = "win_round_cheap"
    SECURE_HAND = "secure_hand"
    PARDA_Y_CANTO = "parda_y_canto"
    PROBE_LOW_VALUE = "probe_low_value"
    PROBE_MID_VALUE = "probe_mid_value"
    PROBE_SACRIFICIAL = "probe_sacrificial"
    BAIT_LOPSIDED_HAND = "bait_lopsided_hand"
    HIDE_ENVIDO = "hide_envido"
    DISCARD_LOW = "discard_low"
    PLAY_LAST_CARD = "play_last_card"
    NO_CARDS_LEFT = "no_cards_left"

    # Envido
    CALL_ENVIDO_VALUE = "call_envido_value"
    CALL_ENVIDO_MARGINAL = "call_envido_marginal"
    CALL_ENVIDO_BLUFF = "call_envido_bluff"
    CALL_REAL_ENVIDO_VALUE = "call_real_envido_value"
    CALL_FALTA_ENVIDO_CLOSE_OUT = "call_falta_envido_close_out"
    CALL_FALTA_ENVIDO_DEFENSIVE = "call_falta_envido_defensive"
    ESCALATE_ENVIDO_VALUE = "escalate_envido_value"
    ESCALATE_ENVIDO_BLUFF = "escalate_envido_bluff"
    ACCEPT_ENVIDO_FAVORABLE = "accept_envido_favorable"
    ACCEPT_ENVIDO_HERO_CALL = "accept_envido_hero_call"
    ACCEPT_ENVIDO_UNFAVORABLE = "accept_envido_unfavorable"
    DECLINE_ENVIDO = "decline_envido"

    # Flor
    CALL_FLOR = "call_flor"
    RESPOND_WITH_FLOR = "respond_with_flor"
    FLOR_UNDERSELL_BLUFF = "flor_undersell_bluff"
    CALL_CONTRAFLOR_STRONG = "call_contraflor_strong"
    ACKNOWLEDGE_FLOR = "acknowledge_flor"
    ACCEPT_CONTRAFLOR = "accept_contraflor"
    DECLINE_CONTRAFLOR = "decline_contraflor"

    # Truco calls
    CALL_TRUCO_PARDA_Y_GANO = "call_truco_parda_y_gano"
    CALL_TRUCO_CERTAIN_WIN = "call_truco_certain_win"
    CALL_TRUCO_WON_TRICK1 = "call_truco_won_trick1"
    CALL_TRUCO_POST_PARDA_BLUFF = "call_truco_post_parda_bluff"
    CALL_TRUCO_BLUFF = "call_truco_bluff"
    CALL_TRUCO_VALUE = "call_truco_value"

    # Truco responses
    ESCALATE_TRUCO_DESPERATION = "escalate_truco_desperation"
    ESCALATE_TRUCO_ELITE = "escalate_truco_elite"
    ESCALATE_TRUCO_STRONG = "escalate_truco_strong"
    ESCALATE_TRUCO_BLUFF = "escalate_truco_bluff"
    ESCALATE_TRUCO_DOMINANT_CARD = "escalate_truco_dominant_card"
    ESCALATE_TRUCO_EQUITY = "escalate_truco_equity"
    ACCEPT_TRUCO_SOLID = "accept_truco_solid"
    ACCEPT_TRUCO_BLUFF_CALL = "accept_truco_bluff_call"
    ACCEPT_TRUCO_EQUITY = "accept_truco_equity"
    ACCEPT_TRUCO_TRAP = "accept_truco_trap"
    ACCEPT_TRUCO_MIXED = "accept_truco_mixed"
    DECLINE_TRUCO_OVERWHELMING = "decline_truco_overwhelming"
    DECLINE_TRUCO_WEAK = "decline_truco_weak"
    DECLINE_TRUCO_EQUITY = "decline_truco_equity"
    DECLINE_TRUCO_MIXED = "decline_truco_mixed"
    DECLINE_TRUCO_BASELINE = "decline_truco_baseline"

    @property
    def is_bluff(self) -> bool:
        return self in BLUFF_REASONS

    @property
    def message_key(self) -> str:
        return f"ai_logic.reason.{self.value}"


CARD_PLAY_REASONS = frozenset([
    ReasonCode.PLAY_CARD_PARDA_Y_GANO,
    ReasonCode.PLAY_CARD_CERTAIN_WIN,
    ReasonCode.WIN_ROUND_CHEAP,
    ReasonCode.SECURE_HAND,
    ReasonCode.PARDA_Y_CANTO,
    ReasonCode.PROBE_LOW_VALUE,
    ReasonCode.PROBE_MID_VALUE,
    ReasonCode.PROBE_SACRIFICIAL,
    ReasonCode.BAIT_LOPSIDED_HAND,
    ReasonCode.HIDE_ENVIDO,
    ReasonCode.DISCARD_LOW,
    ReasonCode.PLAY_LAST_CARD,
    ReasonCode.NO_CARDS_LEFT,
])

BLUFF_REASONS = frozenset([
    ReasonCode.CALL_ENVIDO_BLUFF,
    ReasonCode.ESCALATE_ENVIDO_BLUFF,
    ReasonCode.FLOR_UNDERSELL_BLUFF,
    ReasonCode.CALL_TRUCO_POST_PARDA_BLUFF,
    ReasonCode.CALL_TRUCO_BLUFF,
    ReasonCode.ESCALATE_TRUCO_DESPERATION,
    ReasonCode.ESCALATE_TRUCO_BLUFF,
])

DECEPTIVE_REASONS = BLUFF_REASONS | frozenset([
    ReasonCode.HIDE_ENVIDO,
    ReasonCode.PROBE_SACRIFICIAL,
    ReasonCode.BAIT_LOPSIDED_HAND,
    ReasonCode.PARDA_Y_CANTO,
    ReasonCode.ACCEPT_TRUCO_TRAP,
])

AGGRESSIVE_REASONS = frozenset([
    ReasonCode.CALL_TRUCO_PARDA_Y_GANO,
    ReasonCode.CALL_TRUCO_CERTAIN_WIN,
    ReasonCode.CALL_TRUCO_WON_TRICK1,
    ReasonCode.CALL_TRUCO_VALUE,
    ReasonCode.ESCALATE_TRUCO_ELITE,
    ReasonCode.ESCALATE_TRUCO_STRONG,
    ReasonCode.ESCALATE_TRUCO_DOMINANT_CARD,
    ReasonCode.ESCALATE_TRUCO_EQUITY,
    ReasonCode.CALL_REAL_ENVIDO_VALUE,
    ReasonCode.CALL_FALTA_ENVIDO_CLOSE_OUT,
    ReasonCode.CALL_FALTA_ENVIDO_DEFENSIVE,
    ReasonCode.ESCALATE_ENVIDO_VALUE,
    ReasonCode.CALL_CONTRAFLOR_STRONG,
])


def strategy_category_for(reason: ReasonCode) -> str:
    if reason in DECEPTIVE_REASONS:
        return "deceptive"
    if reason in AGGRESSIVE_REASONS:
        return "aggressive"
    return "safe"


@dataclass
class AiMove:
    action: Action
    reason: ReasonCode
    reasoning: Reasoning = field(default_factory=list)
    strategy_category: Optional[str] = None
    alternatives: List["AiMove"] = field(default_factory=list)
    base_ev: Optional[float] = None
    modified_ev: Optional[float] = None

    def __post_init__(self):
        if self.strategy_category is None:
            self.strategy_category = strategy_category_for(self.reason)

    @property
    def is_bluff(self) -> bool:
        if self.action.truco_context is not None:
            return self.action.truco_context.is_bluff
        return self.reason.is_bluff

    def evaluated(self, base_ev: float, modified_ev: float, reasoning: Reasoning) -> "AiMove":
        return replace(self, base_ev=base_ev, modified_ev=modified_ev, reasoning=list(self.reasoning) + list(reasoning))
