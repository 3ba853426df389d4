"""Post-round learning of the human player's habits.

Every estimate in the ``OpponentModel`` is a running average:
``new = old * DECAY + (1 - DECAY) * observed``. Each block of statistics is
only refreshed once enough observations exist for it.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np

from hand_eval.hand_strength import calculate_hand_strength
from truco_core.cards import card_from_code, sort_by_power
from truco_core.game_state import TrucoCallRecord
from truco_core.opponent_model import BluffStats, EnvidoContextStats, OpponentModel, TrucoBluffs
from truco_core.rules import PLAYER

logger = logging.getLogger(__name__)

DECAY = 0.95
MIN_ENVIDO_ACTIONS = 3
MIN_CONTEXT_ACTIONS = 2
MIN_THRESHOLD_CALLS = 2
MIN_SAMPLES = 3
BAIT_HAND_STRENGTH = 20


class EnvidoAction(str, Enum):
    CALLED = "called"
    ACCEPTED = "accepted"
    FOLDED = "folded"
    ESCALATED_REAL = "escalated_real"
    ESCALATED_FALTA = "escalated_falta"
    DID_NOT_CALL = "did_not_call"

    @property
    def is_escalation(self) -> bool:
        return self in (EnvidoAction.ESCALATED_REAL, EnvidoAction.ESCALATED_FALTA)

    @property
    def is_response(self) -> bool:
        return self in (EnvidoAction.ACCEPTED, EnvidoAction.FOLDED) or self.is_escalation

    @property
    def is_call(self) -> bool:
        return self is EnvidoAction.CALLED or self.is_escalation


class TrucoResponse(str, Enum):
    ACCEPTED = "accepted"
    DECLINED = "declined"
    ESCALATED = "escalated"


@dataclass(frozen=True)
class EnvidoActionEntry:
    round: int
    envido_points: int
    action: EnvidoAction
    was_mano: bool


@dataclass(frozen=True)
class PlayOrderEntry:
    """One card the player put down, with the hand it came from (card codes)."""
    round: int
    trick: int
    played_card: str
    hand_before: Tuple[str, ...]
    was_leading: bool
    was_mano: bool
    led_card: Optional[str] = None


@dataclass(frozen=True)
class TrucoResponseEntry:
    round: int
    response: TrucoResponse
    ai_call_was_bluff: bool


@dataclass(frozen=True)
class RoundSummary:
    round: int
    mano: str
    round_winner: Optional[str]
    player_truco_calls: Tuple[TrucoCallRecord, ...] = ()

    @property
    def player_context(self) -> str:
        return "mano" if self.mano == PLAYER else "pie"

    @property
    def bluff_calls(self) -> int:
        return sum(1 for call in self.player_truco_calls if call.is_bluff)


@dataclass
class PlayerHistory:
    envido_actions: List[EnvidoActionEntry] = field(default_factory=list)
    play_order: List[PlayOrderEntry] = field(default_factory=list)
    rounds: List[RoundSummary] = field(default_factory=list)
    truco_responses: List[TrucoResponseEntry] = field(default_factory=list)
    envido_primero_opportunities: int = 0
    envido_primero_calls: int = 0

    def record_envido_action(self, entry: EnvidoActionEntry) -> None:
        self.envido_actions.append(entry)

    def record_play(self, entry: PlayOrderEntry) -> None:
        self.play_order.append(entry)

    def record_round(self, summary: RoundSummary) -> None:
        self.rounds.append(summary)

    def record_truco_response(self, entry: TrucoResponseEntry) -> None:
        self.truco_responses.append(entry)

    def record_envido_primero_opportunity(self, called: bool) -> None:
        self.envido_primero_opportunities += 1
        if called:
            self.envido_primero_calls += 1


def blend(old: float, observed: float, decay: float = DECAY) -> float:
    return old * decay + (1 - decay) * observed


def _update_envido_context(stats: EnvidoContextStats, actions: Sequence[EnvidoActionEntry]) -> EnvidoContextStats:
    if len(actions) < MIN_CONTEXT_ACTIONS:
        return stats

    responses = [a for a in actions if a.action.is_response]
    if responses:
        folds = sum(1 for a in responses if a.action is EnvidoAction.FOLDED)
        escalations = sum(1 for a in responses if a.action.is_escalation)
        stats = replace(
            stats,
            fold_rate=blend(stats.fold_rate, folds / len(responses)),
            escalation_rate=blend(stats.escalation_rate, escalations / len(responses)),
        )

    calls = [a for a in actions if a.action.is_call]
    if len(calls) >= MIN_THRESHOLD_CALLS:
        observed = float(np.mean([a.envido_points for a in calls]))
        stats = replace(stats, call_threshold=blend(stats.call_threshold, observed))
    return stats


def _update_envido_behavior(model: OpponentModel, history: PlayerHistory) -> OpponentModel:
    actions = history.envido_actions
    if len(actions) < MIN_ENVIDO_ACTIONS:
        return model
    behavior = model.envido_behavior
    for context, was_mano in (("mano", True), ("pie", False)):
        context_actions = [a for a in actions if a.was_mano == was_mano]
        behavior = behavior.with_context(
            context, _update_envido_context(behavior.for_context(context), context_actions)
        )
    return replace(model, envido_behavior=behavior)


def _update_lead_style(model: OpponentModel, history: PlayerHistory) -> OpponentModel:
    leads = [p for p in history.play_order if p.was_leading and p.trick == 0 and p.was_mano]
    if len(leads) < MIN_SAMPLES:
        return model

    led_highest = 0
    baits = 0
    for play in leads:
        hand = [card_from_code(code) for code in play.hand_before]
        played = card_from_code(play.played_card)
        ordered = sort_by_power(hand, descending=True)
        if played == ordered[0]:
            led_highest += 1
        if calculate_hand_strength(hand) > BAIT_HAND_STRENGTH and played == ordered[-1]:
            baits += 1

    style = model.play_style
    style = replace(
        style,
        lead_with_highest_rate=blend(style.lead_with_highest_rate, led_highest / len(leads)),
        bait_rate=blend(style.bait_rate, baits / len(leads)),
    )
    return replace(model, play_style=style)


def _update_counter_tendency(model: OpponentModel, history: PlayerHistory) -> OpponentModel:
    samples = []
    for play in history.play_order:
        if play.was_leading or play.led_card is None:
            continue
        led = card_from_code(play.led_card)
        hand = [card_from_code(code) for code in play.hand_before]
        if not any(c.beats(led) for c in hand):
            continue
        samples.append(card_from_code(play.played_card).beats(led))
    if len(samples) < MIN_SAMPLES:
        return model
    style = model.play_style
    return replace(model, play_style=replace(
        style, counter_tendency=blend(style.counter_tendency, sum(samples) / len(samples))
    ))


def _update_chain_bluffs(model: OpponentModel, history: PlayerHistory) -> OpponentModel:
    bluff_rounds = [r for r in history.rounds if r.bluff_calls > 0]
    if len(bluff_rounds) < MIN_SAMPLES:
        return model
    chained = sum(1 for r in bluff_rounds if r.bluff_calls >= 2)
    style = model.play_style
    return replace(model, play_style=replace(
        style, chain_bluff_rate=blend(style.chain_bluff_rate, chained / len(bluff_rounds))
    ))


def _count_truco_bluffs(history: PlayerHistory) -> TrucoBluffs:
    counts = {"mano": [0, 0], "pie": [0, 0]}
    for summary in history.rounds:
        if summary.bluff_calls == 0 or summary.round_winner is None:
            continue
        tally = counts[summary.player_context]
        tally[0] += 1
        if summary.round_winner == PLAYER:
            tally[1] += 1
    return TrucoBluffs(
        mano=BluffStats(*counts["mano"]),
        pie=BluffStats(*counts["pie"]),
    )


def _update_envido_primero(model: OpponentModel, history: PlayerHistory) -> OpponentModel:
    if history.envido_primero_opportunities < MIN_SAMPLES:
        return model
    observed = history.envido_primero_calls / history.envido_primero_opportunities
    style = model.play_style
    return replace(model, play_style=replace(
        style, envido_primero_rate=blend(style.envido_primero_rate, observed)
    ))


def _update_truco_responses(model: OpponentModel, history: PlayerHistory) -> OpponentModel:
    responses = history.truco_responses
    if len(responses) >= MIN_SAMPLES:
        folds = sum(1 for r in responses if r.response is TrucoResponse.DECLINED)
        model = replace(model, truco_fold_rate=blend(model.truco_fold_rate, folds / len(responses)))

    to_bluffs = [r for r in responses if r.ai_call_was_bluff]
    if len(to_bluffs) >= MIN_SAMPLES:
        successes = sum(1 for r in to_bluffs if r.response is TrucoResponse.DECLINED)
        model = replace(model, bluff_success_rate=blend(model.bluff_success_rate, successes / len(to_bluffs)))
    return model


def update_opponent_model(model: OpponentModel, history: PlayerHistory) -> OpponentModel:
    """Fold one completed round of observations into a new model; ``model`` is left untouched."""
    updated = _update_envido_behavior(model, history)
    updated = _update_lead_style(updated, history)
    updated = _update_counter_tendency(updated, history)
    updated = _update_chain_bluffs(updated, history)
    updated = replace(updated, truco_bluffs=_count_truco_bluffs(history))
    updated = _update_envido_primero(updated, history)
    updated = _update_truco_responses(updated, history)
    logger.debug(
        f"Opponent model updated: truco_fold_rate={updated.truco_fold_rate:.3f}, "
        f"lead_with_highest_rate={updated.play_style.lead_with_highest_rate:.3f}"
    )
    return updated
