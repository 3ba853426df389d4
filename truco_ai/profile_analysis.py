from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from truco_core.opponent_model import OpponentModel
from truco_core.rules import PLAYER
from truco_ai.model_updater import PlayerHistory

MIN_ROUNDS = 3
MIN_BLUFF_ROUNDS = 5
MIN_TRUCO_CALLS = 3
MAX_OBSERVATIONS = 5
NOT_ENOUGH_DATA = "not_enough_data"


@dataclass(frozen=True)
class TraitObservation:
    trait: str
    tag: str
    confidence: float


Scorer = Callable[[OpponentModel, PlayerHistory], float]
Observer = Callable[[float, OpponentModel, PlayerHistory], Optional[str]]


def _envido_aggression(model: OpponentModel, history: PlayerHistory) -> float:
    thresholds = [model.envido_behavior.mano.call_threshold, model.envido_behavior.pie.call_threshold]
    return sum(max(0.0, (30 - t) / 5) for t in thresholds) / 2


def _observe_envido_aggression(score: float, model: OpponentModel, history: PlayerHistory) -> Optional[str]:
    if score > 0.6:
        return "aggressive_envido_caller"
    if score < 0.2:
        return "conservative_envido_caller"
    return None


def _envido_cautiousness(model: OpponentModel, history: PlayerHistory) -> float:
    return (model.envido_behavior.mano.fold_rate + model.envido_behavior.pie.fold_rate) / 2


def _observe_envido_cautiousness(score: float, model: OpponentModel, history: PlayerHistory) -> Optional[str]:
    if score > 0.6:
        return "cautious_folder"
    if score < 0.2:
        return "bold_responder"
    return None


def _bluff_rounds(history: PlayerHistory):
    return [r for r in history.rounds if r.bluff_calls > 0]


def _truco_bluffing(model: OpponentModel, history: PlayerHistory) -> float:
    if len(history.rounds) < MIN_BLUFF_ROUNDS:
        return 0.0
    return min(1.0, len(_bluff_rounds(history)) / (len(history.rounds) / 2))


def _observe_truco_bluffing(score: float, model: OpponentModel, history: PlayerHistory) -> Optional[str]:
    if score <= 0.5:
        return None
    bluffs = _bluff_rounds(history)
    wins = sum(1 for r in bluffs if r.round_winner == PLAYER)
    success_rate = wins / len(bluffs) if len(bluffs) > 2 else 0.0
    if success_rate > 0.6:
        return "effective_bluffer"
    if success_rate < 0.3:
        return "readable_bluffer"
    return "frequent_bluffer"


def _truco_calls(history: PlayerHistory):
    return [c for r in history.rounds for c in r.player_truco_calls]


def _truco_caution(model: OpponentModel, history: PlayerHistory) -> float:
    calls = _truco_calls(history)
    if len(calls) < MIN_TRUCO_CALLS:
        return 0.0
    average = sum(c.strength for c in calls) / len(calls)
    return min(1.0, max(0.0, (average - 20) / 10))


def _observe_truco_caution(score: float, model: OpponentModel, history: PlayerHistory) -> Optional[str]:
    if len(_truco_calls(history)) < MIN_TRUCO_CALLS:
        return None
    if score > 0.8:
        return "conservative_truco_caller"
    if score < 0.3:
        return "aggressive_truco_caller"
    return None


def _lead_predictability(model: OpponentModel, history: PlayerHistory) -> float:
    return model.play_style.lead_with_highest_rate


def _observe_lead(score: float, model: OpponentModel, history: PlayerHistory) -> Optional[str]:
    if score > 0.9:
        return "predictable_leader"
    if score < 0.4:
        return "deceptive_leader"
    return None


def _threshold_observer(threshold: float, tag: str) -> Observer:
    def observe(score: float, model: OpponentModel, history: PlayerHistory) -> Optional[str]:
        return tag if score > threshold else None
    return observe


TRAITS: List[Tuple[str, Scorer, Observer]] = [
    ("envido_aggression", _envido_aggression, _observe_envido_aggression),
    ("envido_cautiousness", _envido_cautiousness, _observe_envido_cautiousness),
    ("truco_bluffer", _truco_bluffing, _observe_truco_bluffing),
    ("truco_conservative", _truco_caution, _observe_truco_caution),
    ("lead_predictability", _lead_predictability, _observe_lead),
    ("envido_primero", lambda m, h: m.play_style.envido_primero_rate, _threshold_observer(0.6, "envido_primero_player")),
    ("counter_puncher", lambda m, h: m.play_style.counter_tendency, _threshold_observer(0.6, "counter_puncher")),
    ("chain_bluffer", lambda m, h: m.play_style.chain_bluff_rate, _threshold_observer(0.4, "chain_bluffer")),
]


def analyze_profile(model: OpponentModel, history: PlayerHistory) -> List[TraitObservation]:
    """Trait tags describing the player, most confident first. Rendering is left to the caller."""
    if len(history.rounds) < MIN_ROUNDS:
        return [TraitObservation(NOT_ENOUGH_DATA, NOT_ENOUGH_DATA, 1.0)]

    observations = []
    for trait, scorer, observer in TRAITS:
        score = scorer(model, history)
        tag = observer(score, model, history)
        if tag is not None:
            observations.append(TraitObservation(trait, tag, score))

    observations.sort(key=lambda o: o.confidence, reverse=True)
    return observations[:MAX_OBSERVATIONS]
