from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Tuple

from truco_core.cards import Card

CONTEXTS = ("mano", "pie")


def _check_context(context: str) -> None:
    if context not in CONTEXTS:
        raise ValueError(f"Unrecognized context: {context}")


def _merge_dataclass(cls, data: Dict[str, Any]):
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass(frozen=True)
class EnvidoContextStats:
    call_threshold: float = 27.0
    fold_rate: float = 0.4
    escalation_rate: float = 0.2


@dataclass(frozen=True)
class EnvidoBehavior:
    mano: EnvidoContextStats = field(default_factory=EnvidoContextStats)
    pie: EnvidoContextStats = field(default_factory=EnvidoContextStats)

    def for_context(self, context: str) -> EnvidoContextStats:
        _check_context(context)
        return getattr(self, context)

    def with_context(self, context: str, stats: EnvidoContextStats) -> "EnvidoBehavior":
        _check_context(context)
        return replace(self, **{context: stats})


@dataclass(frozen=True)
class BluffStats:
    attempts: int = 0
    successes: int = 0

    @property
    def success_rate(self) -> float:
        return self.successes / self.attempts if self.attempts else 0.0


@dataclass(frozen=True)
class TrucoBluffs:
    mano: BluffStats = field(default_factory=BluffStats)
    pie: BluffStats = field(default_factory=BluffStats)

    def for_context(self, context: str) -> BluffStats:
        _check_context(context)
        return getattr(self, context)


@dataclass(frozen=True)
class PlayStyle:
    lead_with_highest_rate: float = 0.75
    bait_rate: float = 0.1
    counter_tendency: float = 0.0
    chain_bluff_rate: float = 0.0
    envido_primero_rate: float = 0.0


@dataclass(frozen=True)
class OpponentModel:
    """Long-lived estimate of the human player's habits.

    Every field is a decayed running estimate. Instances are never mutated;
    updates build a new model with ``dataclasses.replace``.
    """
    envido_behavior: EnvidoBehavior = field(default_factory=EnvidoBehavior)
    truco_fold_rate: float = 0.3
    bluff_success_rate: float = 0.5
    truco_bluffs: TrucoBluffs = field(default_factory=TrucoBluffs)
    play_style: PlayStyle = field(default_factory=PlayStyle)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OpponentModel":
        data = data or {}
        envido = data.get("envido_behavior") or {}
        bluffs = data.get("truco_bluffs") or {}
        defaults = cls()
        return cls(
            envido_behavior=EnvidoBehavior(
                mano=_merge_dataclass(EnvidoContextStats, envido.get("mano")),
                pie=_merge_dataclass(EnvidoContextStats, envido.get("pie")),
            ),
            truco_fold_rate=data.get("truco_fold_rate", defaults.truco_fold_rate),
            bluff_success_rate=data.get("bluff_success_rate", defaults.bluff_success_rate),
            truco_bluffs=TrucoBluffs(
                mano=_merge_dataclass(BluffStats, bluffs.get("mano")),
                pie=_merge_dataclass(BluffStats, bluffs.get("pie")),
            ),
            play_style=_merge_dataclass(PlayStyle, data.get("play_style")),
        )


@dataclass(frozen=True)
class OpponentHandProbabilities:
    suit_dist: Dict[str, float]
    rank_probs: Dict[int, float]
    unseen_cards: Tuple[Card, ...]
