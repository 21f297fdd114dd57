"""
Evaluation Layer - 评估系统

Modules:
    evaluator: 智能体与评估器
    arena: 对战竞技场 (难度扫描)
"""
from .evaluator import (
    EvalResult,
    Agent,
    RandomAgent,
    RuleBasedAgent,
    Evaluator,
    win_rate_confidence,
)

from .arena import (
    GameRecord,
    SweepResult,
    Arena,
    ParallelArena,
)

__all__ = [
    # evaluator
    "EvalResult",
    "Agent",
    "RandomAgent",
    "RuleBasedAgent",
    "Evaluator",
    "win_rate_confidence",
    # arena
    "GameRecord",
    "SweepResult",
    "Arena",
    "ParallelArena",
]
