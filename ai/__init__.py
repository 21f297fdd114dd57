"""
AI Layer - 电脑对手

Modules:
    personality: 性格与难度
    strategy: 出牌/选色策略
    advisory: 外部建议服务与回退
    learning: 自适应与表现统计
"""
from .personality import (
    Personality,
    Difficulty,
    PersonalityTraits,
    PERSONALITY_TRAITS,
    DRAWN_CARD_PLAY_PROBABILITY,
    get_traits,
)
from .advisory import (
    RiskLevel,
    MalformedAdvice,
    AdvisoryRequest,
    Advice,
    Advisor,
    HeuristicAdvisor,
    RemoteAdvisor,
    FallbackAdvisor,
)
from .strategy import HandState, StrategySelector
from .learning import PerformanceMetrics, Adaptation, AIProfile

__all__ = [
    # personality
    "Personality",
    "Difficulty",
    "PersonalityTraits",
    "PERSONALITY_TRAITS",
    "DRAWN_CARD_PLAY_PROBABILITY",
    "get_traits",
    # advisory
    "RiskLevel",
    "MalformedAdvice",
    "AdvisoryRequest",
    "Advice",
    "Advisor",
    "HeuristicAdvisor",
    "RemoteAdvisor",
    "FallbackAdvisor",
    # strategy
    "HandState",
    "StrategySelector",
    # learning
    "PerformanceMetrics",
    "Adaptation",
    "AIProfile",
]
