"""
AI 性格与难度

性格决定三个权重: 功能牌偏好、风险承受度、万能牌时机
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Union


class Personality(Enum):
    """AI 性格"""
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    BALANCED = "balanced"


class Difficulty(Enum):
    """AI 难度"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class PersonalityTraits:
    """
    性格权重 (均在 [0, 1])

    Attributes:
        action_card_preference: 功能牌偏好
        risk_tolerance: 风险承受度
        wild_card_timing: 万能牌时机 (越高越早出)
        description: 描述
    """
    action_card_preference: float
    risk_tolerance: float
    wild_card_timing: float
    description: str = ""


PERSONALITY_TRAITS: Dict[Personality, PersonalityTraits] = {
    Personality.AGGRESSIVE: PersonalityTraits(
        action_card_preference=0.8,
        risk_tolerance=0.9,
        wild_card_timing=0.7,
        description="Plays aggressively with high-value cards and risks",
    ),
    Personality.DEFENSIVE: PersonalityTraits(
        action_card_preference=0.3,
        risk_tolerance=0.2,
        wild_card_timing=0.9,
        description="Focuses on safe plays and card conservation",
    ),
    Personality.BALANCED: PersonalityTraits(
        action_card_preference=0.5,
        risk_tolerance=0.5,
        wild_card_timing=0.6,
        description="Balanced approach between offense and defense",
    ),
}

# 摸到能出的牌后立即打出的概率
DRAWN_CARD_PLAY_PROBABILITY: Dict[Difficulty, float] = {
    Difficulty.EASY: 0.5,
    Difficulty.MEDIUM: 0.7,
    Difficulty.HARD: 0.9,
}


def get_traits(personality: Union[Personality, str]) -> PersonalityTraits:
    """获取性格权重"""
    return PERSONALITY_TRAITS[Personality(personality)]
