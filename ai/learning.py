"""
AI 自适应

每局结束后:
- 玩家获胜时随机切换性格 (粗略的学习信号)
- 用指数移动平均更新 AI 胜率
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Union
import random
import uuid
import logging

from core.state import Player, Move

from .personality import Personality, PersonalityTraits, get_traits
from .advisory import Advice

logger = logging.getLogger(__name__)


@dataclass
class PerformanceMetrics:
    """AI 表现统计"""
    win_rate: float = 0.5
    rounds: int = 0
    wins: int = 0
    losses: int = 0


@dataclass
class Adaptation:
    """一次自适应的结果"""
    previous: Personality
    personality: Personality
    reason: str
    win_rate: float

    @property
    def changed(self) -> bool:
        return self.previous != self.personality


@dataclass
class AIProfile:
    """
    AI 档案

    记录性格、动作、建议与自适应历史

    Attributes:
        personality: 当前性格
        smoothing: 胜率 EMA 平滑系数
        learning_enabled: 是否根据结果调整性格
        rng: 随机源
    """
    personality: Personality = Personality.BALANCED
    smoothing: float = 0.1
    learning_enabled: bool = True
    rng: random.Random = field(default_factory=random.Random, repr=False)
    session_id: str = field(default_factory=lambda: f"session_{uuid.uuid4().hex[:12]}")
    performance: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    moves: List[Move] = field(default_factory=list, repr=False)
    predictions: List[Advice] = field(default_factory=list, repr=False)
    adaptations: List[Adaptation] = field(default_factory=list, repr=False)

    def __post_init__(self):
        self.personality = Personality(self.personality)

    @property
    def traits(self) -> PersonalityTraits:
        return get_traits(self.personality)

    def record_move(self, move: Move):
        self.moves.append(move)

    def record_prediction(self, advice: Advice):
        self.predictions.append(advice)

    def adapt(self, winner: Union[Player, str]) -> Adaptation:
        """
        根据本局结果调整

        Args:
            winner: 本局赢家

        Returns:
            自适应结果
        """
        winner = Player(winner)
        previous = self.personality
        ai_won = winner is Player.AI

        # 胜率 EMA
        alpha = self.smoothing
        metrics = self.performance
        metrics.win_rate = metrics.win_rate * (1 - alpha) + (1.0 if ai_won else 0.0) * alpha
        metrics.rounds += 1
        if ai_won:
            metrics.wins += 1
        else:
            metrics.losses += 1

        reason = "ai_won"
        if not ai_won:
            reason = "player_won"
            if self.learning_enabled:
                self.personality = self.rng.choice(list(Personality))

        adaptation = Adaptation(
            previous=previous,
            personality=self.personality,
            reason=reason,
            win_rate=metrics.win_rate,
        )
        self.adaptations.append(adaptation)

        if adaptation.changed:
            logger.info(f"AI adapted strategy: {previous.value} -> {self.personality.value}")

        return adaptation

    def summary(self) -> Dict[str, Any]:
        """统计摘要"""
        last: Optional[Advice] = self.predictions[-1] if self.predictions else None
        return {
            "total_moves": len(self.moves),
            "predictions": len(self.predictions),
            "adaptations": len(self.adaptations),
            "personality": self.personality.value,
            "win_rate": self.performance.win_rate,
            "rounds": self.performance.rounds,
            "last_win_probability": last.win_probability if last else None,
            "session_id": self.session_id,
        }
