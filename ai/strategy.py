"""
AI 出牌策略

三档难度:
- easy: 随机出牌，轻微偏向功能牌
- medium: 性格加权的功能牌优先 + 稀有颜色优先
- hard: 规则级联 (最后一张 / 压制对手 / 万能牌时机 / 功能牌 / 颜色权重)

外部建议 (非降级) 推荐的牌在可出集合中时直接采用
"""
from dataclasses import dataclass
from typing import List, Tuple, Optional, Sequence, Union
import random
import logging

from core.cards import Card, Color, Value, COLORS
from core.rules import RuleEngine

from .personality import Difficulty, PersonalityTraits, DRAWN_CARD_PLAY_PROBABILITY
from .advisory import Advice

logger = logging.getLogger(__name__)

# hard 模式压制对手时优先的牌
PRESSURE_VALUES: Tuple[Value, ...] = (Value.DRAW_TWO, Value.SKIP, Value.WILD_DRAW_FOUR)


@dataclass(frozen=True)
class HandState:
    """
    AI 决策时看到的局面

    Attributes:
        hand: AI 全部手牌
        opponent_hand_size: 对手手牌数
        win_probability: 本地胜率估计 (没有建议时使用)
    """
    hand: Tuple[Card, ...]
    opponent_hand_size: int
    win_probability: float = 0.5


class StrategySelector:
    """
    AI 出牌/选色策略

    随机源通过构造函数注入
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()

    def choose_card(
        self,
        playable: Sequence[Card],
        hand_state: HandState,
        traits: PersonalityTraits,
        difficulty: Union[Difficulty, str],
        advice: Optional[Advice] = None,
    ) -> Card:
        """
        从可出的牌中选一张

        Args:
            playable: 可出的牌 (非空)
            hand_state: 局面
            traits: 性格权重
            difficulty: 难度
            advice: 外部建议

        Returns:
            选中的牌
        """
        if not playable:
            raise ValueError("No playable cards to choose from")

        playable = list(playable)
        difficulty = Difficulty(difficulty)

        # 最后一张牌直接出
        if len(hand_state.hand) == 1:
            return playable[0]

        if advice is not None and not advice.degraded and advice.recommended_card in playable:
            logger.debug(f"Using advisory recommendation: {advice.recommended_card}")
            return advice.recommended_card

        win_probability = advice.win_probability if advice is not None else hand_state.win_probability

        if difficulty == Difficulty.EASY:
            return self._easy(playable, traits)
        elif difficulty == Difficulty.MEDIUM:
            return self._medium(playable, hand_state, traits, win_probability)
        else:
            return self._hard(playable, hand_state, traits, win_probability)

    def _easy(self, playable: List[Card], traits: PersonalityTraits) -> Card:
        """随机出牌，以 action_card_preference * 0.3 的概率偏向功能牌"""
        if self.rng.random() < traits.action_card_preference * 0.3:
            special = [c for c in playable if c.is_special]
            if special:
                return self.rng.choice(special)
        return self.rng.choice(playable)

    def _medium(
        self,
        playable: List[Card],
        hand_state: HandState,
        traits: PersonalityTraits,
        win_probability: float,
    ) -> Card:
        hand = hand_state.hand

        special = [c for c in playable if c.is_special]
        if special and self.rng.random() < traits.action_card_preference:
            # 胜率高或快出完时更激进
            if win_probability > 0.7 or len(hand) <= 2:
                return special[0]
            if self.rng.random() < traits.risk_tolerance:
                return special[0]

        # 稀有颜色优先
        counts = RuleEngine.color_counts(hand)
        wild_key = -1 if traits.wild_card_timing > 0.5 else len(hand) + 1

        ordered = sorted(
            playable,
            key=lambda c: wild_key if c.is_wild else counts[c.color],
        )
        return ordered[0]

    def _hard(
        self,
        playable: List[Card],
        hand_state: HandState,
        traits: PersonalityTraits,
        win_probability: float,
    ) -> Card:
        hand = hand_state.hand
        opponent_size = hand_state.opponent_hand_size

        # 1. 对手快出完: 用 +2 / 跳过 / +4 压制
        if opponent_size <= 2:
            pressure = [c for c in playable if c.value in PRESSURE_VALUES]
            if pressure:
                logger.debug("Pressure play against low opponent hand")
                return pressure[0]

        # 2. 万能牌时机
        wilds = [c for c in playable if c.is_wild]
        if wilds:
            use_wild = (
                win_probability > 0.8
                or (len(hand) > 5 and traits.wild_card_timing < 0.4)
                or (len(hand) <= 3 and traits.risk_tolerance > 0.7)
            )
            if use_wild:
                return wilds[0]

        # 3. 功能牌
        actions = [c for c in playable if c.is_action]
        if actions:
            use_action = traits.action_card_preference > self.rng.random()
            critical = opponent_size <= 3 or win_probability > 0.6
            if (traits.risk_tolerance > 0.6 and use_action) or critical:
                return actions[0]

        # 4. 颜色权重: 手里少的颜色先出，万能牌排最后
        hand_counts = RuleEngine.color_counts(hand)
        playable_counts = RuleEngine.color_counts(playable)

        def score(card: Card) -> float:
            if card.is_wild:
                return float("inf")
            return hand_counts[card.color] * 0.7 + playable_counts[card.color] * 0.3

        return sorted(playable, key=score)[0]

    def choose_color(self, hand: Sequence[Card], advice: Optional[Advice] = None) -> Color:
        """
        万能牌选色: 手里最多的颜色，平局按枚举顺序

        Args:
            hand: AI 剩余手牌
            advice: 外部建议 (非降级时采用推荐颜色)
        """
        if advice is not None and not advice.degraded and advice.recommended_color in COLORS:
            return advice.recommended_color

        counts = RuleEngine.color_counts(hand)
        return max(COLORS, key=lambda color: counts[color])

    def should_play_drawn_card(self, difficulty: Union[Difficulty, str]) -> bool:
        """摸到能出的牌后是否立即打出"""
        return self.rng.random() < DRAWN_CARD_PLAY_PROBABILITY[Difficulty(difficulty)]
