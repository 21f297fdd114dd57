"""
规则引擎 - 出牌合法性、计分

所有方法都是纯函数，无状态
"""
from enum import Enum
from typing import List, Dict, Iterable, TYPE_CHECKING
from collections import Counter

from .cards import Card, Color, Value, COLORS

if TYPE_CHECKING:
    from .state import MatchState


class DrawStackType(Enum):
    """罚牌叠加类型"""
    NONE = "none"
    DRAW_TWO = "draw2"
    DRAW_FOUR = "draw4"


class RuleEngine:
    """
    UNO 规则引擎

    提供出牌合法性判断、可出牌筛选、计分等功能
    所有方法都是静态方法，无状态
    """

    @staticmethod
    def can_stack(card: Card, stack_type: DrawStackType) -> bool:
        """
        检查牌能否叠加到当前罚牌上

        +2 上可以叠 +2 或 +4；+4 上只能叠 +4
        """
        if stack_type == DrawStackType.DRAW_TWO:
            return card.value in (Value.DRAW_TWO, Value.WILD_DRAW_FOUR)
        if stack_type == DrawStackType.DRAW_FOUR:
            return card.value == Value.WILD_DRAW_FOUR
        return False

    @staticmethod
    def can_play(card: Card, state: "MatchState") -> bool:
        """
        检查牌是否可以打出

        Args:
            card: 要出的牌
            state: 当前对局状态

        Returns:
            是否合法
        """
        # 有待结算的罚牌时只能叠加
        if state.draw_stack > 0:
            return RuleEngine.can_stack(card, state.draw_stack_type)

        if card.is_wild:
            return True
        if card.color == state.current_color:
            return True
        return card.value == state.current_card.value

    @staticmethod
    def playable_cards(hand: Iterable[Card], state: "MatchState") -> List[Card]:
        """
        筛选手牌中可以打出的牌 (保持手牌顺序)

        Args:
            hand: 手牌
            state: 当前对局状态

        Returns:
            可出的牌列表
        """
        return [card for card in hand if RuleEngine.can_play(card, state)]

    @staticmethod
    def color_counts(cards: Iterable[Card]) -> Dict[Color, int]:
        """统计四种颜色的张数 (万能牌不计)"""
        counter = Counter(card.color for card in cards)
        return {color: counter.get(color, 0) for color in COLORS}

    @staticmethod
    def calculate_points(hand: Iterable[Card]) -> int:
        """
        计算手牌分数

        数字牌按面值，跳过/反转/+2 各 20 分，万能/万能 +4 各 50 分

        Args:
            hand: 输家剩余手牌

        Returns:
            分数
        """
        return sum(card.points for card in hand)
