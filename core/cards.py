"""
牌的定义与编码

UNO 使用 108 张牌：
- 红/黄/绿/蓝 每色: 0 一张, 1-9 各两张, 跳过/反转/+2 各两张 (共 25 张)
- 万能牌 4 张, 万能 +4 牌 4 张
"""
from enum import Enum, IntEnum
from dataclasses import dataclass
from typing import List, Tuple, Dict, Iterable
from collections import Counter
import numpy as np


class Color(Enum):
    """牌的颜色 (WILD 只出现在万能牌上，不会成为当前颜色)"""
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    WILD = "wild"


class Value(IntEnum):
    """牌面值 (0-9 为数字牌)"""
    ZERO = 0
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    SKIP = 10
    REVERSE = 11
    DRAW_TWO = 12
    WILD = 13
    WILD_DRAW_FOUR = 14


# 四种真实颜色 (枚举顺序也是选色时的平局顺序)
COLORS: Tuple[Color, ...] = (Color.RED, Color.YELLOW, Color.GREEN, Color.BLUE)

NUMBER_VALUES: Tuple[Value, ...] = tuple(Value(i) for i in range(10))
ACTION_VALUES: Tuple[Value, ...] = (Value.SKIP, Value.REVERSE, Value.DRAW_TWO)
WILD_VALUES: Tuple[Value, ...] = (Value.WILD, Value.WILD_DRAW_FOUR)

# 计分
ACTION_POINTS = 20
WILD_POINTS = 50

DECK_SIZE = 108


@dataclass(frozen=True)
class Card:
    """
    不可变的牌

    Attributes:
        color: 颜色，万能牌为 Color.WILD
        value: 牌面值
    """
    color: Color
    value: Value

    def __post_init__(self):
        # 万能牌与颜色必须一致
        if (self.value in WILD_VALUES) != (self.color == Color.WILD):
            raise ValueError(f"Invalid card: {self.color.value} {self.value.name}")

    @property
    def is_wild(self) -> bool:
        return self.color == Color.WILD

    @property
    def is_number(self) -> bool:
        return self.value <= Value.NINE

    @property
    def is_action(self) -> bool:
        """跳过 / 反转 / +2"""
        return self.value in ACTION_VALUES

    @property
    def is_special(self) -> bool:
        """功能牌或万能牌"""
        return not self.is_number

    @property
    def is_draw(self) -> bool:
        """可以叠加罚牌的牌 (+2 / +4)"""
        return self.value in (Value.DRAW_TWO, Value.WILD_DRAW_FOUR)

    @property
    def points(self) -> int:
        if self.is_wild:
            return WILD_POINTS
        if self.is_action:
            return ACTION_POINTS
        return int(self.value)

    def __str__(self) -> str:
        return card_to_str(self)


def build_deck() -> List[Card]:
    """按官方配置生成 108 张牌 (未洗牌)"""
    deck = []
    for color in COLORS:
        deck.append(Card(color, Value.ZERO))
        for value in NUMBER_VALUES[1:]:
            deck.extend([Card(color, value)] * 2)
        for value in ACTION_VALUES:
            deck.extend([Card(color, value)] * 2)
    for _ in range(4):
        deck.append(Card(Color.WILD, Value.WILD))
        deck.append(Card(Color.WILD, Value.WILD_DRAW_FOUR))
    return deck


# 完整牌组 (108 张)
FULL_DECK: Tuple[Card, ...] = tuple(build_deck())


# 颜色 / 牌面到字符的映射
COLOR_TO_STR: Dict[Color, str] = {
    Color.RED: 'R', Color.YELLOW: 'Y', Color.GREEN: 'G', Color.BLUE: 'B', Color.WILD: 'W',
}
STR_TO_COLOR: Dict[str, Color] = {v: k for k, v in COLOR_TO_STR.items()}

VALUE_TO_STR: Dict[Value, str] = {
    **{v: str(int(v)) for v in NUMBER_VALUES},
    Value.SKIP: 'S',
    Value.REVERSE: 'R',
    Value.DRAW_TWO: '+2',
}
STR_TO_VALUE: Dict[str, Value] = {v: k for k, v in VALUE_TO_STR.items()}

# 所有不同的牌 (54 种): 4 色 × 13 种 + 万能 + 万能 +4
CARD_KINDS: Tuple[Card, ...] = tuple(
    [Card(color, value) for color in COLORS for value in NUMBER_VALUES + ACTION_VALUES]
    + [Card(Color.WILD, Value.WILD), Card(Color.WILD, Value.WILD_DRAW_FOUR)]
)
NUM_CARD_KINDS = len(CARD_KINDS)

CARD_TO_INDEX: Dict[Card, int] = {card: i for i, card in enumerate(CARD_KINDS)}


def card_index(card: Card) -> int:
    """牌在 54 维编码中的位置"""
    return CARD_TO_INDEX[card]


def card_to_str(card: Card) -> str:
    """
    牌转为简写

    Returns:
        如 "R5", "GS", "BR", "Y+2", "W", "W+4"
    """
    if card.value == Value.WILD:
        return 'W'
    if card.value == Value.WILD_DRAW_FOUR:
        return 'W+4'
    return COLOR_TO_STR[card.color] + VALUE_TO_STR[card.value]


def str_to_card(s: str) -> Card:
    """
    简写转为牌

    Args:
        s: 牌简写，大小写不敏感

    Returns:
        Card
    """
    s = s.strip().upper()
    if s == 'W':
        return Card(Color.WILD, Value.WILD)
    if s == 'W+4':
        return Card(Color.WILD, Value.WILD_DRAW_FOUR)
    if len(s) < 2 or s[0] not in STR_TO_COLOR or s[1:] not in STR_TO_VALUE:
        raise ValueError(f"Cannot parse card: {s!r}")
    return Card(STR_TO_COLOR[s[0]], STR_TO_VALUE[s[1:]])


def cards_to_str(cards: Iterable[Card]) -> str:
    """牌列表转为空格分隔的字符串"""
    return ' '.join(card_to_str(c) for c in cards)


def str_to_cards(s: str) -> List[Card]:
    """
    字符串转为牌列表

    Args:
        s: 如 "R5 GS W+4"

    Returns:
        牌列表
    """
    return [str_to_card(token) for token in s.split()]


def cards_to_array(cards: Iterable[Card]) -> np.ndarray:
    """
    将牌列表转换为 54 维计数向量

    编码方式:
    - 前 52 维: 4 色 × 13 种牌面 (0-9, 跳过, 反转, +2)
    - 后 2 维: [万能, 万能 +4]

    Args:
        cards: 牌列表

    Returns:
        54 维 numpy 数组，值为该种牌的张数
    """
    array = np.zeros(NUM_CARD_KINDS, dtype=np.float32)
    for card, count in Counter(cards).items():
        array[CARD_TO_INDEX[card]] = count
    return array


def array_to_cards(array: np.ndarray) -> List[Card]:
    """将 54 维计数向量转换回牌列表"""
    cards = []
    for idx in np.flatnonzero(array):
        cards.extend([CARD_KINDS[idx]] * int(array[idx]))
    return cards


def parse_color(s: str) -> Color:
    """
    解析颜色名或简写

    Args:
        s: "red" / "r" 等

    Returns:
        四种真实颜色之一
    """
    s = s.strip().lower()
    for color in COLORS:
        if s in (color.value, COLOR_TO_STR[color].lower()):
            return color
    raise ValueError(f"Unknown color: {s!r}")
