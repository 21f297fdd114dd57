"""
Core Layer - 纯游戏逻辑 (无 AI / 引擎依赖)

Modules:
    cards: 牌定义与编码
    deck: 牌堆管理
    rules: 规则引擎
    state: 对局状态
    errors: 异常
"""
from .cards import (
    Color,
    Value,
    Card,
    COLORS,
    FULL_DECK,
    DECK_SIZE,
    CARD_KINDS,
    NUM_CARD_KINDS,
    build_deck,
    card_index,
    card_to_str,
    str_to_card,
    cards_to_str,
    str_to_cards,
    cards_to_array,
    array_to_cards,
    parse_color,
)

from .deck import DeckManager

from .errors import (
    InvalidMove,
    DeckError,
    InsufficientDeck,
    NoCardsAvailable,
)

from .rules import RuleEngine, DrawStackType

from .state import (
    Phase,
    Player,
    MoveType,
    Move,
    MatchSnapshot,
    MatchState,
    PLAY_ORDER,
)

__all__ = [
    # cards
    "Color",
    "Value",
    "Card",
    "COLORS",
    "FULL_DECK",
    "DECK_SIZE",
    "CARD_KINDS",
    "NUM_CARD_KINDS",
    "build_deck",
    "card_index",
    "card_to_str",
    "str_to_card",
    "cards_to_str",
    "str_to_cards",
    "cards_to_array",
    "array_to_cards",
    "parse_color",
    # deck
    "DeckManager",
    # errors
    "InvalidMove",
    "DeckError",
    "InsufficientDeck",
    "NoCardsAvailable",
    # rules
    "RuleEngine",
    "DrawStackType",
    # state
    "Phase",
    "Player",
    "MoveType",
    "Move",
    "MatchSnapshot",
    "MatchState",
    "PLAY_ORDER",
]
