"""测试公共夹具"""
import random
from collections import Counter

import pytest

from core.cards import FULL_DECK, str_to_card, str_to_cards
from core.state import MatchState, Player


class FixedRandom(random.Random):
    """random() 恒定返回给定值的随机源"""

    def __init__(self, value: float, seed: int = 0):
        super().__init__(seed)
        self.value = value

    def random(self) -> float:
        return self.value


def build_state(
    player="R1 R2",
    ai="G1 G2",
    top="R5",
    color=None,
    current_player=Player.HUMAN,
    deck_top="",
    discard_below="",
    **changes,
) -> MatchState:
    """
    构造指定局面，剩余牌全部放进牌堆，保证总数 108

    Args:
        player: 玩家手牌
        ai: AI 手牌
        top: 弃牌堆顶
        color: 当前颜色 (默认为 top 的颜色)
        current_player: 当前玩家
        deck_top: 按摸牌顺序放在牌堆顶的牌
        discard_below: 弃牌堆顶下面的牌
    """
    player_hand = tuple(str_to_cards(player))
    ai_hand = tuple(str_to_cards(ai))
    top_card = str_to_card(top)
    below = tuple(str_to_cards(discard_below))
    top_of_deck = str_to_cards(deck_top)

    used = Counter(player_hand + ai_hand + below + (top_card,) + tuple(top_of_deck))
    rest = []
    pool = Counter(used)
    for card in FULL_DECK:
        if pool[card] > 0:
            pool[card] -= 1
        else:
            rest.append(card)
    assert not +pool, f"Too many copies requested: {+pool}"

    # 牌堆顶在末尾，第一张要摸的放最后
    deck = tuple(rest) + tuple(reversed(top_of_deck))

    if color is None:
        color = top_card.color

    return MatchState(
        deck=deck,
        player_hand=player_hand,
        ai_hand=ai_hand,
        discard_pile=below + (top_card,),
        current_color=color,
        current_player=current_player,
        **changes,
    )


@pytest.fixture
def make_state():
    """构造局面的工厂"""
    return build_state


@pytest.fixture
def fixed_random():
    """FixedRandom 工厂"""
    return FixedRandom
