"""
牌堆管理

负责生成、洗牌、发牌、摸牌与弃牌堆回收。
牌堆顶为序列末尾；所有方法返回新元组，不修改入参。
"""
from typing import List, Tuple, Optional, Sequence
import random
import logging

from .cards import Card, build_deck
from .errors import InsufficientDeck, NoCardsAvailable

logger = logging.getLogger(__name__)


class DeckManager:
    """
    牌堆管理器

    随机源通过构造函数注入，保证测试可复现
    """

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Args:
            rng: 随机源，None 时使用新的 random.Random()
        """
        self.rng = rng if rng is not None else random.Random()

    def build(self) -> List[Card]:
        """生成 108 张牌，顺序未定义"""
        return build_deck()

    def shuffle(self, cards: Sequence[Card]) -> List[Card]:
        """
        Fisher-Yates 洗牌

        Args:
            cards: 待洗的牌

        Returns:
            洗好的新列表
        """
        cards = list(cards)
        for i in range(len(cards) - 1, 0, -1):
            j = self.rng.randrange(i + 1)
            cards[i], cards[j] = cards[j], cards[i]
        return cards

    def deal(
        self,
        deck: Sequence[Card],
        n: int,
        players: int = 2,
    ) -> Tuple[Tuple[Tuple[Card, ...], ...], Tuple[Card, ...]]:
        """
        从牌堆顶轮流发牌

        Args:
            deck: 牌堆
            n: 每人张数
            players: 玩家数

        Returns:
            (各玩家手牌, 剩余牌堆)
        """
        if len(deck) < n * players:
            raise InsufficientDeck(
                f"Cannot deal {n} cards to {players} players from {len(deck)} cards"
            )

        remaining = list(deck)
        hands: List[List[Card]] = [[] for _ in range(players)]
        for _ in range(n):
            for hand in hands:
                hand.append(remaining.pop())

        return tuple(tuple(h) for h in hands), tuple(remaining)

    def recycle(
        self,
        deck: Sequence[Card],
        discard: Sequence[Card],
    ) -> Tuple[Tuple[Card, ...], Tuple[Card, ...]]:
        """
        牌堆耗尽时回收弃牌堆

        保留弃牌堆顶作为新的弃牌堆，其余洗入牌堆

        Returns:
            (新牌堆, 新弃牌堆)
        """
        if deck:
            return tuple(deck), tuple(discard)

        # 正常发牌下不可达
        if len(discard) <= 1:
            raise NoCardsAvailable("Deck and discard pile are exhausted")

        top = discard[-1]
        new_deck = self.shuffle(discard[:-1])
        logger.debug(f"Recycled {len(new_deck)} cards from discard pile")
        return tuple(new_deck), (top,)

    def draw(
        self,
        deck: Sequence[Card],
        discard: Sequence[Card],
        n: int = 1,
    ) -> Tuple[Tuple[Card, ...], Tuple[Card, ...], Tuple[Card, ...]]:
        """
        摸 n 张牌，必要时自动回收弃牌堆

        Returns:
            (摸到的牌, 新牌堆, 新弃牌堆)
        """
        deck = list(deck)
        discard = tuple(discard)
        drawn = []

        for _ in range(n):
            if not deck:
                new_deck, discard = self.recycle(deck, discard)
                deck = list(new_deck)
            drawn.append(deck.pop())

        return tuple(drawn), tuple(deck), discard

    def pick_start_card(
        self,
        deck: Sequence[Card],
    ) -> Tuple[Card, Tuple[Card, ...]]:
        """
        翻出起始牌 (非万能牌)

        翻到的万能牌放回牌堆底

        Returns:
            (起始牌, 剩余牌堆)
        """
        remaining = list(deck)
        skipped = []

        while remaining:
            card = remaining.pop()
            if not card.is_wild:
                return card, tuple(skipped + remaining)
            skipped.append(card)

        raise NoCardsAvailable("No non-wild card available to start the round")

    def new_round(
        self,
        hand_size: int = 7,
    ) -> Tuple[Tuple[Card, ...], Tuple[Card, ...], Tuple[Card, ...], Card]:
        """
        开局: 生成、洗牌、发牌、翻起始牌

        Returns:
            (玩家手牌, AI 手牌, 剩余牌堆, 起始牌)
        """
        deck = self.shuffle(self.build())
        (player_hand, ai_hand), deck = self.deal(deck, hand_size)
        start_card, deck = self.pick_start_card(deck)
        return player_hand, ai_hand, deck, start_card
