"""
对局状态定义

使用不可变数据结构，支持:
- 每次状态转移返回新状态，旧状态保持有效
- version 递增，供延迟任务校验
- 易于生成只读快照
"""
from dataclasses import dataclass, field, replace
from typing import Dict, Tuple, Optional, List, FrozenSet, Any
from enum import Enum

from .cards import Card, Color, Value, COLORS, DECK_SIZE, cards_to_str, card_to_str
from .deck import DeckManager
from .errors import InvalidMove
from .rules import RuleEngine, DrawStackType


class Phase(Enum):
    """对局阶段"""
    AWAITING_PLAY = "awaiting_play"                  # 等待出牌/摸牌
    AWAITING_COLOR_CHOICE = "awaiting_color_choice"  # 打出万能牌后等待选色
    ROUND_OVER = "round_over"                        # 本局结束


class Player(Enum):
    """玩家"""
    HUMAN = "player"
    AI = "ai"

    @property
    def opponent(self) -> "Player":
        return Player.AI if self is Player.HUMAN else Player.HUMAN


# 座位顺序 (两人局，方向不影响顺序)
PLAY_ORDER: Tuple[Player, ...] = (Player.HUMAN, Player.AI)


class MoveType(Enum):
    """动作记录类型"""
    PLAY = "play"
    DRAW = "draw"
    STACK_DRAW = "stack_draw"
    PASS = "pass"
    CHOOSE_COLOR = "choose_color"
    CALL_UNO = "call_uno"
    UNO_PENALTY = "uno_penalty"


@dataclass(frozen=True)
class Move:
    """一条动作记录"""
    player: Player
    move_type: MoveType
    cards: Tuple[Card, ...] = ()
    color: Optional[Color] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player": self.player.value,
            "type": self.move_type.value,
            "cards": cards_to_str(self.cards),
            "color": self.color.value if self.color else None,
        }


@dataclass(frozen=True)
class MatchSnapshot:
    """
    只读快照 (展示层只依赖它)

    对手手牌只暴露张数
    """
    player_hand: Tuple[Card, ...]
    ai_hand_size: int
    discard_top: Card
    current_color: Color
    draw_stack: int
    draw_stack_type: DrawStackType
    current_player: Player
    scores: Tuple[Tuple[str, int], ...]
    phase: Phase
    deck_size: int
    discard_size: int
    drawn_card: Optional[Card] = None
    winner: Optional[Player] = None
    uncalled_uno: bool = False
    uno_called: bool = False

    def get_score(self, player: Player) -> int:
        return dict(self.scores).get(player.value, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_hand": cards_to_str(self.player_hand),
            "ai_hand_size": self.ai_hand_size,
            "discard_top": card_to_str(self.discard_top),
            "current_color": self.current_color.value,
            "draw_stack": self.draw_stack,
            "draw_stack_type": self.draw_stack_type.value,
            "current_player": self.current_player.value,
            "scores": dict(self.scores),
            "phase": self.phase.value,
            "deck_size": self.deck_size,
            "discard_size": self.discard_size,
            "drawn_card": card_to_str(self.drawn_card) if self.drawn_card else None,
            "winner": self.winner.value if self.winner else None,
            "uncalled_uno": self.uncalled_uno,
            "uno_called": self.uno_called,
        }


@dataclass(frozen=True)
class MatchState:
    """
    不可变对局状态

    Attributes:
        deck: 摸牌堆 (末尾为牌堆顶)
        player_hand: 玩家手牌
        ai_hand: AI 手牌
        discard_pile: 弃牌堆 (末尾为当前牌)
        current_color: 当前颜色 (永远不是 WILD)
        current_player: 当前行动玩家
        phase: 对局阶段
        direction: 出牌方向 (两人局仅作展示)
        draw_stack: 累积罚牌数
        draw_stack_type: 罚牌叠加类型
        uno_called: 已喊 UNO 的玩家
        uno_penalized: 本窗口内已受罚的玩家
        uno_windows: 各玩家 UNO 窗口编号 (按 PLAY_ORDER)
        drawn_card: 本回合主动摸到、可打出的牌
        winner: 赢家
        uncalled_uno: 玩家赢了但没喊 UNO
        move_history: 动作历史
        version: 状态版本号
        step_count: 出牌步数
    """
    deck: Tuple[Card, ...]
    player_hand: Tuple[Card, ...]
    ai_hand: Tuple[Card, ...]
    discard_pile: Tuple[Card, ...]
    current_color: Color
    current_player: Player = Player.HUMAN
    phase: Phase = Phase.AWAITING_PLAY
    direction: int = 1
    draw_stack: int = 0
    draw_stack_type: DrawStackType = DrawStackType.NONE
    uno_called: FrozenSet[Player] = frozenset()
    uno_penalized: FrozenSet[Player] = frozenset()
    uno_windows: Tuple[int, int] = (0, 0)
    drawn_card: Optional[Card] = None
    winner: Optional[Player] = None
    uncalled_uno: bool = False
    move_history: Tuple[Move, ...] = field(default=(), repr=False)
    version: int = 0
    step_count: int = 0

    @classmethod
    def initial(
        cls,
        deck_manager: Optional[DeckManager] = None,
        hand_size: int = 7,
        first_player: Player = Player.HUMAN,
    ) -> 'MatchState':
        """
        创建开局状态

        Args:
            deck_manager: 牌堆管理器 (携带随机源)
            hand_size: 每人起始手牌数
            first_player: 先手玩家

        Returns:
            初始状态
        """
        deck_manager = deck_manager or DeckManager()
        player_hand, ai_hand, deck, start_card = deck_manager.new_round(hand_size)

        return cls(
            deck=deck,
            player_hand=player_hand,
            ai_hand=ai_hand,
            discard_pile=(start_card,),
            current_color=start_card.color,
            current_player=first_player,
        )

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    @property
    def current_card(self) -> Card:
        return self.discard_pile[-1]

    @property
    def is_finished(self) -> bool:
        return self.phase == Phase.ROUND_OVER

    @property
    def is_color_pending(self) -> bool:
        return self.phase == Phase.AWAITING_COLOR_CHOICE

    @property
    def total_cards(self) -> int:
        return (
            len(self.deck) + len(self.player_hand) +
            len(self.ai_hand) + len(self.discard_pile)
        )

    def get_hand(self, player: Player) -> Tuple[Card, ...]:
        """获取指定玩家的手牌"""
        return self.player_hand if player is Player.HUMAN else self.ai_hand

    def hand_size(self, player: Player) -> int:
        return len(self.get_hand(player))

    def uno_window(self, player: Player) -> int:
        """玩家当前的 UNO 窗口编号"""
        return self.uno_windows[PLAY_ORDER.index(player)]

    def playable_cards(self, player: Optional[Player] = None) -> List[Card]:
        """
        当前玩家 (或指定玩家) 可打出的牌

        摸牌后只能打出摸到的那张
        """
        player = player or self.current_player
        if self.drawn_card is not None and player is self.current_player:
            return [self.drawn_card] if RuleEngine.can_play(self.drawn_card, self) else []
        return RuleEngine.playable_cards(self.get_hand(player), self)

    def recent_moves(self, n: int = 5) -> Tuple[Move, ...]:
        return self.move_history[-n:]

    def check_invariants(self):
        """校验不变量，违反说明调用方有 bug"""
        assert self.total_cards == DECK_SIZE, f"Card count mismatch: {self.total_cards}"
        assert self.current_color != Color.WILD, "Current color cannot be wild"
        assert self.draw_stack >= 0
        assert (self.draw_stack == 0) == (self.draw_stack_type == DrawStackType.NONE)

    def snapshot(self, scores: Optional[Dict[Player, int]] = None) -> MatchSnapshot:
        """生成只读快照"""
        scores = scores or {}
        return MatchSnapshot(
            player_hand=self.player_hand,
            ai_hand_size=len(self.ai_hand),
            discard_top=self.current_card,
            current_color=self.current_color,
            draw_stack=self.draw_stack,
            draw_stack_type=self.draw_stack_type,
            current_player=self.current_player,
            scores=tuple((p.value, scores.get(p, 0)) for p in PLAY_ORDER),
            phase=self.phase,
            deck_size=len(self.deck),
            discard_size=len(self.discard_pile),
            drawn_card=self.drawn_card if self.current_player is Player.HUMAN else None,
            winner=self.winner,
            uncalled_uno=self.uncalled_uno,
            uno_called=Player.HUMAN in self.uno_called,
        )

    # ------------------------------------------------------------------
    # 状态转移
    # ------------------------------------------------------------------

    def _evolve(self, move: Optional[Move] = None, **changes) -> 'MatchState':
        """生成新状态，版本号 +1"""
        if move is not None:
            changes["move_history"] = self.move_history + (move,)
        return replace(self, version=self.version + 1, **changes)

    def _hand_changes(self, player: Player, hand) -> Dict[str, Tuple[Card, ...]]:
        key = "player_hand" if player is Player.HUMAN else "ai_hand"
        return {key: tuple(hand)}

    def _check_turn(self, player: Optional[Player], phase: Phase) -> Player:
        if self.phase != phase:
            raise InvalidMove(f"Not allowed in phase {self.phase.value}")
        player = player or self.current_player
        if player is not self.current_player:
            raise InvalidMove(f"It's not {player.value}'s turn")
        return player

    def with_play(self, card: Card, player: Optional[Player] = None) -> 'MatchState':
        """
        出牌后的新状态

        Args:
            card: 要出的牌
            player: 出牌玩家 (默认当前玩家)

        Returns:
            新状态
        """
        player = self._check_turn(player, Phase.AWAITING_PLAY)

        if self.drawn_card is not None and card != self.drawn_card:
            raise InvalidMove("Only the drawn card can be played")
        if not RuleEngine.can_play(card, self):
            raise InvalidMove(f"Cannot play {card_to_str(card)}")

        hand = list(self.get_hand(player))
        assert card in hand, f"{card_to_str(card)} not in {player.value}'s hand"
        hand.remove(card)

        color = self.current_color
        direction = self.direction
        draw_stack = self.draw_stack
        draw_stack_type = self.draw_stack_type
        phase = Phase.AWAITING_PLAY
        next_player = player

        # 处理牌的效果
        if card.is_number:
            color = card.color
            next_player = player.opponent
        elif card.value in (Value.SKIP, Value.REVERSE):
            # 两人局: 跳过和反转都让对手失去一回合
            color = card.color
            if card.value == Value.REVERSE:
                direction = -direction
        elif card.value == Value.DRAW_TWO:
            draw_stack += 2
            draw_stack_type = DrawStackType.DRAW_TWO
            color = card.color
            next_player = player.opponent
        elif card.value == Value.WILD:
            phase = Phase.AWAITING_COLOR_CHOICE
        elif card.value == Value.WILD_DRAW_FOUR:
            draw_stack += 4
            draw_stack_type = DrawStackType.DRAW_FOUR
            phase = Phase.AWAITING_COLOR_CHOICE

        # UNO 状态: 剩一张时开新窗口，否则清除
        uno_windows = list(self.uno_windows)
        if len(hand) == 1:
            uno_windows[PLAY_ORDER.index(player)] += 1

        winner = None
        uncalled_uno = False
        if not hand:
            phase = Phase.ROUND_OVER
            next_player = player
            winner = player
            uncalled_uno = player is Player.HUMAN and player not in self.uno_called

        return self._evolve(
            move=Move(player, MoveType.PLAY, (card,)),
            discard_pile=self.discard_pile + (card,),
            current_color=color,
            current_player=next_player,
            phase=phase,
            direction=direction,
            draw_stack=draw_stack,
            draw_stack_type=draw_stack_type,
            uno_called=self.uno_called - {player},
            uno_penalized=self.uno_penalized - {player},
            uno_windows=tuple(uno_windows),
            drawn_card=None,
            winner=winner,
            uncalled_uno=uncalled_uno,
            step_count=self.step_count + 1,
            **self._hand_changes(player, hand),
        )

    def with_color_choice(self, color: Color, player: Optional[Player] = None) -> 'MatchState':
        """
        万能牌选色后的新状态，回合交给对手

        Args:
            color: 选择的颜色 (四种真实颜色之一)
            player: 选色玩家 (默认当前玩家)
        """
        player = self._check_turn(player, Phase.AWAITING_COLOR_CHOICE)
        if color not in COLORS:
            raise InvalidMove(f"Invalid color choice: {color.value}")

        return self._evolve(
            move=Move(player, MoveType.CHOOSE_COLOR, color=color),
            current_color=color,
            current_player=player.opponent,
            phase=Phase.AWAITING_PLAY,
        )

    def with_draw(self, deck_manager: DeckManager, player: Optional[Player] = None) -> 'MatchState':
        """
        摸牌后的新状态

        有累积罚牌时一次摸完全部罚牌；否则摸一张，
        摸到能出的牌则保留回合 (drawn_card)，否则回合交给对手

        Args:
            deck_manager: 牌堆管理器
            player: 摸牌玩家 (默认当前玩家)
        """
        player = self._check_turn(player, Phase.AWAITING_PLAY)

        if self.draw_stack > 0:
            return self.with_stack_draw(deck_manager, player)
        if self.drawn_card is not None:
            raise InvalidMove("Already drew a card this turn")

        drawn, deck, discard = deck_manager.draw(self.deck, self.discard_pile, 1)
        card = drawn[0]
        hand = self.get_hand(player) + drawn

        playable = RuleEngine.can_play(card, self)

        return self._evolve(
            move=Move(player, MoveType.DRAW, drawn),
            deck=deck,
            discard_pile=discard,
            current_player=player if playable else player.opponent,
            drawn_card=card if playable else None,
            **self._hand_changes(player, hand),
        )

    def with_stack_draw(self, deck_manager: DeckManager, player: Optional[Player] = None) -> 'MatchState':
        """
        结算累积罚牌: 一次摸 draw_stack 张，罚牌清零，回合交给对手
        """
        player = self._check_turn(player, Phase.AWAITING_PLAY)
        if self.draw_stack == 0:
            raise InvalidMove("No draw stack to resolve")

        drawn, deck, discard = deck_manager.draw(self.deck, self.discard_pile, self.draw_stack)
        hand = self.get_hand(player) + drawn

        return self._evolve(
            move=Move(player, MoveType.STACK_DRAW, drawn),
            deck=deck,
            discard_pile=discard,
            current_player=player.opponent,
            draw_stack=0,
            draw_stack_type=DrawStackType.NONE,
            drawn_card=None,
            **self._hand_changes(player, hand),
        )

    def with_pass(self, player: Optional[Player] = None) -> 'MatchState':
        """摸到可出的牌后选择不出，回合交给对手"""
        player = self._check_turn(player, Phase.AWAITING_PLAY)
        if self.drawn_card is None:
            raise InvalidMove("You can only pass after drawing a card")

        return self._evolve(
            move=Move(player, MoveType.PASS),
            current_player=player.opponent,
            drawn_card=None,
        )

    def with_uno_call(self, player: Player) -> 'MatchState':
        """
        喊 UNO (任何时候都可以喊，只要手牌恰好一张)

        重复喊视为无操作
        """
        if self.is_finished:
            raise InvalidMove("Round is over")
        if self.hand_size(player) != 1:
            raise InvalidMove("You can only call UNO when you have exactly one card")
        if player in self.uno_called:
            return self

        return self._evolve(
            move=Move(player, MoveType.CALL_UNO),
            uno_called=self.uno_called | {player},
        )

    def with_uno_penalty(self, player: Player, deck_manager: DeckManager, n: int = 2) -> 'MatchState':
        """
        没喊 UNO 的罚牌，每个窗口只罚一次

        Args:
            player: 受罚玩家
            deck_manager: 牌堆管理器
            n: 罚牌张数
        """
        if player in self.uno_penalized:
            return self

        drawn, deck, discard = deck_manager.draw(self.deck, self.discard_pile, n)
        hand = self.get_hand(player) + drawn

        return self._evolve(
            move=Move(player, MoveType.UNO_PENALTY, drawn),
            deck=deck,
            discard_pile=discard,
            uno_penalized=self.uno_penalized | {player},
            **self._hand_changes(player, hand),
        )
