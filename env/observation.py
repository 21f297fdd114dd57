"""
观察空间与动作编码

将对局状态转换为 numpy 特征，动作与离散索引互相转换
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional
import numpy as np

from core.cards import Card, Color, COLORS, CARD_KINDS, NUM_CARD_KINDS, card_index, cards_to_array
from core.rules import DrawStackType
from core.state import MatchState, Player, Phase, MoveType


class ActionType(Enum):
    """智能体动作类型"""
    DRAW = "draw"
    PASS = "pass"
    PLAY = "play"
    CHOOSE_COLOR = "choose_color"
    CALL_UNO = "call_uno"


@dataclass(frozen=True)
class Action:
    """
    智能体动作

    Attributes:
        action_type: 动作类型
        card: 出的牌 (PLAY)
        color: 选的颜色 (CHOOSE_COLOR)
    """
    action_type: ActionType
    card: Optional[Card] = None
    color: Optional[Color] = None

    def __str__(self) -> str:
        if self.action_type == ActionType.PLAY:
            return f"play {self.card}"
        if self.action_type == ActionType.CHOOSE_COLOR:
            return f"color {self.color.value}"
        return self.action_type.value


# 动作索引布局
DRAW_INDEX = 0
PASS_INDEX = 1
PLAY_OFFSET = 2
COLOR_OFFSET = PLAY_OFFSET + NUM_CARD_KINDS
CALL_UNO_INDEX = COLOR_OFFSET + len(COLORS)
NUM_ACTIONS = CALL_UNO_INDEX + 1

_STACK_TYPES = (DrawStackType.NONE, DrawStackType.DRAW_TWO, DrawStackType.DRAW_FOUR)
_PHASES = (Phase.AWAITING_PLAY, Phase.AWAITING_COLOR_CHOICE, Phase.ROUND_OVER)


class ActionEncoder:
    """
    动作编码器

    索引布局:
        0: 摸牌 (有累积罚牌时摸完全部)
        1: 过 (仅摸到能出的牌之后)
        2..55: 打出 54 种牌之一
        56..59: 选色 (红/黄/绿/蓝)
        60: 喊 UNO
    """

    @property
    def num_actions(self) -> int:
        return NUM_ACTIONS

    def encode(self, action: Action) -> int:
        """将 Action 编码为索引"""
        if action.action_type == ActionType.DRAW:
            return DRAW_INDEX
        if action.action_type == ActionType.PASS:
            return PASS_INDEX
        if action.action_type == ActionType.PLAY:
            return PLAY_OFFSET + card_index(action.card)
        if action.action_type == ActionType.CHOOSE_COLOR:
            return COLOR_OFFSET + COLORS.index(action.color)
        return CALL_UNO_INDEX

    def decode(self, idx: int) -> Optional[Action]:
        """
        将索引解码为 Action

        Returns:
            Action 对象，越界返回 None
        """
        idx = int(idx)
        if idx == DRAW_INDEX:
            return Action(ActionType.DRAW)
        if idx == PASS_INDEX:
            return Action(ActionType.PASS)
        if PLAY_OFFSET <= idx < COLOR_OFFSET:
            return Action(ActionType.PLAY, card=CARD_KINDS[idx - PLAY_OFFSET])
        if COLOR_OFFSET <= idx < CALL_UNO_INDEX:
            return Action(ActionType.CHOOSE_COLOR, color=COLORS[idx - COLOR_OFFSET])
        if idx == CALL_UNO_INDEX:
            return Action(ActionType.CALL_UNO)
        return None

    def legal_actions(self, state: MatchState, player: Player = Player.HUMAN) -> List[Action]:
        """
        指定玩家当前的合法动作

        不是该玩家回合时只可能喊 UNO
        """
        actions: List[Action] = []
        if state.is_finished:
            return actions

        if state.current_player is player:
            if state.is_color_pending:
                actions.extend(Action(ActionType.CHOOSE_COLOR, color=c) for c in COLORS)
            else:
                seen = set()
                for card in state.playable_cards(player):
                    if card not in seen:
                        seen.add(card)
                        actions.append(Action(ActionType.PLAY, card=card))
                if state.drawn_card is None:
                    actions.append(Action(ActionType.DRAW))
                else:
                    actions.append(Action(ActionType.PASS))

        if state.hand_size(player) == 1 and player not in state.uno_called:
            actions.append(Action(ActionType.CALL_UNO))

        return actions

    def get_legal_action_indices(self, legal_actions: List[Action]) -> List[int]:
        return sorted(self.encode(a) for a in legal_actions)

    def build_legal_mask(self, legal_actions: List[Action]) -> np.ndarray:
        """
        构建合法动作掩码

        Returns:
            (num_actions,) 数组
        """
        mask = np.zeros(NUM_ACTIONS, dtype=np.float32)
        for action in legal_actions:
            mask[self.encode(action)] = 1
        return mask


# 全局单例
_action_encoder: Optional[ActionEncoder] = None


def get_action_encoder() -> ActionEncoder:
    """获取全局动作编码器"""
    global _action_encoder
    if _action_encoder is None:
        _action_encoder = ActionEncoder()
    return _action_encoder


@dataclass
class Observation:
    """
    结构化观测 (以某一玩家视角，对手手牌只给张数)

    Attributes:
        hand: 自己的手牌计数 (54,)
        discard_top: 当前牌 one-hot (54,)
        current_color: 当前颜色 one-hot (4,)
        played_cards: 弃牌堆计数 (54,)
        history: 最近 N 次出牌 (N, 54)
        draw_stack: 累积罚牌数 (1,)
        draw_stack_type: 罚牌叠加类型 one-hot (3,)
        phase: 对局阶段 one-hot (3,)
        cards_left: [自己手牌数, 对手手牌数, 牌堆张数] (3,)
        flags: [轮到自己, 摸到待出的牌, 已喊 UNO] (3,)
    """
    hand: np.ndarray
    discard_top: np.ndarray
    current_color: np.ndarray
    played_cards: np.ndarray
    history: np.ndarray
    draw_stack: np.ndarray
    draw_stack_type: np.ndarray
    phase: np.ndarray
    cards_left: np.ndarray
    flags: np.ndarray

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {
            "hand": self.hand,
            "discard_top": self.discard_top,
            "current_color": self.current_color,
            "played_cards": self.played_cards,
            "history": self.history,
            "draw_stack": self.draw_stack,
            "draw_stack_type": self.draw_stack_type,
            "phase": self.phase,
            "cards_left": self.cards_left,
            "flags": self.flags,
        }

    def to_flat_array(self) -> np.ndarray:
        """展平为单一向量"""
        return np.concatenate([v.flatten() for v in self.to_dict().values()]).astype(np.float32)


def _one_hot(index: int, size: int) -> np.ndarray:
    result = np.zeros(size, dtype=np.float32)
    result[index] = 1
    return result


class ObservationBuilder:
    """观测构建器"""

    def __init__(self, history_length: int = 10):
        """
        Args:
            history_length: 出牌历史长度
        """
        self.history_length = history_length

    def build(self, state: MatchState, perspective: Player = Player.HUMAN) -> Observation:
        """
        从对局状态构建观测

        Args:
            state: 对局状态
            perspective: 视角玩家

        Returns:
            Observation 对象
        """
        drawn_pending = state.drawn_card is not None and state.current_player is perspective

        return Observation(
            hand=cards_to_array(state.get_hand(perspective)),
            discard_top=_one_hot(card_index(state.current_card), NUM_CARD_KINDS),
            current_color=_one_hot(COLORS.index(state.current_color), len(COLORS)),
            played_cards=cards_to_array(state.discard_pile),
            history=self._encode_history(state),
            draw_stack=np.array([state.draw_stack], dtype=np.float32),
            draw_stack_type=_one_hot(_STACK_TYPES.index(state.draw_stack_type), len(_STACK_TYPES)),
            phase=_one_hot(_PHASES.index(state.phase), len(_PHASES)),
            cards_left=np.array([
                state.hand_size(perspective),
                state.hand_size(perspective.opponent),
                len(state.deck),
            ], dtype=np.float32),
            flags=np.array([
                float(state.current_player is perspective),
                float(drawn_pending),
                float(perspective in state.uno_called),
            ], dtype=np.float32),
        )

    def _encode_history(self, state: MatchState) -> np.ndarray:
        """
        编码最近 N 次出牌

        Returns:
            (history_length, 54) 数组，最早的在前
        """
        result = np.zeros((self.history_length, NUM_CARD_KINDS), dtype=np.float32)
        if self.history_length == 0:
            return result

        plays = [m for m in state.move_history if m.move_type == MoveType.PLAY]
        for i, move in enumerate(plays[-self.history_length:]):
            result[i] = cards_to_array(move.cards)
        return result
