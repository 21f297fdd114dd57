"""
对局配置

定义规则参数、AI 设置与节奏延迟 (虚拟时间单位)
"""
from dataclasses import dataclass, asdict
from typing import Literal, Optional, Dict, Any


@dataclass
class MatchConfig:
    """
    对局配置

    Attributes:
        hand_size: 起始手牌数
        first_player: 每局先手 ("player" / "ai")
        difficulty: AI 难度
        personality: AI 初始性格
        learning_enabled: 玩家获胜后 AI 是否切换性格
        win_rate_smoothing: AI 胜率 EMA 平滑系数
        ai_turn_delay: 轮到 AI 后的等待时间
        ai_extra_turn_delay: AI 打出跳过/反转后再次行动的等待时间
        ai_drawn_card_delay: AI 摸到能出的牌后决定是否打出的等待时间
        color_reveal_delay: AI 选色生效前的等待时间
        uno_grace_period: 剩一张牌后喊 UNO 的宽限时间
        uno_penalty_cards: 未喊 UNO 的罚牌数
        ai_calls_uno: AI 剩一张时自动喊 UNO
        advisory_timeout: 等待外部建议的最长时间 (秒，真实时间)
        history_length: 发给建议服务的最近动作数
        seed: 随机种子
    """
    # 规则
    hand_size: int = 7
    first_player: Literal["player", "ai"] = "player"

    # AI
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    personality: Literal["aggressive", "defensive", "balanced"] = "balanced"
    learning_enabled: bool = True
    win_rate_smoothing: float = 0.1

    # 节奏
    ai_turn_delay: float = 1.5
    ai_extra_turn_delay: float = 1.5
    ai_drawn_card_delay: float = 1.0
    color_reveal_delay: float = 1.5

    # UNO
    uno_grace_period: float = 3.0
    uno_penalty_cards: int = 2
    ai_calls_uno: bool = True

    # 建议服务
    advisory_timeout: float = 2.0
    history_length: int = 5

    # 随机种子
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'MatchConfig':
        """从字典创建配置 (忽略未知字段)"""
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        return cls(**filtered)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return asdict(self)


# 预定义配置
EASY = MatchConfig(difficulty="easy")

MEDIUM = MatchConfig(difficulty="medium")

HARD = MatchConfig(difficulty="hard")

# 无等待: 适合批量模拟
INSTANT = MatchConfig(
    ai_turn_delay=0.0,
    ai_extra_turn_delay=0.0,
    ai_drawn_card_delay=0.0,
    color_reveal_delay=0.0,
)
