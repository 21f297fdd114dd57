"""
外部建议服务 (Advisory)

AI 出牌前可以询问外部服务，服务不可用时使用本地启发式分析:
- Advisor: 能力接口
- HeuristicAdvisor: 本地分析 (降级结果)
- RemoteAdvisor: 通过可插拔的传输函数调用远端服务
- FallbackAdvisor: 限时调用 + 失败回退，永不抛出
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple, Optional, Callable, Any
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
import logging

from core.cards import (
    Card, Color, COLORS, card_to_str, str_to_card, cards_to_str, parse_color,
)
from core.rules import DrawStackType
from core.state import MatchState, Player, Move

from .personality import Personality

logger = logging.getLogger(__name__)


class RiskLevel(Enum):
    """风险等级"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MalformedAdvice(ValueError):
    """建议服务返回的数据格式不正确"""


@dataclass(frozen=True)
class AdvisoryRequest:
    """
    建议请求

    Attributes:
        hand: AI 手牌快照
        opponent_hand_size: 对手手牌数
        current_card: 当前牌
        current_color: 当前颜色
        draw_stack: 累积罚牌数
        draw_stack_type: 罚牌叠加类型
        personality: AI 当前性格
        recent_moves: 最近的动作
        playable: 可出的牌
    """
    hand: Tuple[Card, ...]
    opponent_hand_size: int
    current_card: Card
    current_color: Color
    draw_stack: int
    draw_stack_type: DrawStackType
    personality: Personality
    recent_moves: Tuple[Move, ...] = ()
    playable: Tuple[Card, ...] = ()

    @classmethod
    def from_state(
        cls,
        state: MatchState,
        player: Player,
        personality: Personality,
        history_length: int = 5,
    ) -> 'AdvisoryRequest':
        """从对局状态构造请求"""
        return cls(
            hand=state.get_hand(player),
            opponent_hand_size=state.hand_size(player.opponent),
            current_card=state.current_card,
            current_color=state.current_color,
            draw_stack=state.draw_stack,
            draw_stack_type=state.draw_stack_type,
            personality=personality,
            recent_moves=state.recent_moves(history_length),
            playable=tuple(state.playable_cards(player)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """序列化为 JSON 友好的字典"""
        return {
            "hand": cards_to_str(self.hand),
            "opponent_hand_size": self.opponent_hand_size,
            "current_card": card_to_str(self.current_card),
            "current_color": self.current_color.value,
            "draw_stack": self.draw_stack,
            "draw_stack_type": self.draw_stack_type.value,
            "personality": self.personality.value,
            "recent_moves": [m.to_dict() for m in self.recent_moves],
            "playable": cards_to_str(self.playable),
        }


def _probability(payload: Dict[str, Any], key: str, default: Optional[float] = None) -> float:
    value = payload.get(key, default)
    if value is None:
        raise MalformedAdvice(f"Missing field: {key}")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedAdvice(f"{key} must be a number, got {value!r}")
    if not 0.0 <= value <= 1.0:
        raise MalformedAdvice(f"{key} out of range: {value}")
    return float(value)


@dataclass(frozen=True)
class Advice:
    """
    建议结果

    Attributes:
        win_probability: 胜率估计
        confidence: 置信度
        risk_level: 风险等级
        recommended_card: 推荐出的牌
        recommended_color: 推荐的颜色
        insight: 说明
        degraded: 是否为降级 (本地) 结果
    """
    win_probability: float
    confidence: float
    risk_level: RiskLevel = RiskLevel.MEDIUM
    recommended_card: Optional[Card] = None
    recommended_color: Optional[Color] = None
    insight: str = ""
    degraded: bool = False

    @classmethod
    def from_dict(cls, payload: Any) -> 'Advice':
        """
        解析并校验服务返回的数据

        Raises:
            MalformedAdvice: 字段缺失或取值非法
        """
        if not isinstance(payload, dict):
            raise MalformedAdvice(f"Advice payload must be a dict, got {type(payload).__name__}")

        win_probability = _probability(payload, "win_probability")
        confidence = _probability(payload, "confidence")

        try:
            risk_level = RiskLevel(payload.get("risk_level", RiskLevel.MEDIUM.value))
            card = payload.get("recommended_card")
            recommended_card = str_to_card(card) if card else None
            color = payload.get("recommended_color")
            recommended_color = parse_color(color) if color else None
        except (ValueError, AttributeError) as e:
            raise MalformedAdvice(str(e)) from e

        return cls(
            win_probability=win_probability,
            confidence=confidence,
            risk_level=risk_level,
            recommended_card=recommended_card,
            recommended_color=recommended_color,
            insight=str(payload.get("insight", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "win_probability": self.win_probability,
            "confidence": self.confidence,
            "risk_level": self.risk_level.value,
            "recommended_card": card_to_str(self.recommended_card) if self.recommended_card else None,
            "recommended_color": self.recommended_color.value if self.recommended_color else None,
            "insight": self.insight,
            "degraded": self.degraded,
        }


class Advisor:
    """建议服务基类"""

    def __init__(self, name: str = "advisor"):
        self.name = name

    def advise(self, request: AdvisoryRequest) -> Advice:
        """给出建议"""
        raise NotImplementedError

    def close(self):
        """释放资源"""
        pass


class HeuristicAdvisor(Advisor):
    """
    本地启发式分析

    不推荐具体的牌，只估计胜率和风险
    """

    FALLBACK_CONFIDENCE = 0.6

    def __init__(self, name: str = "heuristic"):
        super().__init__(name)

    @staticmethod
    def hand_strength(hand: Tuple[Card, ...]) -> float:
        """
        手牌强度: 牌少、功能牌多、颜色分布广越强

        Returns:
            [0, 1] 之间的分数
        """
        if not hand:
            return 0.0

        special = sum(1 for card in hand if card.is_special)
        colors = {card.color for card in hand if card.color in COLORS}

        card_count_factor = max(0.0, 1 - (len(hand) - 1) / 20)
        action_factor = special / len(hand)
        diversity_factor = len(colors) / 4

        return card_count_factor * 0.5 + action_factor * 0.3 + diversity_factor * 0.2

    @staticmethod
    def opponent_threat(opponent_hand_size: int) -> float:
        """对手牌越少威胁越大"""
        return max(0.0, 1 - (opponent_hand_size - 1) / 20)

    def advise(self, request: AdvisoryRequest) -> Advice:
        strength = self.hand_strength(request.hand)
        threat = self.opponent_threat(request.opponent_hand_size)

        if strength > 0.7:
            risk = RiskLevel.LOW
        elif threat > 0.7:
            risk = RiskLevel.HIGH
        else:
            risk = RiskLevel.MEDIUM

        return Advice(
            win_probability=min(0.95, strength * 0.6 + (1 - threat) * 0.4),
            confidence=self.FALLBACK_CONFIDENCE,
            risk_level=risk,
            insight="Local heuristic analysis",
            degraded=True,
        )


class RemoteAdvisor(Advisor):
    """
    远端建议服务

    传输层由调用方注入: transport(request_dict) -> response_dict，
    可以是 HTTP 客户端、消息队列或测试桩
    传输层必须自带超时，FallbackAdvisor 只能放弃等待，无法中断调用
    """

    def __init__(
        self,
        transport: Callable[[Dict[str, Any]], Any],
        name: str = "remote",
    ):
        super().__init__(name)
        self.transport = transport

    def advise(self, request: AdvisoryRequest) -> Advice:
        response = self.transport(request.to_dict())
        # 兼容 {"data": {...}} 包装
        if isinstance(response, dict) and isinstance(response.get("data"), dict):
            response = response["data"]
        return Advice.from_dict(response)


class FallbackAdvisor(Advisor):
    """
    带超时和回退的建议服务

    主服务超时、出错或返回格式错误时使用回退服务，
    调用方永远拿到一个 Advice
    """

    def __init__(
        self,
        primary: Optional[Advisor] = None,
        fallback: Optional[Advisor] = None,
        timeout: float = 2.0,
        n_workers: int = 2,
    ):
        """
        Args:
            primary: 主服务，None 表示只用本地分析
            fallback: 回退服务，默认 HeuristicAdvisor
            timeout: 等待主服务的最长时间 (秒)
            n_workers: 工作线程数
        """
        super().__init__(f"fallback({primary.name if primary else 'none'})")
        self.primary = primary
        self.fallback = fallback or HeuristicAdvisor()
        self.timeout = timeout
        self.calls = 0
        self.failures = 0
        self._executor: Optional[ThreadPoolExecutor] = None
        if primary is not None:
            self._executor = ThreadPoolExecutor(
                max_workers=n_workers, thread_name_prefix="advisor"
            )

    def advise(self, request: AdvisoryRequest) -> Advice:
        self.calls += 1

        if self.primary is None or self._executor is None:
            return self.fallback.advise(request)

        future = self._executor.submit(self.primary.advise, request)
        try:
            advice = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            logger.warning(f"Advisor {self.primary.name} timed out after {self.timeout}s, using fallback")
            return self._fall_back(request)
        except Exception as e:
            logger.warning(f"Advisor {self.primary.name} failed: {e!r}, using fallback")
            return self._fall_back(request)

        if not isinstance(advice, Advice):
            logger.warning(f"Advisor {self.primary.name} returned {type(advice).__name__}, using fallback")
            return self._fall_back(request)

        return advice

    def _fall_back(self, request: AdvisoryRequest) -> Advice:
        self.failures += 1
        return self.fallback.advise(request)

    @property
    def failure_rate(self) -> float:
        if self.calls == 0:
            return 0.0
        return self.failures / self.calls

    def close(self):
        """
        关闭工作线程，尚未开始的请求直接取消

        正在执行的请求无法中断，主服务的传输层需自带超时，否则进程退出时会等待它返回
        """
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        if self.primary is not None:
            self.primary.close()
