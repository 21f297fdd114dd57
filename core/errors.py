"""
异常定义

- InvalidMove: 非法操作 (不能出的牌、不是该玩家回合、阶段不对)，状态不变
- DeckError: 牌堆相关错误
"""


class InvalidMove(ValueError):
    """非法操作，调用方可以安全地忽略并提示玩家"""


class DeckError(RuntimeError):
    """牌堆错误基类"""


class InsufficientDeck(DeckError):
    """牌堆剩余牌数不足以完成发牌"""


class NoCardsAvailable(DeckError):
    """牌堆与弃牌堆都已耗尽，无法继续摸牌"""
