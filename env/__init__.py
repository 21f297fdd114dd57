"""
Environment Layer - Gymnasium 兼容环境

Modules:
    uno_env: 主环境类
    observation: 观测空间构建与动作编码
    wrappers: 环境包装器
"""
from .uno_env import (
    UnoEnv,
    make_env,
)

from .observation import (
    ActionType,
    Action,
    Observation,
    ObservationBuilder,
    ActionEncoder,
    get_action_encoder,
    NUM_ACTIONS,
    DRAW_INDEX,
    PASS_INDEX,
    PLAY_OFFSET,
    COLOR_OFFSET,
    CALL_UNO_INDEX,
)

from .wrappers import (
    FlattenObservationWrapper,
    RecordEpisodeStatistics,
)

__all__ = [
    # env
    "UnoEnv",
    "make_env",
    # observation
    "ActionType",
    "Action",
    "Observation",
    "ObservationBuilder",
    "ActionEncoder",
    "get_action_encoder",
    "NUM_ACTIONS",
    "DRAW_INDEX",
    "PASS_INDEX",
    "PLAY_OFFSET",
    "COLOR_OFFSET",
    "CALL_UNO_INDEX",
    # wrappers
    "FlattenObservationWrapper",
    "RecordEpisodeStatistics",
]
