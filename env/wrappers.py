"""
环境包装器
"""
from typing import Dict, Any, Tuple
import numpy as np

import gymnasium as gym
from gymnasium import Wrapper


class FlattenObservationWrapper(Wrapper):
    """
    将字典观测展平为单一向量

    用于不支持字典观测的算法
    """

    def __init__(self, env: gym.Env):
        super().__init__(env)

        flat_dim = sum(
            int(np.prod(space.shape)) for space in env.observation_space.spaces.values()
        )
        self.observation_space = gym.spaces.Box(
            low=0.0,
            high=np.inf,
            shape=(flat_dim,),
            dtype=np.float32,
        )

    def observation(self, obs: Dict[str, np.ndarray]) -> np.ndarray:
        """展平观测"""
        return np.concatenate([v.flatten() for v in obs.values()]).astype(np.float32)

    def reset(self, **kwargs) -> Tuple[np.ndarray, Dict[str, Any]]:
        obs, info = self.env.reset(**kwargs)
        return self.observation(obs), info

    def step(self, action) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        obs, reward, terminated, truncated, info = self.env.step(action)
        return self.observation(obs), reward, terminated, truncated, info


class RecordEpisodeStatistics(Wrapper):
    """
    记录 episode 统计

    episode 结束时在 info["episode"] 中给出总奖励、步数与赢家
    """

    def __init__(self, env: gym.Env):
        super().__init__(env)
        self.episode_reward = 0.0
        self.episode_length = 0

    def reset(self, **kwargs):
        self.episode_reward = 0.0
        self.episode_length = 0
        return self.env.reset(**kwargs)

    def step(self, action):
        obs, reward, terminated, truncated, info = self.env.step(action)
        self.episode_reward += reward
        self.episode_length += 1

        if terminated or truncated:
            info["episode"] = {
                "r": self.episode_reward,
                "l": self.episode_length,
                "winner": info.get("winner"),
            }

        return obs, reward, terminated, truncated, info
