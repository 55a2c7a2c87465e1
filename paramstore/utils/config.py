"""Configuration management for the parameter store."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import json
import logging

from paramstore.exceptions import ConfigurationError

INIT_STRATEGIES = ("zeros", "ones", "random", "normal", "xavier", "he")
OPTIMIZERS = ("sgd", "adam")


@dataclass
class StoreConfig:
    """
    Configuration for a ParameterStore and its training collaborators.

    Attributes:
        copy: Always give the store its own replica in local mode, even when
            the canonical array already lives on the requested device
        devices: Device specs (e.g. "cpu", "gpu:1") for distributed mode;
            empty means single-device local mode
        optimizer: Optimizer used by the in-process parameter server
        optimizer_configs: Per-optimizer keyword overrides
        init_strategy: Default parameter initialization strategy
        init_scale: Scale for random/normal initialization
        log_level: Level name for paramstore loggers
    """

    copy: bool = False
    devices: List[str] = field(default_factory=list)

    optimizer: str = "sgd"
    optimizer_configs: Dict[str, Dict[str, Any]] = field(default_factory=lambda: {
        "sgd": {
            "learning_rate": 0.01,
            "momentum": 0.0,
            "weight_decay": 0.0,
        },
        "adam": {
            "learning_rate": 0.001,
            "beta1": 0.9,
            "beta2": 0.999,
            "epsilon": 1e-8,
        },
    })

    init_strategy: str = "normal"
    init_scale: float = 0.01

    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            "copy": self.copy,
            "devices": list(self.devices),
            "optimizer": self.optimizer,
            "optimizer_configs": self.optimizer_configs,
            "init_strategy": self.init_strategy,
            "init_scale": self.init_scale,
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        """Create config from dictionary, ignoring unknown keys."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "StoreConfig":
        return cls.from_dict(json.loads(json_str))

    def get_optimizer_config(self, optimizer_name: Optional[str] = None) -> Dict[str, Any]:
        """Get keyword arguments for an optimizer (the configured one by default)."""
        return dict(self.optimizer_configs.get(optimizer_name or self.optimizer, {}))

    def get_log_level(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    def validate(self) -> None:
        """Validate configuration values."""
        if self.optimizer not in OPTIMIZERS:
            raise ConfigurationError(f"Invalid optimizer: {self.optimizer}")
        if self.init_strategy not in INIT_STRATEGIES:
            raise ConfigurationError(f"Invalid init_strategy: {self.init_strategy}")
        if self.init_scale <= 0:
            raise ConfigurationError("init_scale must be positive")
        if len(set(self.devices)) != len(self.devices):
            raise ConfigurationError(f"Duplicate devices in {self.devices}")
        if not isinstance(self.get_log_level(), int):
            raise ConfigurationError(f"Invalid log_level: {self.log_level}")
