# dolev_strong/config.py
"""
Configuration management for the Dolev-Strong simulator
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

import yaml

from .exceptions import InvalidConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunParams:
    """Parameters fixed for the duration of one run"""
    n: int
    f: int
    sender_value: int
    byzantine_ids: FrozenSet[int] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, 'byzantine_ids', frozenset(int(i) for i in self.byzantine_ids))

    @property
    def max_rounds(self) -> int:
        """Echo rounds after round 0: f + 1"""
        return self.f + 1

    @property
    def sender_is_byzantine(self) -> bool:
        return 0 in self.byzantine_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            'n': self.n,
            'f': self.f,
            'sender_value': self.sender_value,
            'byzantine_ids': sorted(self.byzantine_ids),
        }


@dataclass(frozen=True)
class ByzantineRepair:
    """Record of a Byzantine id set padded or trimmed to size f"""
    requested: Tuple[int, ...]
    effective: Tuple[int, ...]
    added: Tuple[int, ...] = ()
    removed: Tuple[int, ...] = ()

    def describe(self) -> str:
        parts = []
        if self.added:
            parts.append(f"padded with {list(self.added)}")
        if self.removed:
            parts.append(f"trimmed {list(self.removed)}")
        return (f"Byzantine ids {list(self.requested)} -> {list(self.effective)} "
                f"({', '.join(parts)})")


def validate_params(n: int, f: int, byzantine_ids: Iterable[int] = ()) -> List[str]:
    """Return list of problems with the n/f/Byzantine-id combination"""
    errors = []
    if n < 1:
        errors.append(f"Total nodes ({n}) must be at least 1")
    if f < 0:
        errors.append(f"Fault tolerance ({f}) must not be negative")
    if f > n:
        errors.append(f"Fault tolerance ({f}) exceeds total nodes ({n})")
    out_of_range = sorted(i for i in byzantine_ids if not 0 <= i < n)
    if out_of_range:
        errors.append(f"Byzantine ids {out_of_range} outside [0, {n})")
    return errors


def repair_byzantine_ids(n: int, f: int,
                         byzantine_ids: Iterable[int]) -> Tuple[FrozenSet[int], Optional[ByzantineRepair]]:
    """
    Make the Byzantine set exactly f ids: keep the lowest requested ids when
    there are too many, pad with the lowest unselected ids when too few.
    Returns (effective ids, repair or None when nothing changed).
    """
    requested = tuple(sorted(set(byzantine_ids)))
    if len(requested) > f:
        effective = requested[:f]
    else:
        chosen = set(requested)
        for i in range(n):
            if len(chosen) >= f:
                break
            chosen.add(i)
        effective = tuple(sorted(chosen))

    if effective == requested:
        return frozenset(effective), None

    repair = ByzantineRepair(
        requested=requested,
        effective=effective,
        added=tuple(i for i in effective if i not in requested),
        removed=tuple(i for i in requested if i not in effective),
    )
    return frozenset(effective), repair


@dataclass
class ProtocolConfig:
    """Protocol run configuration"""
    total_nodes: int = 3
    fault_tolerance: int = 1  # f
    sender_value: int = 7
    byzantine_ids: List[int] = field(default_factory=lambda: [1])


@dataclass
class AdversaryConfig:
    """Byzantine behaviour configuration"""
    sender_strategy: str = "equivocate"
    party_strategy: str = "echo"
    assignments: Dict[int, int] = field(default_factory=dict)  # party -> value sent to it
    muted: List[int] = field(default_factory=list)  # parties a 'silent' adversary ignores


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    file: Optional[str] = None
    console: bool = True
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class SimulatorConfig:
    """Complete simulator configuration"""
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    adversary: AdversaryConfig = field(default_factory=AdversaryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    random_seed: Optional[int] = None

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        from .adversary import STRATEGIES

        p = self.protocol
        errors = validate_params(p.total_nodes, p.fault_tolerance, p.byzantine_ids)

        for name in (self.adversary.sender_strategy, self.adversary.party_strategy):
            if name not in STRATEGIES:
                errors.append(f"Unknown Byzantine strategy '{name}' "
                              f"(choose from {sorted(STRATEGIES)})")

        if self.logging.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Invalid log level: {self.logging.level}")

        return errors

    def run_params(self) -> RunParams:
        p = self.protocol
        return RunParams(
            n=p.total_nodes,
            f=p.fault_tolerance,
            sender_value=p.sender_value,
            byzantine_ids=frozenset(p.byzantine_ids),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulatorConfig':
        data = data or {}
        if not isinstance(data, dict):
            raise InvalidConfigError(f"Configuration must be a mapping, got {type(data).__name__}")
        unknown = sorted(str(k) for k in set(data) - {'protocol', 'adversary', 'logging', 'random_seed'})
        if unknown:
            raise InvalidConfigError(f"Unknown configuration sections: {unknown}")

        try:
            adversary = dict(data.get('adversary') or {})
            if 'assignments' in adversary:
                adversary['assignments'] = {int(k): int(v) for k, v in adversary['assignments'].items()}
            return cls(
                protocol=ProtocolConfig(**(data.get('protocol') or {})),
                adversary=AdversaryConfig(**adversary),
                logging=LoggingConfig(**(data.get('logging') or {})),
                random_seed=data.get('random_seed'),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise InvalidConfigError(f"Malformed configuration: {e}") from e

    @classmethod
    def from_yaml(cls, path: str) -> 'SimulatorConfig':
        with open(path, 'r') as fh:
            return cls.from_dict(yaml.safe_load(fh))

    @classmethod
    def from_json(cls, path: str) -> 'SimulatorConfig':
        with open(path, 'r') as fh:
            return cls.from_dict(json.load(fh))

    def to_yaml(self, path: str):
        with open(path, 'w') as fh:
            yaml.safe_dump(self.to_dict(), fh, default_flow_style=False, sort_keys=False)

    def to_json(self, path: str):
        with open(path, 'w') as fh:
            json.dump(self.to_dict(), fh, indent=2)


def load_config(path: Optional[str] = None) -> SimulatorConfig:
    """Load configuration from a YAML or JSON file, or return defaults"""
    if path is None:
        return SimulatorConfig()
    if not os.path.exists(path):
        raise InvalidConfigError(f"Config file not found: {path}")

    ext = os.path.splitext(path)[1].lower()
    try:
        if ext in ('.yaml', '.yml'):
            config = SimulatorConfig.from_yaml(path)
        elif ext == '.json':
            config = SimulatorConfig.from_json(path)
        else:
            raise InvalidConfigError(f"Unsupported config format: {ext}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise InvalidConfigError(f"Cannot parse {path}: {e}") from e

    errors = config.validate()
    if errors:
        raise InvalidConfigError("; ".join(errors), errors)
    logger.info("Loaded configuration from %s", path)
    return config


def setup_logging(config: Optional[LoggingConfig] = None):
    """Configure the package logger from a LoggingConfig"""
    config = config or LoggingConfig()
    root = logging.getLogger("dolev_strong")
    root.setLevel(config.level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(config.format)
    if config.console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)
    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    return root
