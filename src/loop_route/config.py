import json
import os
from dataclasses import dataclass, fields


@dataclass
class EngineConfig:
    # 2-opt pass cap is max(min_two_opt_passes, two_opt_pass_factor * n)
    two_opt_pass_factor: int = 5
    min_two_opt_passes: int = 20
    improve: bool = True  # False keeps the plain nearest-neighbor order
    tolerance_km: float = 1e-9

    def __post_init__(self) -> None:
        for name in ("two_opt_pass_factor", "min_two_opt_passes"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must not be negative")
        if not isinstance(self.improve, bool):
            raise ValueError(f"improve must be true or false, got {self.improve!r}")
        if isinstance(self.tolerance_km, bool) or not isinstance(self.tolerance_km, (int, float)):
            raise ValueError(f"tolerance_km must be a number, got {self.tolerance_km!r}")
        if self.tolerance_km < 0:
            raise ValueError("tolerance_km must not be negative")

    def max_passes(self, n: int) -> int:
        return max(self.min_two_opt_passes, self.two_opt_pass_factor * n)


DEFAULT_CONFIG = EngineConfig()


def load_config(path: str) -> EngineConfig:
    """Load an :class:`EngineConfig` from a JSON or YAML file.

    Malformed files, unknown keys and badly typed values raise ``ValueError``.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    with open(path) as f:
        if path.lower().endswith(".json"):
            data = json.load(f)
        else:
            import yaml

            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Configuration file must contain a mapping")
    unknown = sorted(str(k) for k in set(data) - {f.name for f in fields(EngineConfig)})
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
    return EngineConfig(**data)
