# overmind/io/config_loader.py
"""
Configuration loader and pydantic schemas for overmind.

Goals:
- Load YAML/JSON and validate it against the schemas below.
- Overlord settings, registration thresholds and scheduler tables in one root model.
- Clear, aggregated validation errors (ValueError).

Notes:
- Pure: no side effects apart from logging.
- Settings are frozen; they are read at tick time and only changed by the operator.
"""

import logging
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..core.objectives import DEFAULT_OBJECTIVE_PRIORITIES, ObjectiveType
from ..core.roles import DEFAULT_CAPABILITIES

log = logging.getLogger(__name__)

_OBJECTIVE_NAMES = {t.value for t in ObjectiveType}


# ---------- Pydantic schemas ----------

class OverlordSettings(BaseModel):
    """Operator-adjustable knobs of an Overlord."""
    model_config = ConfigDict(frozen=True)

    incubation_workers_to_send: int = Field(3, ge=0, description="Big workers sent to incubate a room")
    storage_buffer: Dict[str, int] = Field(
        default_factory=lambda: {"manager": 75000, "worker": 50000, "upgrader": 75000},
        description="Creeps of a role can't withdraw from storage below this level",
    )
    unload_storage_buffer: int = Field(750000, ge=0, description="Offer storage energy past this amount")
    max_assist_lifetime_percentage: float = Field(
        0.1, ge=0.0, le=1.0, description="Assist spawn operations up to lifetime * this distance"
    )
    worker_pattern_repetition_limit: Optional[int] = Field(
        None, ge=1, description="Maximum worker size; None means unlimited"
    )


class ThresholdConfig(BaseModel):
    """Thresholds used when scanning the world for objectives and requests."""
    model_config = ConfigDict(frozen=True)

    dropped_energy_min: int = Field(100, ge=0, description="Dropped energy piles above this become pickups")
    repair_fraction: float = Field(0.7, gt=0.0, le=1.0, description="Containers/roads repaired below hits_max * this")
    fortify_count: int = Field(5, ge=0, description="Weakest barriers offered for fortification per room")
    critical_barrier_hits: int = Field(5000, ge=0, description="Barrier hits that count as about to breach")
    emergency_energy_threshold: int = Field(1300, ge=0, description="Spawn energy below this is an emergency")
    tower_refill_fraction: float = Field(0.5, gt=0.0, le=1.0, description="Towers below this fill request energy")
    container_collect_threshold: int = Field(500, ge=0, description="Mining containers above this offer energy")
    container_refill_fraction: float = Field(0.5, gt=0.0, le=1.0, description="Other containers below this request energy")
    lab_mineral_threshold: int = Field(1000, ge=0, description="Labs below this amount request their mineral")


class SchedulerConfig(BaseModel):
    """Objective priorities and the role capability table."""
    model_config = ConfigDict(frozen=True)

    objective_priorities: List[str] = Field(default_factory=lambda: list(DEFAULT_OBJECTIVE_PRIORITIES))
    capabilities: Dict[str, List[str]] = Field(
        default_factory=lambda: {role: sorted(t.value for t in types) for role, types in DEFAULT_CAPABILITIES.items()}
    )
    room_crossing_penalty: float = Field(50.0, ge=0.0)
    stale_target_warn_threshold: int = Field(3, ge=0)

    @field_validator("objective_priorities")
    @classmethod
    def _priorities_ok(cls, v: List[str]) -> List[str]:
        unknown = sorted(set(v) - _OBJECTIVE_NAMES)
        if unknown:
            raise ValueError(f"Unknown objective types in priorities: {unknown}")
        dupes = sorted({n for n in v if v.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate objective types in priorities: {dupes}")
        return v

    @field_validator("capabilities")
    @classmethod
    def _capabilities_ok(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        errs = []
        for role, names in v.items():
            unknown = sorted(set(names) - _OBJECTIVE_NAMES)
            if unknown:
                errs.append(f"{role}: {unknown}")
        if errs:
            raise ValueError(f"Unknown objective types in capabilities: {'; '.join(errs)}")
        return v

    def capability_table(self) -> Dict[str, FrozenSet[ObjectiveType]]:
        return {role: frozenset(ObjectiveType(n) for n in names) for role, names in self.capabilities.items()}


class LoggingConfig(BaseModel):
    level: str = Field("INFO")
    json_lines: bool = False
    file: Optional[str] = None
    namespaces: Dict[str, str] = Field(default_factory=dict)

    @field_validator("level")
    @classmethod
    def _level_ok(cls, v: str) -> str:
        lv = (v or "INFO").upper()
        if lv not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level '{v}'")
        return lv


class SimulationConfig(BaseModel):
    """Demo runner settings."""
    ticks: int = Field(300, ge=1)
    colony_room: str = "W1N1"
    outpost_rooms: List[str] = Field(default_factory=lambda: ["W2N1"])
    miners: int = Field(2, ge=0)
    haulers: int = Field(2, ge=0)
    queens: int = Field(1, ge=0)
    workers: int = Field(2, ge=0)
    summary_every: int = Field(50, ge=1)


class OvermindConfig(BaseModel):
    """Complete configuration."""
    overlord: OverlordSettings = Field(default_factory=OverlordSettings)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)

    @model_validator(mode="after")
    def _storage_buffer_roles_known(self):
        unknown = sorted(set(self.overlord.storage_buffer) - set(self.scheduler.capabilities))
        if unknown:
            log.warning("storage_buffer names roles without capabilities: %s", unknown)
        return self


# ---------- Loader functions ----------

def _load_text(path_or_text: Union[str, Path]) -> str:
    """Read a file, or treat the input as config text."""
    if isinstance(path_or_text, Path):
        return path_or_text.read_text(encoding="utf-8")
    if "\n" in path_or_text or path_or_text.strip().startswith(("{", "[")) or len(path_or_text) > 255:
        return path_or_text
    try:
        p = Path(path_or_text)
        if p.exists():
            return p.read_text(encoding="utf-8")
    except (OSError, ValueError):
        pass
    return path_or_text


def load_raw_config(path_or_text: Union[str, Path]) -> Dict[str, Any]:
    """YAML (JSON is a subset) into a dict."""
    text = _load_text(path_or_text)
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Config parse error: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be a mapping")
    return data


def parse_config(data: Dict[str, Any]) -> OvermindConfig:
    """Validate a raw dict against the schemas."""
    try:
        return OvermindConfig(**data)
    except ValidationError as e:
        msgs = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValueError(f"Schema validation failed: {msgs}")


def load_config(path_or_text: Optional[Union[str, Path]] = None) -> OvermindConfig:
    """End-to-end: file/text -> validated config. None gives defaults."""
    if path_or_text is None:
        log.info("No config given; using defaults")
        return OvermindConfig()
    cfg = parse_config(load_raw_config(path_or_text))
    log.info("Config loaded: priorities=%d roles=%d",
             len(cfg.scheduler.objective_priorities), len(cfg.scheduler.capabilities))
    return cfg
