#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Unified configuration module for the edge/fog offloading simulator.

Features:
1. YAML configuration loading (defaults.yaml)
2. argparse command-line overrides
3. Environment variable overrides (highest priority)
4. Validation and conflict detection
5. Export to YAML / JSON

Priority (high to low):
    environment variables > command-line arguments > YAML file > Python defaults

Usage:
    from config.unified_config import get_config, parse_args

    # default configuration
    cfg = get_config()

    # command-line overrides
    args = parse_args()
    cfg = get_config(args)

    # explicit YAML file
    cfg = get_config(yaml_file="experiments/high_load.yaml")
"""

from __future__ import annotations

import argparse
import copy
import json
import os
import warnings
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


# =============================================================================
# Configuration sections
# =============================================================================

@dataclass
class TopologyConfig:
    """Edge layout, device population and mobility area"""
    num_edge_nodes: int = 3
    num_devices: int = 200
    area_width: float = 500.0
    area_height: float = 500.0
    device_speed: float = 1.0
    location_check_interval: int = 1      # ticks


@dataclass
class EdgeConfig:
    """Edge node VM resources"""
    vm_mips: float = 10000.0
    vm_ram: int = 4000                    # MB
    vm_storage: int = 10000               # MB
    high_tier_mips_factor: float = 1.5
    high_tier_ram_factor: float = 2.0


@dataclass
class CloudConfig:
    """Cloud VM resources and WAN link"""
    vm_mips: float = 20000.0
    vm_ram: int = 16000                   # MB
    vm_storage: int = 100000              # MB
    wan_bandwidth: float = 10.0           # Mbps
    wan_propagation_delay: float = 0.15   # s

    @property
    def wan_latency_ms(self) -> float:
        return self.wan_propagation_delay * 1000.0


@dataclass
class TaskConfig:
    """Task generation and application profiles"""
    generation_probability: float = 0.1
    num_app_types: int = 4
    task_length: List[float] = field(default_factory=lambda: [3000.0, 6000.0, 10000.0, 15000.0])
    input_size: List[float] = field(default_factory=lambda: [1500.0, 2500.0, 3500.0, 5000.0])
    delay_sensitivity: List[float] = field(default_factory=lambda: [0.9, 0.7, 0.5, 0.1])


@dataclass
class EnergyConfig:
    """Device battery and energy model"""
    battery_capacity_mah: float = 5000.0
    battery_voltage: float = 3.7
    energy_consumption_rate: float = 0.0001
    transmission_power_mw: float = 100.0
    idle_time_per_tick_ms: int = 1000
    low_battery_threshold: float = 0.05


@dataclass
class SecurityConfig:
    """Task security metadata"""
    enabled: bool = True
    security_level: int = 2               # >1 marks tasks "high"


@dataclass
class ServicesConfig:
    """Service discovery and fault tolerance"""
    service_discovery_interval: int = 5
    fault_tolerance_probability: float = 0.05
    failure_check_interval: int = 10
    min_recovery_ticks: int = 2
    max_recovery_ticks: int = 5
    checkpoint_interval: int = 10


@dataclass
class MigrationConfig:
    """Service migration handshake timing"""
    preparation_time_ms: float = 500.0
    transfer_time_ms: float = 1000.0


@dataclass
class ExperimentConfig:
    """Run horizon, seed and output"""
    simulation_time: int = 30             # ticks
    warm_up_period: int = 3               # ticks
    random_seed: int = 42
    tick_duration_ms: float = 1000.0
    advanced_features: bool = True
    results_dir: str = "results"


@dataclass
class LoggingConfig:
    """Logger settings"""
    level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class UnifiedConfig:
    """
    Unified configuration container

    Groups every section behind a single access point.
    """
    topology: TopologyConfig = field(default_factory=TopologyConfig)
    edge: EdgeConfig = field(default_factory=EdgeConfig)
    cloud: CloudConfig = field(default_factory=CloudConfig)
    task: TaskConfig = field(default_factory=TaskConfig)
    energy: EnergyConfig = field(default_factory=EnergyConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    services: ServicesConfig = field(default_factory=ServicesConfig)
    migration: MigrationConfig = field(default_factory=MigrationConfig)
    experiment: ExperimentConfig = field(default_factory=ExperimentConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # metadata
    config_source: str = "default"
    config_version: str = "1.0"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary"""
        return asdict(self)

    def to_yaml(self, file_path: str):
        """Export to a YAML file"""
        with open(file_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, allow_unicode=True)

    def to_json(self, file_path: str):
        """Export to a JSON file"""
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)


_SECTIONS = {
    'topology': TopologyConfig,
    'edge': EdgeConfig,
    'cloud': CloudConfig,
    'task': TaskConfig,
    'energy': EnergyConfig,
    'security': SecurityConfig,
    'services': ServicesConfig,
    'migration': MigrationConfig,
    'experiment': ExperimentConfig,
    'logging': LoggingConfig,
}


# =============================================================================
# Loading and merging
# =============================================================================

def _deep_update(base: Dict, update: Dict) -> Dict:
    """Recursively merge two dictionaries"""
    result = copy.deepcopy(base)
    for key, value in update.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_update(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml(file_path: str) -> Dict[str, Any]:
    """Load a YAML configuration file; missing files yield an empty dict"""
    path = Path(file_path)
    if not path.exists():
        return {}

    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {'1', 'true', 'yes', 'on'}:
        return True
    if lowered in {'0', 'false', 'no', 'off'}:
        return False
    raise ValueError(f"not a boolean: {value}")


def _apply_env_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides

    Naming scheme: EDGESIM_{SECTION}_{PARAM}
    e.g. EDGESIM_NUM_DEVICES=50
    """
    env_mapping = {
        # topology
        'EDGESIM_NUM_EDGE_NODES': ('topology', 'num_edge_nodes', int),
        'EDGESIM_NUM_DEVICES': ('topology', 'num_devices', int),
        'EDGESIM_DEVICE_SPEED': ('topology', 'device_speed', float),

        # resources
        'EDGESIM_EDGE_MIPS': ('edge', 'vm_mips', float),
        'EDGESIM_CLOUD_MIPS': ('cloud', 'vm_mips', float),
        'EDGESIM_WAN_DELAY': ('cloud', 'wan_propagation_delay', float),

        # tasks
        'EDGESIM_TASK_PROBABILITY': ('task', 'generation_probability', float),

        # security / services
        'EDGESIM_SECURITY_ENABLED': ('security', 'enabled', _parse_bool),
        'EDGESIM_SECURITY_LEVEL': ('security', 'security_level', int),
        'EDGESIM_FAILURE_PROBABILITY': ('services', 'fault_tolerance_probability', float),

        # experiment
        'EDGESIM_SIMULATION_TIME': ('experiment', 'simulation_time', int),
        'EDGESIM_WARM_UP': ('experiment', 'warm_up_period', int),
        'EDGESIM_RANDOM_SEED': ('experiment', 'random_seed', int),
        'EDGESIM_ADVANCED': ('experiment', 'advanced_features', _parse_bool),
        'EDGESIM_RESULTS_DIR': ('experiment', 'results_dir', str),

        # logging
        'EDGESIM_LOG_LEVEL': ('logging', 'level', str),
        'EDGESIM_LOG_FILE': ('logging', 'log_file', str),
    }

    for env_var, (section, param, dtype) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            try:
                if section not in config_dict:
                    config_dict[section] = {}
                config_dict[section][param] = dtype(value)
            except (ValueError, TypeError):
                warnings.warn(f"Could not parse environment variable {env_var}={value}")

    return config_dict


def _dict_to_config(config_dict: Dict[str, Any]) -> UnifiedConfig:
    """Convert a merged dictionary into a UnifiedConfig"""

    def _create_dataclass(cls, data: Optional[Dict]):
        """Build a section, ignoring unknown keys"""
        if data is None:
            return cls()
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    sections = {
        name: _create_dataclass(cls, config_dict.get(name))
        for name, cls in _SECTIONS.items()
    }
    return UnifiedConfig(
        **sections,
        config_source=config_dict.get('config_source', 'merged'),
        config_version=config_dict.get('config_version', '1.0'),
    )


# =============================================================================
# argparse command line
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Build the command-line parser"""
    parser = argparse.ArgumentParser(
        description="Edge/fog task offloading simulator",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # configuration file
    parser.add_argument('--config', '-c', type=str, default=None,
                        help='YAML configuration file')
    parser.add_argument('--export-config', type=str, default=None,
                        help='Export the effective configuration to this file')

    # topology
    parser.add_argument('--num-devices', type=int, default=None,
                        help='Number of IoT devices')
    parser.add_argument('--num-edge-nodes', type=int, default=None,
                        help='Number of edge nodes')
    parser.add_argument('--device-speed', type=float, default=None,
                        help='Device mobility speed (m/tick)')

    # tasks
    parser.add_argument('--task-probability', type=float, default=None,
                        help='Per-device task generation probability per tick')

    # experiment
    parser.add_argument('--simulation-time', type=int, default=None,
                        help='Simulation horizon (ticks)')
    parser.add_argument('--warm-up', type=int, default=None,
                        help='Warm-up period before statistics are collected (ticks)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed')
    parser.add_argument('--no-advanced', action='store_true',
                        help='Disable energy, security and fault-tolerance features')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='Results JSON file')

    # logging
    parser.add_argument('--log-level', type=str, default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Log level')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Optional log file')

    # debugging
    parser.add_argument('--dry-run', action='store_true',
                        help='Print the configuration and exit')

    return parser


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments"""
    parser = create_parser()
    return parser.parse_args(args)


def _apply_args_overrides(config_dict: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Apply command-line overrides"""

    # argparse name -> (section, param)
    args_mapping = {
        'num_devices': ('topology', 'num_devices'),
        'num_edge_nodes': ('topology', 'num_edge_nodes'),
        'device_speed': ('topology', 'device_speed'),
        'task_probability': ('task', 'generation_probability'),
        'simulation_time': ('experiment', 'simulation_time'),
        'warm_up': ('experiment', 'warm_up_period'),
        'seed': ('experiment', 'random_seed'),
        'log_level': ('logging', 'level'),
        'log_file': ('logging', 'log_file'),
    }

    for arg_name, (section, param) in args_mapping.items():
        value = getattr(args, arg_name, None)
        if value is not None:
            if section not in config_dict:
                config_dict[section] = {}
            config_dict[section][param] = value

    if getattr(args, 'no_advanced', False):
        config_dict.setdefault('experiment', {})['advanced_features'] = False

    return config_dict


# =============================================================================
# Validation
# =============================================================================

def validate_config(cfg: UnifiedConfig) -> List[str]:
    """
    Check parameter sanity

    Returns a list of warnings (empty when everything looks fine).
    """
    warnings_list = []

    if cfg.topology.num_edge_nodes < 1:
        warnings_list.append("num_edge_nodes must be >= 1; every task will go to the cloud")
    if cfg.topology.num_devices < 0:
        warnings_list.append("num_devices must be >= 0")

    if cfg.experiment.simulation_time < 0:
        warnings_list.append("simulation_time must be >= 0")
    if cfg.experiment.warm_up_period >= cfg.experiment.simulation_time:
        warnings_list.append(
            f"warm_up_period={cfg.experiment.warm_up_period} >= simulation_time="
            f"{cfg.experiment.simulation_time}; no statistics will be collected")

    for name, value in (
        ('task.generation_probability', cfg.task.generation_probability),
        ('services.fault_tolerance_probability', cfg.services.fault_tolerance_probability),
    ):
        if not 0.0 <= value <= 1.0:
            warnings_list.append(f"{name}={value} is outside [0, 1]")

    profile_lengths = {
        len(cfg.task.task_length), len(cfg.task.input_size), len(cfg.task.delay_sensitivity)
    }
    if len(profile_lengths) != 1:
        warnings_list.append("task_length, input_size and delay_sensitivity must have equal length")

    if cfg.services.min_recovery_ticks > cfg.services.max_recovery_ticks:
        warnings_list.append("min_recovery_ticks > max_recovery_ticks")

    return warnings_list


# =============================================================================
# Entry point
# =============================================================================

def get_config(
    args: Optional[argparse.Namespace] = None,
    yaml_file: Optional[str] = None,
    apply_env: bool = True,
    validate: bool = True,
) -> UnifiedConfig:
    """
    Build the unified configuration

    Priority: environment > command line > YAML > defaults

    Args:
        args: parsed command-line arguments (optional)
        yaml_file: YAML configuration path (optional)
        apply_env: apply EDGESIM_* environment overrides
        validate: emit validation warnings

    Returns:
        UnifiedConfig instance
    """
    # Step 1: defaults
    config_dict = UnifiedConfig().to_dict()

    # Step 2: YAML
    yaml_path = yaml_file
    if yaml_path is None and args is not None:
        yaml_path = getattr(args, 'config', None)

    if yaml_path is None:
        default_yaml = Path(__file__).parent / 'defaults.yaml'
        if default_yaml.exists():
            yaml_path = str(default_yaml)

    if yaml_path:
        yaml_config = _load_yaml(yaml_path)
        if yaml_config:
            config_dict = _deep_update(config_dict, yaml_config)
            config_dict['config_source'] = yaml_path

    # Step 3: command line
    if args is not None:
        config_dict = _apply_args_overrides(config_dict, args)
        config_dict['config_source'] = 'args+' + config_dict.get('config_source', 'default')

    # Step 4: environment (highest priority)
    if apply_env:
        config_dict = _apply_env_overrides(config_dict)

    # Step 5: build
    cfg = _dict_to_config(config_dict)

    # Step 6: validate
    if validate:
        for w in validate_config(cfg):
            warnings.warn(w)

    return cfg


def print_config(cfg: UnifiedConfig, sections: Optional[List[str]] = None):
    """Print a configuration summary"""
    print("\n" + "=" * 60)
    print("Simulation configuration")
    print("=" * 60)

    target_sections = sections or list(_SECTIONS.keys())

    for sec_key in target_sections:
        sec_obj = getattr(cfg, sec_key, None)
        if sec_obj is None:
            continue
        print(f"\n{sec_key}:")
        for k, v in asdict(sec_obj).items():
            print(f"  {k}: {v}")

    print("\n" + "=" * 60)
    print(f"Source: {cfg.config_source}")
    print("=" * 60 + "\n")


# Global configuration instance (lazily built)
_unified_config: Optional[UnifiedConfig] = None

def get_unified_config() -> UnifiedConfig:
    """Return the shared configuration instance"""
    global _unified_config
    if _unified_config is None:
        _unified_config = get_config(validate=False)
    return _unified_config
