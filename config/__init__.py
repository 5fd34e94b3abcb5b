"""
Configuration package for the edge/fog offloading simulator

Usage:
1. Shared instance:
   from config import config
   print(config.topology.num_devices)

2. Command-line overrides:
   from config.unified_config import get_config, parse_args
   args = parse_args(['--num-devices', '20'])
   cfg = get_config(args)

3. Experiment file:
   from config.unified_config import get_config
   cfg = get_config(yaml_file='experiments/high_load.yaml')

Priority: environment > command line > YAML > Python defaults
"""

from .unified_config import (
    UnifiedConfig,
    TopologyConfig,
    EdgeConfig,
    CloudConfig,
    TaskConfig,
    EnergyConfig,
    SecurityConfig,
    ServicesConfig,
    MigrationConfig,
    ExperimentConfig,
    LoggingConfig,
    get_config,
    parse_args,
    create_parser,
    print_config,
    validate_config,
    get_unified_config,
)

# Shared instance built from defaults.yaml
config = get_unified_config()

__all__ = [
    'UnifiedConfig', 'TopologyConfig', 'EdgeConfig', 'CloudConfig', 'TaskConfig',
    'EnergyConfig', 'SecurityConfig', 'ServicesConfig', 'MigrationConfig',
    'ExperimentConfig', 'LoggingConfig',
    'get_config', 'parse_args', 'create_parser', 'print_config', 'validate_config',
    'get_unified_config', 'config',
]
