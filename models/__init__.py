"""
Model package
Core data structures, resource nodes, devices and energy models
"""
from .exceptions import EdgeSimError, TaskStateError, UnknownNodeError
from .data_structures import (
    Task, TaskStatus, ExecutionLocation, NodeType, Location, SimulationArea,
    AppProfile, DEFAULT_APP_PROFILES
)
from .energy_model import EnergyModel, LinearEnergyModel, BatteryModel
from .base_node import BaseNode
from .edge_node import EdgeNode, LOW_TIER, HIGH_TIER
from .cloud_node import CloudNode
from .iot_device import IoTDevice

__all__ = [
    # errors
    'EdgeSimError', 'TaskStateError', 'UnknownNodeError',

    # data structures
    'Task', 'TaskStatus', 'ExecutionLocation', 'NodeType', 'Location', 'SimulationArea',
    'AppProfile', 'DEFAULT_APP_PROFILES',

    # energy
    'EnergyModel', 'LinearEnergyModel', 'BatteryModel',

    # nodes and devices
    'BaseNode', 'EdgeNode', 'CloudNode', 'IoTDevice', 'LOW_TIER', 'HIGH_TIER',
]
