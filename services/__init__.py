"""
Supporting services
Security, service discovery and fault tolerance
"""
from .security_manager import SecurityManager
from .service_discovery import ServiceDiscovery, ServiceRegistration
from .fault_tolerance import (
    FaultToleranceManager, FaultToleranceLevel, HealthStatus, NodeHealth, TaskCheckpoint
)

__all__ = [
    'SecurityManager',
    'ServiceDiscovery', 'ServiceRegistration',
    'FaultToleranceManager', 'FaultToleranceLevel', 'HealthStatus', 'NodeHealth',
    'TaskCheckpoint',
]
