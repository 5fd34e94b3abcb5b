"""
In-process service registry
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ServiceRegistration:
    """Service offered by a node"""
    service_id: str
    service_name: str
    service_type: str
    provider_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    registered_at: float = 0.0


class ServiceDiscovery:
    """Registry keyed by service id, searchable by type and provider"""

    def __init__(self):
        self._services: Dict[str, ServiceRegistration] = {}

    def register_service(self, service_id: str, service_name: str, service_type: str,
                         provider_id: str, metadata: Optional[Dict[str, Any]] = None,
                         registered_at: float = 0.0) -> ServiceRegistration:
        """Register (or replace) a service"""
        registration = ServiceRegistration(
            service_id=service_id,
            service_name=service_name,
            service_type=service_type,
            provider_id=str(provider_id),
            metadata=dict(metadata or {}),
            registered_at=registered_at,
        )
        if service_id in self._services:
            logger.debug("Replacing registration of service %s", service_id)
        self._services[service_id] = registration
        return registration

    def unregister_service(self, service_id: str) -> bool:
        return self._services.pop(service_id, None) is not None

    def get_service(self, service_id: str) -> Optional[ServiceRegistration]:
        return self._services.get(service_id)

    def find_services_by_type(self, service_type: str) -> List[ServiceRegistration]:
        wanted = service_type.lower()
        return [s for s in self._services.values() if s.service_type.lower() == wanted]

    def find_services_by_provider(self, provider_id: str) -> List[ServiceRegistration]:
        provider_id = str(provider_id)
        return [s for s in self._services.values() if s.provider_id == provider_id]

    def get_all_services(self) -> List[ServiceRegistration]:
        return list(self._services.values())

    @property
    def service_count(self) -> int:
        return len(self._services)

    def __len__(self):
        return len(self._services)
