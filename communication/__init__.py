"""
Communication module
Wireless link models between devices and edge nodes
"""
from .models import (
    WirelessProtocol, WIFI, LORAWAN, NBIOT, FIVE_G,
    PROTOCOL_INTERFERENCE, DEVICE_TYPE_PROTOCOLS,
    get_protocol, available_protocols,
)

__all__ = [
    'WirelessProtocol', 'WIFI', 'LORAWAN', 'NBIOT', 'FIVE_G',
    'PROTOCOL_INTERFERENCE', 'DEVICE_TYPE_PROTOCOLS',
    'get_protocol', 'available_protocols',
]
