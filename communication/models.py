"""
Wireless link models for device-to-edge communication

Each protocol derates its nominal bandwidth with distance and interference
and inflates its typical latency with distance and packet size:

    bandwidth = B_max * max(d_floor, 1 - (d / R)^k * d_slope)
                      * max(i_floor, 1 - i * i_slope)                 [kbps]
    latency   = L_typ * (1 + d / R * l_dist) * (1 + size / 1024 * l_pkt)   [ms]
"""
from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class WirelessProtocol:
    """Distance/interference-aware wireless protocol"""
    name: str
    type: str
    max_bandwidth: float            # kbps
    typical_latency: float          # ms
    max_range: float                # m
    energy_per_byte: float          # uJ
    distance_exponent: float = 1.0
    distance_slope: float = 0.9
    distance_floor: float = 0.1
    interference_slope: float = 0.9
    interference_floor: float = 0.1
    latency_distance_factor: float = 1.0
    latency_packet_factor: float = 0.2

    def calculate_actual_bandwidth(self, distance: float, interference: float) -> float:
        """Achievable bandwidth in kbps"""
        distance_factor = max(
            self.distance_floor,
            1.0 - (distance / self.max_range) ** self.distance_exponent * self.distance_slope
        )
        interference_factor = max(self.interference_floor,
                                  1.0 - interference * self.interference_slope)
        return self.max_bandwidth * distance_factor * interference_factor

    def calculate_actual_latency(self, distance: float, packet_size: float) -> float:
        """One-way latency in ms for a packet of packet_size bytes"""
        distance_factor = 1.0 + (distance / self.max_range) * self.latency_distance_factor
        packet_factor = 1.0 + (packet_size / 1024.0) * self.latency_packet_factor
        return self.typical_latency * distance_factor * packet_factor


WIFI = WirelessProtocol(
    name="WiFi", type="WIFI",
    max_bandwidth=300000.0, typical_latency=10.0, max_range=100.0, energy_per_byte=0.03,
    distance_exponent=1.5, distance_slope=0.9, distance_floor=0.1,
    interference_slope=0.9, interference_floor=0.1,
    latency_distance_factor=1.0, latency_packet_factor=0.2,
)

LORAWAN = WirelessProtocol(
    name="LoRaWAN", type="LORA",
    max_bandwidth=50.0, typical_latency=1000.0, max_range=10000.0, energy_per_byte=0.1,
    distance_exponent=1.0, distance_slope=0.9, distance_floor=0.1,
    interference_slope=0.5, interference_floor=0.5,
    latency_distance_factor=2.0, latency_packet_factor=0.5,
)

NBIOT = WirelessProtocol(
    name="NB-IoT", type="NBIOT",
    max_bandwidth=250.0, typical_latency=1500.0, max_range=15000.0, energy_per_byte=0.05,
    distance_exponent=1.0, distance_slope=0.8, distance_floor=0.2,
    interference_slope=0.7, interference_floor=0.3,
    latency_distance_factor=1.5, latency_packet_factor=0.3,
)

FIVE_G = WirelessProtocol(
    name="5G", type="5G",
    max_bandwidth=1000000.0, typical_latency=1.0, max_range=1000.0, energy_per_byte=0.02,
    distance_exponent=2.0, distance_slope=0.9, distance_floor=0.1,
    interference_slope=0.8, interference_floor=0.2,
    latency_distance_factor=0.5, latency_packet_factor=0.1,
)

_PROTOCOLS: Dict[str, WirelessProtocol] = {
    'WIFI': WIFI,
    'LORAWAN': LORAWAN,
    'LORA': LORAWAN,
    'NBIOT': NBIOT,
    'NB-IOT': NBIOT,
    '5G': FIVE_G,
}

# base interference per protocol type, scaled per device at setup
PROTOCOL_INTERFERENCE = {
    'WIFI': 0.1,
    'LORA': 0.05,
    'NBIOT': 0.08,
    '5G': 0.03,
}

# protocol assigned to "Device-Type-k"
DEVICE_TYPE_PROTOCOLS = {
    1: 'WIFI',
    2: 'LORAWAN',
    3: 'NBIOT',
    4: '5G',
}


def get_protocol(name: str) -> WirelessProtocol:
    """Look up a protocol by name; unknown names fall back to WiFi"""
    if not name:
        return WIFI
    return _PROTOCOLS.get(name.upper(), WIFI)


def available_protocols() -> List[str]:
    return sorted({p.name for p in _PROTOCOLS.values()})
