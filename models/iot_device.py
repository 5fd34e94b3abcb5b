"""
IoT device implementation
Task generation from application profiles, random-walk mobility, wireless
link and battery bookkeeping
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from communication.models import WIFI, WirelessProtocol
from .data_structures import DEFAULT_APP_PROFILES, AppProfile, Location, SimulationArea, Task
from .energy_model import BatteryModel, EnergyModel, LinearEnergyModel

logger = logging.getLogger(__name__)

DEFAULT_TRANSMISSION_POWER_MW = 100.0
IDLE_POWER_MW = 50.0


class IoTDevice:
    """
    IoT device

    The random generator is injected so a run seed fully determines task
    demands and mobility. Without one, a fresh unseeded generator is used.
    """

    def __init__(self, device_id: int, device_type: str, mobility_speed: float,
                 location: Location,
                 rng: Optional[np.random.Generator] = None,
                 protocol: WirelessProtocol = WIFI,
                 signal_interference: float = 0.1,
                 battery: Optional[BatteryModel] = None,
                 energy_model: Optional[EnergyModel] = None,
                 app_profiles: Sequence[AppProfile] = DEFAULT_APP_PROFILES,
                 transmission_power_mw: float = DEFAULT_TRANSMISSION_POWER_MW):
        self.device_id = device_id
        self.device_type = device_type
        self.mobility_speed = mobility_speed
        self.location = location
        self.rng = rng if rng is not None else np.random.default_rng()

        self.protocol = protocol
        self.signal_interference = float(np.clip(signal_interference, 0.0, 1.0))
        self.battery = battery or BatteryModel()
        self.energy_model = energy_model or LinearEnergyModel()
        self.transmission_power_mw = transmission_power_mw

        self.app_profiles = list(app_profiles)
        self.generated_tasks: List[Task] = []
        self.total_energy_consumed = 0.0

    @property
    def battery_level(self) -> float:
        return self.battery.charge_level

    # ------------------------------------------------------------------
    # task generation
    # ------------------------------------------------------------------
    def generate_task(self, app_type: int = -1, creation_time: float = 0.0,
                      security_manager=None,
                      security_metadata: Optional[Dict[str, Any]] = None) -> Task:
        """
        Generate a task from an application profile

        Args:
            app_type: profile index; out of range picks one uniformly
            creation_time: virtual time in ms
            security_manager: issues the device token and seals the task
            security_metadata: extra metadata attached before sealing
        """
        if not 0 <= app_type < len(self.app_profiles):
            app_type = int(self.rng.integers(len(self.app_profiles)))
        profile = self.app_profiles[app_type]

        cpu_demand = profile.cpu_demand * (0.9 + 0.2 * self.rng.random())
        network_demand = profile.network_demand * (0.9 + 0.2 * self.rng.random())

        task = Task(
            task_id=f"{self.device_id}-{len(self.generated_tasks)}",
            source_device_id=self.device_id,
            cpu_demand=cpu_demand,
            network_demand=network_demand,
            delay_sensitivity=profile.delay_sensitivity,
            creation_time=creation_time,
        )

        if security_manager is not None:
            task.security_token = security_manager.generate_token(self.device_id, creation_time)
        for key, value in (security_metadata or {}).items():
            task.add_metadata(key, value)
        if security_manager is not None:
            security_manager.seal_task(task)

        self.generated_tasks.append(task)
        return task

    # ------------------------------------------------------------------
    # mobility
    # ------------------------------------------------------------------
    def update_location(self, area: SimulationArea):
        """Random-walk step of at most mobility_speed / 2 per axis"""
        x = self.location.x + (self.rng.random() - 0.5) * self.mobility_speed
        y = self.location.y + (self.rng.random() - 0.5) * self.mobility_speed
        self.location = area.clamp(x, y)

    def find_nearest_edge_node(self, edge_nodes):
        """Nearest node by Euclidean distance (first minimal wins), None if empty"""
        if not edge_nodes:
            logger.warning("No edge nodes available for device %s", self.device_id)
            return None
        nearest = None
        min_distance = float('inf')
        for node in edge_nodes:
            distance = self.location.distance_to(node.location)
            if distance < min_distance:
                min_distance = distance
                nearest = node
        logger.debug("Device %s bound to %s at %.2f m", self.device_id, nearest.name, min_distance)
        return nearest

    # ------------------------------------------------------------------
    # wireless link / battery
    # ------------------------------------------------------------------
    def calculate_bandwidth_to(self, location: Location) -> float:
        """Achievable bandwidth in kbps"""
        distance = self.location.distance_to(location)
        return self.protocol.calculate_actual_bandwidth(distance, self.signal_interference)

    def send_data(self, location: Location, data_size_bytes: float) -> bool:
        """Charge the battery for a transmission; False when it cannot cover it"""
        return self.send_data_over(self.location.distance_to(location), data_size_bytes)

    def send_data_over(self, distance: float, data_size_bytes: float) -> bool:
        bandwidth_kbps = self.protocol.calculate_actual_bandwidth(distance, self.signal_interference)
        energy = self.energy_model.calculate_transmission_energy(
            data_size_bytes, bandwidth_kbps * 1000.0 / 8.0, self.transmission_power_mw
        )
        if not self.battery.consume_energy(energy):
            logger.info("Device %s cannot send %d bytes: insufficient energy",
                        self.device_id, int(data_size_bytes))
            return False
        self.total_energy_consumed += energy
        return True

    def update_battery_for_idle(self, idle_time_ms: float) -> bool:
        """Idle draw at 50 mW; False once the battery is empty"""
        energy = self.energy_model.calculate_idle_energy(idle_time_ms, IDLE_POWER_MW)
        self.total_energy_consumed += energy
        return self.battery.discharge(energy)

    def set_signal_interference(self, interference: float):
        self.signal_interference = float(np.clip(interference, 0.0, 1.0))

    def __repr__(self):
        return (f"IoTDevice(id={self.device_id}, type={self.device_type!r}, "
                f"protocol={self.protocol.name}, battery={self.battery_level:.2f})")
