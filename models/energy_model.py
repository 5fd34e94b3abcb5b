"""
Device battery and energy consumption models
"""
from abc import ABC, abstractmethod


class EnergyModel(ABC):
    """Energy accounting interface (all results in joules)"""

    name = "energy model"

    @abstractmethod
    def calculate_computation_energy(self, cpu_utilization: float, execution_time_ms: float,
                                     mips: float) -> float:
        pass

    @abstractmethod
    def calculate_transmission_energy(self, data_size: float, transmission_rate: float,
                                      transmission_power_mw: float) -> float:
        pass

    @abstractmethod
    def calculate_reception_energy(self, data_size: float, reception_rate: float,
                                   reception_power_mw: float) -> float:
        pass

    @abstractmethod
    def calculate_idle_energy(self, idle_time_ms: float, idle_power_mw: float) -> float:
        pass


class LinearEnergyModel(EnergyModel):
    """
    Power grows linearly with utilization and MIPS on top of a base draw.

    Args:
        cpu_energy_coefficient: W per (utilization x MIPS) / 1000
        base_power_mw: static draw in mW
    """

    name = "Linear Energy Model"

    def __init__(self, cpu_energy_coefficient: float = 0.0001, base_power_mw: float = 100.0):
        self.cpu_energy_coefficient = cpu_energy_coefficient
        self.base_power_mw = base_power_mw

    def calculate_computation_energy(self, cpu_utilization: float, execution_time_ms: float,
                                     mips: float) -> float:
        execution_time_s = execution_time_ms / 1000.0
        dynamic_power = cpu_utilization * mips * self.cpu_energy_coefficient * 1000
        total_power = self.base_power_mw / 1000.0 + dynamic_power
        return total_power * execution_time_s

    def calculate_transmission_energy(self, data_size: float, transmission_rate: float,
                                      transmission_power_mw: float) -> float:
        """data_size in bytes, transmission_rate in bytes/s"""
        if transmission_rate <= 0:
            return float('inf')
        return (transmission_power_mw / 1000.0) * (data_size / transmission_rate)

    def calculate_reception_energy(self, data_size: float, reception_rate: float,
                                   reception_power_mw: float) -> float:
        if reception_rate <= 0:
            return float('inf')
        return (reception_power_mw / 1000.0) * (data_size / reception_rate)

    def calculate_idle_energy(self, idle_time_ms: float, idle_power_mw: float) -> float:
        return (idle_power_mw / 1000.0) * (idle_time_ms / 1000.0)


class BatteryModel:
    """Rechargeable battery with discharge efficiency and health derating"""

    def __init__(self, capacity_mah: float = 2000.0, voltage_v: float = 3.7,
                 initial_charge_level: float = 1.0, idle_discharge_rate: float = 0.005,
                 discharge_efficiency: float = 0.9, health_factor: float = 1.0):
        if capacity_mah <= 0 or voltage_v <= 0:
            raise ValueError("battery capacity and voltage must be positive")
        if not 0.0 < discharge_efficiency <= 1.0:
            raise ValueError("discharge_efficiency must be in (0, 1]")
        self.capacity_mah = capacity_mah
        self.voltage_v = voltage_v
        self.charge_level = max(0.0, min(1.0, initial_charge_level))
        self.idle_discharge_rate = idle_discharge_rate    # fraction per hour
        self.discharge_efficiency = discharge_efficiency
        self.health_factor = max(0.0, min(1.0, health_factor))
        self.energy_consumed = 0.0

    @property
    def total_energy_capacity_j(self) -> float:
        return self.capacity_mah * self.voltage_v * 3.6 * self.health_factor

    @property
    def remaining_energy_j(self) -> float:
        return self.total_energy_capacity_j * self.charge_level

    def consume_energy(self, energy_j: float) -> bool:
        """Draw energy; refuses without side effects if the battery would go below empty"""
        actual = energy_j / self.discharge_efficiency
        capacity = self.total_energy_capacity_j
        if capacity <= 0:
            return False
        new_level = self.charge_level - actual / capacity
        if new_level < 0.0:
            return False
        self.charge_level = new_level
        self.energy_consumed += actual
        return True

    def discharge(self, energy_j: float) -> bool:
        """Unconditional drain, clamped at empty; False once depleted"""
        capacity = self.total_energy_capacity_j
        if capacity <= 0:
            return False
        drawn = min(energy_j / self.discharge_efficiency, self.remaining_energy_j)
        self.charge_level = max(0.0, self.charge_level - drawn / capacity)
        self.energy_consumed += drawn
        return self.charge_level > 0.0

    def simulate_idle(self, idle_time_ms: float) -> bool:
        """Self-discharge over an idle period; False once depleted"""
        discharge = idle_time_ms / 3_600_000.0 * self.idle_discharge_rate
        new_level = self.charge_level - discharge
        if new_level < 0.0:
            self.charge_level = 0.0
            return False
        self.charge_level = new_level
        self.energy_consumed += discharge * self.total_energy_capacity_j
        return True

    def charge(self, amount: float):
        self.charge_level = min(1.0, self.charge_level + amount)

    def full_charge(self):
        self.charge_level = 1.0

    def set_health_factor(self, health_factor: float):
        self.health_factor = max(0.0, min(1.0, health_factor))

    def estimated_remaining_life_hours(self, average_power_w: float) -> float:
        if average_power_w <= 0.0:
            return float('inf')
        return self.remaining_energy_j / 3600.0 / average_power_w

    def __repr__(self):
        return (f"BatteryModel({self.capacity_mah:.1f} mAh, {self.voltage_v:.1f} V, "
                f"{self.charge_level * 100:.1f}% charged, {self.health_factor * 100:.1f}% health)")
