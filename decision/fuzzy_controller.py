"""
Fuzzy-inference offloading controller

Fuzzification -> six min/max rules -> winner-take-all defuzzification with
the fixed preference LOCAL_EDGE > OTHER_EDGE > CLOUD on ties.
"""
from dataclasses import dataclass, field
from typing import Dict, Tuple

from models.data_structures import ExecutionLocation

LOW, MEDIUM, HIGH = "low", "medium", "high"


@dataclass(frozen=True)
class FuzzySet:
    """
    Low/Medium/High partition of one input variable

    low: (full, zero)              Low = 1 at <= full, 0 at >= zero
    medium: (a, b, c, d)           trapezoid rising a->b, flat b..c, falling c->d
    high: (zero, full)             High = 0 at <= zero, 1 at >= full
    """
    low: Tuple[float, float]
    medium: Tuple[float, float, float, float]
    high: Tuple[float, float]

    def fuzzify(self, value: float) -> Dict[str, float]:
        return {
            LOW: falling_edge(value, *self.low),
            MEDIUM: trapezoid(value, *self.medium),
            HIGH: rising_edge(value, *self.high),
        }


def falling_edge(x: float, full: float, zero: float) -> float:
    if x <= full:
        return 1.0
    if x >= zero:
        return 0.0
    return (zero - x) / (zero - full)


def rising_edge(x: float, zero: float, full: float) -> float:
    if x <= zero:
        return 0.0
    if x >= full:
        return 1.0
    return (x - zero) / (full - zero)


def trapezoid(x: float, a: float, b: float, c: float, d: float) -> float:
    if x <= a or x >= d:
        return 0.0
    if x < b:
        return (x - a) / (b - a)
    if x <= c:
        return 1.0
    return (d - x) / (d - c)


CPU_DEMAND = FuzzySet(low=(3000.0, 6000.0), medium=(3000.0, 6000.0, 8000.0, 10000.0),
                      high=(8000.0, 15000.0))
NETWORK_DEMAND = FuzzySet(low=(1500.0, 2500.0), medium=(1500.0, 2500.0, 3000.0, 3500.0),
                          high=(3000.0, 5000.0))
DELAY_SENSITIVITY = FuzzySet(low=(0.1, 0.5), medium=(0.1, 0.5, 0.7, 0.9), high=(0.7, 0.9))
EDGE_UTILIZATION = FuzzySet(low=(30.0, 50.0), medium=(30.0, 50.0, 70.0, 80.0),
                            high=(70.0, 90.0))


@dataclass
class FuzzyDecision:
    """Outcome of one inference, with the intermediate values kept for inspection"""
    location: ExecutionLocation
    weights: Dict[ExecutionLocation, float]
    memberships: Dict[str, Dict[str, float]] = field(default_factory=dict)


class FuzzyLogicController:
    """
    Offloading decision engine

    Stateless: identical inputs always yield the identical label.
    resource_type 1 is a low-capacity edge, 2 a high-capacity one; any other
    value fires neither of the tier-specific rules.
    """

    def evaluate(self, cpu_demand: float, network_demand: float, delay_sensitivity: float,
                 edge_utilization: float, resource_type: int) -> FuzzyDecision:
        cpu = CPU_DEMAND.fuzzify(cpu_demand)
        net = NETWORK_DEMAND.fuzzify(network_demand)
        delay = DELAY_SENSITIVITY.fuzzify(delay_sensitivity)
        util = EDGE_UTILIZATION.fuzzify(edge_utilization)

        local_weight = 0.0
        other_weight = 0.0
        cloud_weight = 0.0

        # light task on a lightly loaded edge stays local
        local_weight = max(local_weight, min(cpu[LOW], util[LOW]))
        # heavy, delay-tolerant task on a saturated edge goes to the cloud
        cloud_weight = max(cloud_weight, min(cpu[HIGH], util[HIGH], delay[LOW]))
        # medium, delay-critical task on a saturated edge goes to a peer
        other_weight = max(other_weight, min(cpu[MEDIUM], util[HIGH], delay[HIGH]))
        # bulky, delay-critical payload avoids the uplink
        local_weight = max(local_weight, min(net[HIGH], delay[HIGH]))
        if resource_type == 2:
            local_weight = max(local_weight, min(cpu[HIGH], util[LOW]))
        elif resource_type == 1:
            other_weight = max(other_weight, min(cpu[HIGH], util[MEDIUM]))

        weights = {
            ExecutionLocation.LOCAL_EDGE: local_weight,
            ExecutionLocation.OTHER_EDGE: other_weight,
            ExecutionLocation.CLOUD: cloud_weight,
        }
        return FuzzyDecision(
            location=self._defuzzify(local_weight, other_weight, cloud_weight),
            weights=weights,
            memberships={'cpu': cpu, 'network': net, 'delay': delay, 'utilization': util},
        )

    def decide(self, cpu_demand: float, network_demand: float, delay_sensitivity: float,
               edge_utilization: float, resource_type: int) -> ExecutionLocation:
        return self.evaluate(cpu_demand, network_demand, delay_sensitivity,
                             edge_utilization, resource_type).location

    @staticmethod
    def _defuzzify(local_weight: float, other_weight: float,
                   cloud_weight: float) -> ExecutionLocation:
        if local_weight >= other_weight and local_weight >= cloud_weight:
            return ExecutionLocation.LOCAL_EDGE
        if other_weight >= local_weight and other_weight >= cloud_weight:
            return ExecutionLocation.OTHER_EDGE
        return ExecutionLocation.CLOUD
