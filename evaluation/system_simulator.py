"""
Edge/fog offloading simulator

Discrete tick loop driving devices, the orchestrator and the resource
nodes. Each tick:
1. every device may generate a task, which is decided and routed at once
2. every node processes at most one queued task (edges first, then cloud)
3. due virtual-time events fire (node recoveries, migration transitions),
   then finished tasks give back their tokens and checkpoints
4. periodic maintenance: service refresh, checkpoints, failure injection
5. devices move and are re-bound to their nearest edge node
6. after warm-up, a statistics record is appended to the history
"""
import json
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from communication.models import DEVICE_TYPE_PROTOCOLS, PROTOCOL_INTERFERENCE, get_protocol
from config import UnifiedConfig, config as default_config
from core.backend import CloudNodeSpec, EdgeNodeSpec, LocalBackend
from core.event_queue import EventQueue
from decision.fuzzy_controller import FuzzyLogicController
from decision.offloading_manager import EdgeOrchestrator
from migration.migration_manager import ServiceMigrationManager
from models.data_structures import AppProfile, Location, SimulationArea
from models.edge_node import HIGH_TIER
from models.energy_model import BatteryModel, LinearEnergyModel
from models.iot_device import IoTDevice
from services.fault_tolerance import FaultToleranceLevel, FaultToleranceManager
from services.security_manager import SecurityManager
from services.service_discovery import ServiceDiscovery
from utils.metrics import SeriesRecorder, StatisticsAggregator
from utils.unified_time_manager import UnifiedTimeManager

logger = logging.getLogger(__name__)

HIGH_UTILIZATION_PCT = 80.0
LOW_BATTERY_REPORT_LEVEL = 0.2


class EdgeFogSimulator:
    """
    Complete offloading simulation

    A single run seed drives everything: the simulator's own generator and
    one generator per device are spawned from the same SeedSequence, so two
    runs with the same configuration produce identical histories.
    """

    def __init__(self, cfg: Optional[UnifiedConfig] = None):
        self.config = cfg if cfg is not None else default_config
        if self.config.experiment.simulation_time < 0:
            raise ValueError("simulation_time must be >= 0")

        self.advanced = self.config.experiment.advanced_features
        self.area = SimulationArea(self.config.topology.area_width, self.config.topology.area_height)
        self.clock = UnifiedTimeManager(self.config.experiment.tick_duration_ms)
        self.event_queue = EventQueue()
        self.statistics = StatisticsAggregator()
        self.series = SeriesRecorder()

        seed_sequence = np.random.SeedSequence(self.config.experiment.random_seed)
        sim_seed, services_seed, *device_seeds = seed_sequence.spawn(
            self.config.topology.num_devices + 2
        )
        self.rng = np.random.default_rng(sim_seed)
        self._services_rng = np.random.default_rng(services_seed)
        self._device_seeds = device_seeds

        self.service_registry: Optional[ServiceDiscovery] = None
        self.fault_tolerance: Optional[FaultToleranceManager] = None
        self.security_manager: Optional[SecurityManager] = None
        self.migration_manager: Optional[ServiceMigrationManager] = None
        self.backend: Optional[LocalBackend] = None
        self.orchestrator: Optional[EdgeOrchestrator] = None
        self.devices: List[IoTDevice] = []

        self.current_tick = 0
        self.history: List[Dict[str, Any]] = []
        self.final_statistics: Dict[str, Any] = {}
        self._is_setup = False

    # ------------------------------------------------------------------
    # setup
    # ------------------------------------------------------------------
    def setup(self):
        """Create services, nodes, the orchestrator and the device population"""
        if self._is_setup:
            return
        cfg = self.config

        self.service_registry = ServiceDiscovery()
        if self.advanced:
            self.fault_tolerance = FaultToleranceManager(FaultToleranceLevel.CHECKPOINTING)
            if cfg.security.enabled:
                self.security_manager = SecurityManager(rng=self._services_rng)
        self.migration_manager = ServiceMigrationManager(
            service_registry=self.service_registry,
            event_queue=self.event_queue,
            tick_duration_ms=cfg.experiment.tick_duration_ms,
            preparation_time_ms=cfg.migration.preparation_time_ms,
            transfer_time_ms=cfg.migration.transfer_time_ms,
            rng=self._services_rng,
        )

        self.backend = LocalBackend(
            energy_model=LinearEnergyModel(cfg.energy.energy_consumption_rate),
            service_registry=self.service_registry,
            fault_tolerance=self.fault_tolerance,
        )
        edge_nodes = [self.backend.create_edge_node(self._edge_spec(i))
                      for i in range(cfg.topology.num_edge_nodes)]
        cloud_node = self.backend.create_cloud_node(CloudNodeSpec(
            node_id="cloud", name="Cloud",
            mips=cfg.cloud.vm_mips, ram_mb=cfg.cloud.vm_ram, storage_mb=cfg.cloud.vm_storage,
            wan_bandwidth=cfg.cloud.wan_bandwidth, wan_latency_ms=cfg.cloud.wan_latency_ms,
        ))

        self.orchestrator = EdgeOrchestrator(
            edge_nodes, cloud_node,
            fuzzy_controller=FuzzyLogicController(),
            backend=self.backend,
            migration_manager=self.migration_manager,
            service_registry=self.service_registry,
            fault_tolerance=self.fault_tolerance,
            statistics=self.statistics,
            advanced=self.advanced,
        )

        profiles = [
            AppProfile(cpu, net, delay) for cpu, net, delay in zip(
                cfg.task.task_length, cfg.task.input_size, cfg.task.delay_sensitivity
            )
        ]
        for device_id in range(cfg.topology.num_devices):
            device = self._create_device(device_id, profiles)
            self.devices.append(device)
            self.orchestrator.register_device(device)

        logger.info("Setup complete: %d edge nodes, 1 cloud, %d devices, %d services",
                    len(edge_nodes), len(self.devices), len(self.service_registry))
        self._is_setup = True

    def _edge_spec(self, index: int) -> EdgeNodeSpec:
        edge = self.config.edge
        resource_type = (index % 2) + 1
        high = resource_type == HIGH_TIER
        return EdgeNodeSpec(
            node_id=f"edge_{index}",
            name=f"Edge-{index}",
            location=Location(100.0 * (index + 1), 100.0 * (index + 1)),
            mips=edge.vm_mips * (edge.high_tier_mips_factor if high else 1.0),
            ram_mb=int(edge.vm_ram * (edge.high_tier_ram_factor if high else 1.0)),
            storage_mb=edge.vm_storage,
            resource_type=resource_type,
        )

    def _create_device(self, device_id: int, profiles: List[AppProfile]) -> IoTDevice:
        cfg = self.config
        location = Location(self.rng.uniform(0.0, self.area.width),
                            self.rng.uniform(0.0, self.area.height))
        type_index = int(self.rng.integers(1, len(DEVICE_TYPE_PROTOCOLS) + 1))
        protocol = get_protocol(DEVICE_TYPE_PROTOCOLS[type_index])
        interference = PROTOCOL_INTERFERENCE[protocol.type] * (0.8 + 0.4 * self.rng.random())

        return IoTDevice(
            device_id=device_id,
            device_type=f"Device-Type-{type_index}",
            mobility_speed=cfg.topology.device_speed,
            location=location,
            rng=np.random.default_rng(self._device_seeds[device_id]),
            protocol=protocol,
            signal_interference=interference,
            battery=BatteryModel(cfg.energy.battery_capacity_mah, cfg.energy.battery_voltage),
            energy_model=LinearEnergyModel(cfg.energy.energy_consumption_rate),
            app_profiles=profiles,
            transmission_power_mw=cfg.energy.transmission_power_mw,
        )

    # ------------------------------------------------------------------
    # tick loop
    # ------------------------------------------------------------------
    def run(self) -> List[Dict[str, Any]]:
        """Run the whole horizon and return the per-tick history"""
        self.setup()
        horizon = self.config.experiment.simulation_time
        logger.info("Running %d ticks (warm-up %d, seed %d)", horizon,
                    self.config.experiment.warm_up_period, self.config.experiment.random_seed)
        for tick in range(horizon):
            self.run_simulation_step(tick)
        self.final_statistics = self.get_final_statistics()
        return self.history

    def run_simulation_step(self, tick: int) -> Optional[Dict[str, Any]]:
        """Execute one tick; returns the statistics record when one was collected"""
        cfg = self.config
        self.current_tick = tick
        self.clock.set_step(tick)
        now = self.clock.get_simulation_time()

        for device in self.devices:
            self._step_device(device, tick, now)

        self.orchestrator.process_pending_tasks(now)
        self.event_queue.run_due(tick)
        self._release_finished_tasks()

        if self.advanced:
            self._run_maintenance(tick, now)

        interval = max(1, cfg.topology.location_check_interval)
        if tick % interval == 0:
            for device in self.devices:
                device.update_location(self.area)
                self.orchestrator.register_device(device)

        if tick >= cfg.experiment.warm_up_period:
            record = self.collect_statistics(tick)
            self.history.append(record)
            return record
        return None

    def _step_device(self, device: IoTDevice, tick: int, now: float):
        cfg = self.config
        if self.advanced and device.battery_level <= cfg.energy.low_battery_threshold:
            return

        if device.rng.random() < cfg.task.generation_probability:
            app_type = int(device.rng.integers(cfg.task.num_app_types))
            metadata = None
            if self.security_manager is not None:
                metadata = {
                    'security_level': 'high' if cfg.security.security_level > 1 else 'standard',
                    'encryption_required': bool(device.rng.random() < 0.5),
                }
            task = device.generate_task(app_type, now, self.security_manager, metadata)
            self.statistics.record_task_generated(device.protocol.name)

            decision = self.orchestrator.make_offloading_decision(task, device)
            routed = self.orchestrator.process_task(task, device, decision, tick)
            if not routed and self.security_manager is not None and task.security_token:
                self.security_manager.revoke_token(task.security_token)

        if self.advanced:
            device.update_battery_for_idle(cfg.energy.idle_time_per_tick_ms)

    def _release_finished_tasks(self) -> int:
        """Revoke tokens and drop checkpoints of tasks that finished since the last tick"""
        finished = self.backend.collect_results()
        for task in finished:
            if self.security_manager is not None and task.security_token:
                self.security_manager.revoke_token(task.security_token)
            if self.fault_tolerance is not None:
                self.fault_tolerance.release_task(task.task_id)
        return len(finished)

    def _run_maintenance(self, tick: int, now: float):
        services = self.config.services
        if tick > 0 and tick % max(1, services.service_discovery_interval) == 0:
            self.refresh_service_discovery()

        if tick > 0 and tick % max(1, services.checkpoint_interval) == 0:
            checkpointed = sum(
                self.fault_tolerance.checkpoint_queued_tasks(node.task_queue, now)
                for node in self.orchestrator.edge_nodes
            )
            logger.debug("Tick %d: checkpointed %d queued tasks", tick, checkpointed)

        if (tick >= self.config.experiment.warm_up_period
                and tick % max(1, services.failure_check_interval) == 0):
            self.maybe_inject_failure(tick)

    def refresh_service_discovery(self) -> Dict[str, Any]:
        computation = self.orchestrator.find_services("COMPUTATION")
        storage = self.orchestrator.find_services("STORAGE")
        busy = [n.name for n in self.orchestrator.edge_nodes
                if n.cpu_utilization > HIGH_UTILIZATION_PCT]
        logger.info("Services: %d computation, %d storage; highly utilized edges: %s",
                    len(computation), len(storage), ", ".join(busy) or "none")
        return {'computation': len(computation), 'storage': len(storage), 'busy_edges': busy}

    def maybe_inject_failure(self, tick: int) -> Optional[str]:
        """With the configured probability fail one healthy edge and schedule its recovery"""
        services = self.config.services
        if self.rng.random() >= services.fault_tolerance_probability:
            return None
        healthy = [n for n in self.orchestrator.edge_nodes if n.is_healthy]
        if not healthy:
            return None
        node = healthy[int(self.rng.integers(len(healthy)))]
        self.orchestrator.simulate_node_failure(node.node_id, self.clock.get_simulation_time())

        recovery_tick = tick + int(self.rng.integers(services.min_recovery_ticks,
                                                     services.max_recovery_ticks + 1))
        self.event_queue.schedule(recovery_tick, "node_recovery", self._recover_node,
                                  node_id=node.node_id, recovery_tick=recovery_tick)
        logger.info("Tick %d: %s failed, recovery scheduled at tick %d",
                    tick, node.name, recovery_tick)
        return node.node_id

    def _recover_node(self, node_id: str, recovery_tick: int):
        self.orchestrator.recover_node(node_id, recovery_tick * self.clock.tick_duration_ms)

    # ------------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------------
    def collect_statistics(self, tick: int) -> Dict[str, Any]:
        stats = self.orchestrator.get_system_statistics()
        record = {
            'time_step': tick,
            'local_edge_service_time_ms': stats['local_edge_service_time_ms'],
            'other_edge_service_time_ms': stats['other_edge_service_time_ms'],
            'cloud_service_time_ms': stats['cloud_service_time_ms'],
            'avg_edge_utilization_pct': stats['avg_edge_utilization_pct'],
            'cloud_utilization_pct': stats['cloud_utilization_pct'],
        }
        if self.advanced:
            levels = [d.battery_level for d in self.devices]
            record.update({
                'avg_battery_level': float(np.mean(levels)) if levels else 0.0,
                'low_battery_devices': sum(1 for lv in levels if lv < LOW_BATTERY_REPORT_LEVEL),
                'security_incidents': stats['security_incidents'],
                'successful_migrations': stats['successful_migrations'],
                'failed_migrations': stats['failed_migrations'],
                'recovered_tasks': stats['recovered_tasks'],
                'total_edge_energy_j': stats['total_edge_energy_j'],
                'protocol_usage': self.protocol_usage(),
            })
        self.series.record({k: v for k, v in record.items()
                            if k != 'time_step' and isinstance(v, (int, float))})
        return record

    def protocol_usage(self) -> Dict[str, int]:
        """Number of devices per wireless protocol type"""
        return dict(Counter(device.protocol.type for device in self.devices))

    def get_final_statistics(self) -> Dict[str, Any]:
        stats = self.orchestrator.get_system_statistics()
        stats['ticks_run'] = self.current_tick + 1 if self.config.experiment.simulation_time else 0
        stats['tasks_completed'] = sum(len(n.completed_tasks) for n in self.backend.nodes.values())
        stats['tasks_failed'] = sum(len(n.failed_tasks) for n in self.backend.nodes.values())
        stats['tasks_queued'] = sum(n.queue_size for n in self.backend.nodes.values())
        stats['migration_sessions'] = dict(self.migration_manager.migration_stats)
        stats['protocol_usage'] = self.protocol_usage()
        stats['tasks_per_protocol'] = self.statistics.tasks_per_protocol
        stats['series_summary'] = self.series.summary()
        return stats

    def save_results(self, file_path: Optional[str] = None) -> str:
        """Write metadata, configuration, history and final statistics as JSON"""
        if not self.final_statistics:
            self.final_statistics = self.get_final_statistics()
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        if file_path is None:
            results_dir = Path(self.config.experiment.results_dir)
            file_path = str(results_dir / f"simulation_results_{timestamp}.json")
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)

        results = {
            'metadata': {
                'timestamp': timestamp,
                'random_seed': self.config.experiment.random_seed,
                'simulation_time': self.config.experiment.simulation_time,
                'warm_up_period': self.config.experiment.warm_up_period,
                'advanced_features': self.advanced,
                'num_devices': len(self.devices),
                'num_edge_nodes': len(self.orchestrator.edge_nodes),
            },
            'config': self.config.to_dict(),
            'history': self.history,
            'final_statistics': self.final_statistics,
        }
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(results, f, indent=2, ensure_ascii=False, default=str)
        logger.info("Results saved to %s", file_path)
        return file_path

    def print_final_statistics(self):
        stats = self.final_statistics or self.get_final_statistics()
        print("=" * 60)
        print("Simulation results")
        print("=" * 60)
        print(f"Local edge service time:  {stats['local_edge_service_time_ms']:.2f} ms")
        print(f"Other edge service time:  {stats['other_edge_service_time_ms']:.2f} ms")
        print(f"Cloud service time:       {stats['cloud_service_time_ms']:.2f} ms")
        print(f"Average edge utilization: {stats['avg_edge_utilization_pct']:.2f} %")
        print(f"Cloud utilization:        {stats['cloud_utilization_pct']:.2f} %")
        print(f"Tasks generated / completed / failed: {stats['tasks_generated']} / "
              f"{stats['tasks_completed']} / {stats['tasks_failed']}")
        if self.advanced:
            print(f"Successful migrations:    {stats['successful_migrations']}")
            print(f"Failed migrations:        {stats['failed_migrations']}")
            print(f"Security incidents:       {stats['security_incidents']}")
            print(f"Recovered tasks:          {stats['recovered_tasks']}")
            print(f"Energy-aborted tasks:     {stats['energy_aborted_tasks']}")
            print(f"Total edge energy:        {stats['total_edge_energy_j']:.2f} J")
            print(f"Protocol usage:           {stats['protocol_usage']}")
        print("=" * 60)
