#!/usr/bin/env python3
"""
EdgeFogSim entry point
Runs one offloading simulation from the layered configuration
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent
sys.path.insert(0, str(project_root))

from config.unified_config import get_config, parse_args, print_config, validate_config
from evaluation.system_simulator import EdgeFogSimulator
from models.exceptions import EdgeSimError
from utils.logger import setup_logging


def print_banner():
    banner = """
================================================================
        EdgeFogSim - fuzzy task offloading for IoT
================================================================
    """
    print(banner)


def main(argv=None) -> int:
    args = parse_args(argv)
    cfg = get_config(args, validate=False)

    log = setup_logging(cfg.logging.level, cfg.logging.log_file)

    problems = validate_config(cfg)
    for problem in problems:
        log.warning(f"Configuration: {problem}")

    if args.export_config:
        if args.export_config.endswith('.json'):
            cfg.to_json(args.export_config)
        else:
            cfg.to_yaml(args.export_config)
        log.info(f"Configuration exported to {args.export_config}")

    if args.dry_run:
        print_config(cfg)
        return 0

    print_banner()
    try:
        simulator = EdgeFogSimulator(cfg)
        simulator.run()
        simulator.print_final_statistics()
        output = simulator.save_results(args.output)
    except EdgeSimError as exc:
        log.error(f"Simulation aborted: {exc}")
        return 1
    except ValueError as exc:
        log.error(f"Invalid configuration: {exc}")
        return 2

    print(f"Results written to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
