#!/usr/bin/env python3
"""Example script to run a pedestrian crossing simulation.

This script demonstrates how to use the crossing simulator.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from pedestrian_crossing.config import load_config
from pedestrian_crossing.simulation import CrossingSimulator


def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description='Run pedestrian crossing simulation'
    )
    parser.add_argument(
        '--scenario',
        type=str,
        default='scenarios/scenario_01_crossing.yaml',
        help='Path to scenario configuration file'
    )
    parser.add_argument(
        '--steps',
        type=int,
        default=None,
        help='Number of simulation ticks (overrides config)'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output directory (overrides config)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )
    parser.add_argument(
        '--animate',
        action='store_true',
        help='Generate animation (overrides config)'
    )
    parser.add_argument(
        '--danger-policy',
        type=str,
        default=None,
        choices=['ignore', 'hold'],
        help='Behaviour of a crossing pedestrian when a moving vehicle is close'
    )

    args = parser.parse_args()

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=args.log_level
    )

    # Silence stray standard logging from third-party libraries
    logging.getLogger().setLevel(logging.WARNING)
    for lib in ['matplotlib', 'PIL', 'shapely']:
        logging.getLogger(lib).setLevel(logging.WARNING)

    logger.info(f"Loading scenario from {args.scenario}")
    config = load_config(args.scenario)

    if args.output is not None:
        config.output_path = args.output
    if args.animate:
        config.visualization_enabled = True
    if args.danger_policy is not None:
        config.pedestrian.danger_policy = args.danger_policy
        logger.info(f"Overriding danger policy to: {args.danger_policy}")

    logger.info("Creating crossing simulator")
    simulator = CrossingSimulator(config)

    logger.info("Starting simulation")
    results = simulator.run(n_steps=args.steps)

    logger.info("Saving results")
    metrics = simulator.save_results()

    logger.info("=" * 60)
    logger.info("SIMULATION SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total ticks: {len(results)}")
    if results:
        logger.info(f"Total time: {results[-1].time / 1000.0:.2f}s")
    for ped in simulator.pedestrians:
        logger.info(f"{ped.pedestrian_id}: state={ped.state.name}, "
                    f"direction={ped.direction:+d}, progress={ped.progress:.2f}")
    logger.info(f"Completed crossings: {metrics.get('completed_crossings', 0)}")
    logger.info("=" * 60)
    logger.success("Simulation complete!")


if __name__ == '__main__':
    main()
