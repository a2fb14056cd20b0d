#!/usr/bin/env python3
"""
FleetWatch Fleet Collector Script

Usage:
    python scripts/collect.py [--config CONFIG_FILE] [--once] [--test-auth]
"""

import sys
import argparse
import traceback
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleetwatch.tracking import Config, FleetCollector, create_auth_from_config


def main():
    """Main entry point for fleet collector."""
    parser = argparse.ArgumentParser(
        description="FleetWatch Collector - Track takeoffs and landings of your fleet"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll cycle and exit",
    )
    parser.add_argument(
        "--test-auth",
        action="store_true",
        help="Check the configured OpenSky credentials and exit",
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = Config(args.config)
    except Exception as e:
        print(f"❌ Error loading configuration: {e}")
        sys.exit(1)

    if args.test_auth:
        auth = create_auth_from_config(config)
        if auth is None:
            print("ℹ️  No credentials configured, anonymous access will be used")
            sys.exit(0)
        sys.exit(0 if auth.test_authentication() else 1)

    # Create and run collector
    try:
        collector = FleetCollector(config)
        if args.once:
            collector.print_header()
            collector.run_single_iteration()
        else:
            collector.run()
    except KeyboardInterrupt:
        print("\n👋 Collector stopped by user")
    except Exception as e:
        print(f"❌ Fatal error: {e}")
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
