"""Command-line interface for SwarmRoute.

CLI Commands:
    swarmroute analyze --title T     Run a ticket through the decision pipeline
    swarmroute topology -c N -n N    Topology decision from explicit factors
    swarmroute topologies            List the available topologies
    swarmroute estimate -c N         Quick hours estimate
    swarmroute record --title T      Store a completed assignment as a pattern

Key Components:
    - cli: Main CLI application (click-based)
    - setup_logging: Console and JSON Lines logging
"""

from swarmroute.interfaces.cli.app import cli, main

__all__ = ["cli", "main"]
