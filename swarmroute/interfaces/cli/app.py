"""SwarmRoute CLI Application.

Command-line access to the decision engine.

Commands:
    analyze: Run one ticket through the full decision pipeline
    topology: Run the topology decision tree over explicit factors
    topologies: List the available topologies
    estimate: Quick hours estimate from complexity and type
    record: Store a completed ticket's assignment as a learned pattern

Usage:
    swarmroute analyze --title "Add OAuth login" --label security
    swarmroute topology --complexity 6 --agents 4 --dependencies
    swarmroute record --title "Add OAuth login" --feedback-loops 1

Learned patterns only survive between invocations with the filesystem
memory backend (SWARMROUTE_MEMORY__BACKEND=filesystem).
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click
from pydantic import ValidationError

from swarmroute import __version__
from swarmroute.analysis.time_estimation import (
    format_duration,
    format_range,
    quick_time_estimate,
)
from swarmroute.assignment.router import AgentConfig, ManualOverride
from swarmroute.assignment.topology import TopologyFactors, TopologySelector
from swarmroute.config.settings import get_settings
from swarmroute.core.exceptions import SwarmRouteError
from swarmroute.core.types import AgentRole, TicketInput, TicketType, Topology
from swarmroute.engine import DecisionEngine, TicketDecision
from swarmroute.interfaces.cli.logging import setup_logging


# =============================================================================
# Module Logger
# =============================================================================

logger = logging.getLogger(__name__)


# =============================================================================
# Output Helpers
# =============================================================================

COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
}

TOPOLOGY_CHOICES = click.Choice([t.value for t in Topology])
TYPE_CHOICES = click.Choice([t.value for t in TicketType])


def colorize(text: str, color: str) -> str:
    """Apply ANSI color to text."""
    if not sys.stdout.isatty():
        return text
    return f"{COLORS.get(color, '')}{text}{COLORS['reset']}"


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _section(title: str) -> None:
    click.echo(colorize(title, "cyan"))


def _build_engine(ctx: click.Context) -> DecisionEngine:
    try:
        return DecisionEngine.from_settings(ctx.obj["settings"])
    except SwarmRouteError as e:
        click.echo(colorize(f"ERROR: {e.message}", "red"), err=True)
        raise SystemExit(1)


def _build_override(agents: tuple[str, ...], topology: Optional[str]) -> Optional[ManualOverride]:
    if not agents:
        return None
    configs = [
        AgentConfig(
            type=agent,
            role=AgentRole.COORDINATOR if index == 0 else AgentRole.WORKER,
            priority=len(agents) - index,
        )
        for index, agent in enumerate(agents)
    ]
    return ManualOverride(agents=configs, topology=Topology(topology) if topology else None)


def _display_decision(decision: TicketDecision) -> None:
    analysis = decision.analysis
    click.echo()
    _section("ANALYSIS")
    click.echo(f"  Type: {analysis.ticket_type.value} (confidence {analysis.confidence:.2f})")
    click.echo(f"  Intent: {analysis.intent}")
    click.echo(f"  Keywords: {', '.join(analysis.keywords) or '-'}")
    click.echo(f"  Labels: {', '.join(analysis.suggested_labels) or '-'}")
    click.echo()

    _section("COMPLEXITY")
    click.echo(f"  Score: {decision.complexity.score}/10 (confidence {decision.complexity.confidence:.2f})")
    click.echo()

    dependencies = decision.dependencies
    _section("DEPENDENCIES")
    click.echo(f"  {dependencies.summary()}")
    if dependencies.blocked_by:
        click.echo(f"  Blocked by: {', '.join(dependencies.blocked_by)}")
    if dependencies.blocks:
        click.echo(f"  Blocks: {', '.join(dependencies.blocks)}")
    click.echo()

    estimate = decision.time_estimate
    _section("TIME ESTIMATE")
    click.echo(f"  {format_duration(estimate.hours)} ({format_range(estimate.range)})")
    click.echo(f"  Based on: {estimate.based_on.value}, confidence {estimate.confidence:.2f}")
    for note in estimate.notes:
        click.echo(colorize(f"  - {note}", "dim"))
    click.echo()

    _section("PATTERNS")
    click.echo(f"  {decision.patterns.recommendation}")
    click.echo()

    assignment = decision.assignment
    _section("ASSIGNMENT")
    for agent in assignment.agents:
        click.echo(f"  [{agent.priority:>3}] {agent.type} ({agent.role.value})")
    source = "learned pattern" if assignment.from_pattern else "analysis"
    click.echo(f"  From: {source}, confidence {assignment.confidence:.2f}")
    click.echo()

    topology = decision.topology
    _section("TOPOLOGY")
    click.echo(f"  {colorize(topology.topology.value, 'bold')} (max {topology.max_agents} agents)")
    click.echo(f"  Coordinator required: {'yes' if topology.coordinator_required else 'no'}")
    click.echo()

    _section("REASONING")
    for reason in decision.reasoning:
        click.echo(f"  - {reason}")
    click.echo()


# =============================================================================
# CLI Group
# =============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="swarmroute")
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write JSON Lines logs to this file",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, log_file: Optional[Path]) -> None:
    """SwarmRoute - decide which agents work on a ticket and how."""
    ctx.ensure_object(dict)
    try:
        settings = get_settings()
    except ValidationError as e:
        click.echo(colorize(f"ERROR: Invalid configuration: {e}", "red"), err=True)
        raise SystemExit(1)
    ctx.obj["settings"] = settings
    ctx.obj["debug"] = debug or settings.debug

    setup_logging("DEBUG" if ctx.obj["debug"] else settings.log_level, log_file)


# =============================================================================
# Commands
# =============================================================================


@cli.command()
@click.option("--title", "-t", required=True, help="Ticket title")
@click.option("--description", "-d", default=None, help="Ticket description")
@click.option("--label", "-l", "labels", multiple=True, help="Ticket label (repeatable)")
@click.option("--priority", type=click.Choice(["low", "medium", "high", "critical"], case_sensitive=False))
@click.option("--project", "project_id", default=None, help="Project id for history lookups")
@click.option("--ticket-id", default=None, help="Stored ticket id for dependency lookups")
@click.option("--agent", "-a", "agents", multiple=True, help="Manual agent override (repeatable)")
@click.option("--override-topology", type=TOPOLOGY_CHOICES, default=None, help="Topology for the manual override")
@click.option("--json", "as_json", is_flag=True, help="Print the decision as JSON")
@click.pass_context
def analyze(
    ctx: click.Context,
    title: str,
    description: Optional[str],
    labels: tuple[str, ...],
    priority: Optional[str],
    project_id: Optional[str],
    ticket_id: Optional[str],
    agents: tuple[str, ...],
    override_topology: Optional[str],
    as_json: bool,
) -> None:
    """Run a ticket through the full decision pipeline."""
    engine = _build_engine(ctx)
    ticket = TicketInput.create(title, description, labels, priority)

    decision = asyncio.run(
        engine.decide(
            ticket,
            ticket_id=ticket_id,
            project_id=project_id,
            manual_override=_build_override(agents, override_topology),
        )
    )

    if as_json:
        echo_json(decision.to_dict())
        return

    click.echo(f"{colorize('Ticket:', 'bold')} {title}")
    _display_decision(decision)


@cli.command()
@click.option("--complexity", "-c", type=click.IntRange(1, 10), required=True, help="Complexity score")
@click.option("--agents", "-n", "agent_count", type=click.IntRange(min=1), required=True, help="Agent count")
@click.option("--dependencies/--no-dependencies", default=False, help="Task has dependencies")
@click.option("--security/--no-security", default=False, help="Task is security related")
@click.option("--consensus/--no-consensus", default=False, help="Agents must reach consensus")
@click.option("--duration", type=click.FloatRange(min=0.0), default=0.0, help="Expected hours")
@click.option("--json", "as_json", is_flag=True, help="Print the decision as JSON")
def topology(
    complexity: int,
    agent_count: int,
    dependencies: bool,
    security: bool,
    consensus: bool,
    duration: float,
    as_json: bool,
) -> None:
    """Select a topology from explicit task factors."""
    decision = TopologySelector().select_topology(
        TopologyFactors(
            complexity=complexity,
            agent_count=agent_count,
            has_dependencies=dependencies,
            is_security_related=security,
            requires_consensus=consensus,
            expected_duration=duration,
        )
    )

    if as_json:
        echo_json(decision.to_dict())
        return

    click.echo(f"{colorize('Topology:', 'bold')} {decision.topology.value}")
    click.echo(f"Max agents: {decision.max_agents}")
    click.echo(f"Confidence: {decision.confidence:.2f}")
    for reason in decision.reasoning:
        click.echo(f"  - {reason}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
def topologies(as_json: bool) -> None:
    """List the available topologies."""
    catalogue = TopologySelector().get_all_topologies()

    if as_json:
        echo_json({t.value: info.to_dict() for t, info in catalogue.items()})
        return

    for topology_type, info in catalogue.items():
        click.echo(f"{colorize(topology_type.value, 'bold')}: {info.name} (up to {info.agent_limit} agents)")
        click.echo(f"  {info.description}")
        click.echo(colorize(f"  Best for: {', '.join(info.best_for)}", "dim"))


@cli.command()
@click.option("--complexity", "-c", type=float, required=True, help="Complexity score")
@click.option("--type", "ticket_type", type=TYPE_CHOICES, default="feature", help="Ticket type")
def estimate(complexity: float, ticket_type: str) -> None:
    """Quick hours estimate without project history."""
    hours = quick_time_estimate(complexity, ticket_type)
    click.echo(f"{hours:g} hours ({format_duration(hours)})")


@cli.command()
@click.option("--title", "-t", required=True, help="Ticket title")
@click.option("--description", "-d", default=None, help="Ticket description")
@click.option("--label", "-l", "labels", multiple=True, help="Ticket label (repeatable)")
@click.option("--feedback-loops", type=click.IntRange(min=0), default=0, help="Times the ticket needed feedback")
@click.pass_context
def record(
    ctx: click.Context,
    title: str,
    description: Optional[str],
    labels: tuple[str, ...],
    feedback_loops: int,
) -> None:
    """Store a completed ticket's assignment as a learned pattern."""
    engine = _build_engine(ctx)
    ticket = TicketInput.create(title, description, labels)

    async def _record() -> bool:
        decision = await engine.decide(ticket)
        return await engine.record_outcome(ticket, decision.assignment, feedback_loops)

    stored = asyncio.run(_record())
    rate = DecisionEngine.success_rate_for(feedback_loops)

    if stored:
        click.echo(colorize(f"Stored pattern with {rate:.0%} success rate", "green"))
    else:
        click.echo(colorize("Pattern could not be stored", "yellow"))
        raise SystemExit(1)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
