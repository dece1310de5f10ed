"""Assignment stages for SwarmRoute.

Turns analysis signals into an execution plan:
- TopologySelector: decision tree over task factors
- PatternMatcher: lexical matching of learned patterns and outcome tracking
- AgentRouter: manual override, learned assignment, or analysis-based agents

Usage:
    from swarmroute.assignment import AgentRouter, TopologySelector

    assignment = await AgentRouter(memory).assign_agents(analysis)
"""

from swarmroute.assignment.parsing import Strategy, StrategyParser
from swarmroute.assignment.topology import (
    TopologyFactors,
    TopologyDecision,
    TopologyInfo,
    SwitchResult,
    TopologySelector,
    TOPOLOGY_INFO,
)
from swarmroute.assignment.patterns import (
    Pattern,
    PatternWithSimilarity,
    PerformanceRecord,
    PatternRateUpdate,
    MatchOptions,
    MatchResult,
    PatternMatcher,
)
from swarmroute.assignment.router import (
    AgentConfig,
    AgentAssignment,
    ManualOverride,
    StoredPattern,
    AgentRouter,
    AGENT_CAPABILITIES,
)

__all__ = [
    # Parsing
    "Strategy",
    "StrategyParser",
    # Topology
    "TopologyFactors",
    "TopologyDecision",
    "TopologyInfo",
    "SwitchResult",
    "TopologySelector",
    "TOPOLOGY_INFO",
    # Patterns
    "Pattern",
    "PatternWithSimilarity",
    "PerformanceRecord",
    "PatternRateUpdate",
    "MatchOptions",
    "MatchResult",
    "PatternMatcher",
    # Router
    "AgentConfig",
    "AgentAssignment",
    "ManualOverride",
    "StoredPattern",
    "AgentRouter",
    "AGENT_CAPABILITIES",
]
