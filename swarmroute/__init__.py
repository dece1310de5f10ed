"""SwarmRoute - ticket-to-execution decision engine.

Decides which agents should work on a ticket and how they should be
organized:
- Ticket classification (type, keywords, intent)
- Multi-factor complexity scoring
- Explicit and implicit dependency detection
- Completion time estimation
- Swarm topology selection
- Pattern learning from past outcomes
- Agent routing with manual override
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
