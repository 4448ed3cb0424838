"""
Reverse Minesweeper agents module.

Provides the agent interface and the move selector:
- BaseAgent: Abstract interface over a Grid
- SweeperAgent: Certain deductions, probabilities and memory guidance
"""
from .base_agent import Action, ActionKind, BaseAgent, Move, MoveKind
from .sweeper_agent import AgentPhase, SweeperAgent

__all__ = [
    "Action",
    "ActionKind",
    "BaseAgent",
    "Move",
    "MoveKind",
    "AgentPhase",
    "SweeperAgent",
]
