"""
Agent Module - Black Box Interface

Purpose: Own the agent lifecycle
Interface: Agent.run(), Agent.stop()
Hidden: Registration retry, long-poll loop, backoff, result reporting
"""

from .agent import Agent, AgentState

__all__ = ["Agent", "AgentState"]
