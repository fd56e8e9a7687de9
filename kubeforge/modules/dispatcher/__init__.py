"""
Dispatcher Module - Black Box Interface

Purpose: Execute control plane commands against the cluster
Interface: CommandDispatcher.dispatch(command) -> CommandResult
Hidden: Payload validation, per-item failure isolation, result shaping
"""

from .dispatcher import CommandDispatcher, filter_lines

__all__ = ["CommandDispatcher", "filter_lines"]
