#!/usr/bin/env python3
"""
KubeForge agent control loop.

Registers with the control plane, then long-polls for commands,
executes each one through the dispatcher and reports the result.
Commands run strictly one at a time.
"""

import logging
import threading
import time
from enum import Enum
from typing import Optional

from kubeforge.config import AgentConfig
from kubeforge.modules.api import Command, CommandResult
from kubeforge.modules.cluster import ResourceProvider
from kubeforge.modules.dispatcher import CommandDispatcher
from kubeforge.modules.transport import ControlPlaneClient, TransportError

logger = logging.getLogger("kubeforge.agent")


class AgentState(str, Enum):
    """Lifecycle states of the control loop."""

    UNREGISTERED = "unregistered"
    REGISTERING = "registering"
    POLLING = "polling"
    EXECUTING = "executing"
    REPORTING = "reporting"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class Agent:
    """Fetch-execute-report loop bound to one control plane registration."""

    def __init__(
        self,
        config: AgentConfig,
        client: ControlPlaneClient,
        dispatcher: CommandDispatcher,
        provider: Optional[ResourceProvider] = None,
    ):
        """
        Initialize agent.

        Args:
            config: Agent configuration (cluster name, retry timings)
            client: Control plane client
            dispatcher: Executes received commands
            provider: Used to report the cluster version at registration
        """
        self.config = config
        self.client = client
        self.dispatcher = dispatcher
        self.provider = provider

        self.state = AgentState.UNREGISTERED
        self._agent_id: Optional[str] = None
        self._shutdown = threading.Event()

    @property
    def agent_id(self) -> Optional[str]:
        """Identity assigned at registration; None until registered."""
        return self._agent_id

    def stop(self) -> None:
        """Request shutdown; the in-flight command still gets reported."""
        if not self._shutdown.is_set():
            logger.info("Shutdown requested")
        self._shutdown.set()

    def run(self) -> None:
        """
        Main agent loop.

        Blocks until stop() is called. Registration is retried until it
        succeeds; afterwards the agent polls, executes and reports.
        """
        logger.info(
            f"KubeForge agent starting - cluster: {self.config.cluster_name}, API: {self.config.api_url}"
        )

        if self.register():
            while not self._shutdown.is_set():
                self.run_once()

        self.state = AgentState.SHUTTING_DOWN
        logger.info("Agent shutting down")
        self.state = AgentState.STOPPED

    def register(self) -> bool:
        """
        Register with the control plane, retrying until success or shutdown.

        Returns:
            True once registered, False if shutdown came first
        """
        self.state = AgentState.REGISTERING
        cluster_version = self._cluster_version()

        while not self._shutdown.is_set():
            try:
                registration = self.client.register(self.config.cluster_name, cluster_version)
            except Exception as e:
                logger.error(
                    f"Registration failed, retrying in {self.config.register_retry_delay:g}s: {e}"
                )
                self._shutdown.wait(self.config.register_retry_delay)
                continue

            self._agent_id = registration.agent_id
            self.state = AgentState.POLLING
            return True

        return False

    def run_once(self) -> None:
        """One poll cycle: fetch a command, execute it, report it."""
        self.state = AgentState.POLLING
        try:
            command = self.client.poll(self._agent_id)
        except TransportError as e:
            logger.error(f"Poll error: {e}")
            self._shutdown.wait(self.config.poll_error_backoff)
            return

        if command is None:
            logger.debug("No command available")
            return

        result = self.execute(command)
        self.report(command, result)

    def execute(self, command: Command) -> CommandResult:
        """
        Execute a command; never raises.

        Args:
            command: Command received from the control plane

        Returns:
            The command's result, failed if dispatch raised
        """
        self.state = AgentState.EXECUTING
        logger.info(f"Executing command {command.id}: {command.type}")
        start_time = time.time()

        try:
            result = self.dispatcher.dispatch(command)
        except Exception as e:
            logger.error(f"Command {command.id} failed: {e}")
            result = CommandResult.failed(str(e) or type(e).__name__)

        execution_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Command {command.id} {result.status.value} in {execution_time_ms}ms")
        return result

    def report(self, command: Command, result: CommandResult) -> None:
        """Submit a result once; failures are logged and dropped."""
        self.state = AgentState.REPORTING
        try:
            self.client.submit_result(self._agent_id, command.id, result)
        except Exception as e:
            logger.error(f"Failed to submit result for {command.id}: {e}")

    def _cluster_version(self) -> Optional[str]:
        if self.provider is None:
            return None
        try:
            return self.provider.server_version()
        except Exception as e:
            logger.warning(f"Could not fetch cluster version: {e}")
            return None
