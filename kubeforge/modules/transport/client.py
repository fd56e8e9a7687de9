"""
Control plane client for the KubeForge agent.

Thin request/response wrapper around the three agent endpoints:
registration, command long-poll and result submission.
"""

import logging
from typing import Any, Optional

import requests
from pydantic import ValidationError

from kubeforge.config import AgentConfig
from kubeforge.modules.api import (
    Command,
    CommandResult,
    PollResponse,
    RegistrationRequest,
    RegistrationResponse,
    ResultSubmission,
)

logger = logging.getLogger("kubeforge.transport")


class ControlPlaneError(Exception):
    """Base class for control plane communication failures."""


class RegistrationError(ControlPlaneError):
    """Registration was rejected or could not be completed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TransportError(ControlPlaneError):
    """A request to the control plane failed at the transport level."""


class ControlPlaneClient:
    """HTTP client for the control plane agent API."""

    REGISTER_PATH = "/api/agent/register"
    POLL_PATH = "/api/agent/poll"
    RESULT_PATH = "/api/agent/result"

    def __init__(self, config: AgentConfig, session: Optional[requests.Session] = None,
                 request_timeout: float = 10.0):
        """
        Initialize control plane client.

        Args:
            config: Agent configuration (endpoint, token, TLS settings)
            session: Optional requests session, mainly for tests
            request_timeout: Timeout for registration and result submission
        """
        self.config = config
        self.api_url = config.api_url
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self.headers = {"Authorization": f"Bearer {config.token}"}

    def register(self, cluster_name: str, cluster_version: Optional[str] = None) -> RegistrationResponse:
        """
        Register this agent with the control plane.

        Args:
            cluster_name: Human readable cluster label
            cluster_version: Kubernetes version, if it could be determined

        Returns:
            RegistrationResponse with the assigned agent identity

        Raises:
            RegistrationError: Non-2xx response or unusable body
            TransportError: Connection level failure
        """
        request = RegistrationRequest(
            token=self.config.token,
            cluster_name=cluster_name,
            cluster_version=cluster_version,
        )
        response = self._send(
            "post",
            self.REGISTER_PATH,
            json=request.to_wire(),
            timeout=self.request_timeout,
        )

        if not response.ok:
            raise RegistrationError(
                f"Registration failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            registration = RegistrationResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RegistrationError(f"Registration returned an invalid body: {e}",
                                    status_code=response.status_code, body=response.text)

        logger.info(
            f"Registered as agent {registration.agent_id}, connection {registration.connection_id}"
        )
        return registration

    def poll(self, agent_id: str) -> Optional[Command]:
        """
        Long-poll for the next command.

        The control plane holds the request open until a command is
        available or its own timeout elapses.

        Args:
            agent_id: Identity returned by registration

        Returns:
            The next Command, or None when there is no work

        Raises:
            TransportError: Connection failure, non-2xx status or bad body
        """
        response = self._send(
            "get",
            self.POLL_PATH,
            params={"agentId": agent_id},
            headers=self.headers,
            timeout=self.config.poll_timeout,
        )

        if not response.ok:
            raise TransportError(f"Poll failed: {response.status_code}")

        try:
            return PollResponse.model_validate(response.json()).command
        except (ValueError, ValidationError) as e:
            raise TransportError(f"Poll returned an invalid body: {e}")

    def submit_result(self, agent_id: str, command_id: str, result: CommandResult) -> None:
        """
        Report a command result.

        Args:
            agent_id: Identity returned by registration
            command_id: Id of the command the result belongs to
            result: Terminal result of the command

        Raises:
            TransportError: Connection failure or non-2xx status
        """
        submission = ResultSubmission(
            agent_id=agent_id,
            command_id=command_id,
            status=result.status,
            result=result.result,
            error=result.error,
        )
        response = self._send(
            "post",
            self.RESULT_PATH,
            json=submission.to_wire(),
            headers=self.headers,
            timeout=self.request_timeout,
        )

        if not response.ok:
            raise TransportError(f"Failed to submit result: {response.status_code}")

    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Issue a request, mapping requests exceptions to TransportError."""
        url = f"{self.api_url}{path}"
        try:
            return self.session.request(method, url, verify=self.config.verify, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method.upper()} {path} failed: {e}") from e

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "ControlPlaneClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
