"""
Unit tests for the agent control loop.

Tests cover:
- Registration retry and cluster version reporting
- Poll / execute / report cycle
- Backoff on transport errors only
- Shutdown behaviour
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from kubeforge.modules.agent import Agent, AgentState
from kubeforge.modules.api import Command, CommandResult, CommandStatus, RegistrationResponse
from kubeforge.modules.dispatcher import CommandDispatcher
from kubeforge.modules.transport import ControlPlaneClient, RegistrationError, TransportError

pytestmark = pytest.mark.agent


def registration(agent_id="agent-42"):
    return RegistrationResponse(agent_id=agent_id, connection_id="conn-1")


@pytest.fixture
def dispatcher(fake_provider):
    return CommandDispatcher(fake_provider)


@pytest.fixture
def agent(agent_config, mock_client, dispatcher, fake_provider):
    mock_client.register.return_value = registration()
    return Agent(agent_config, mock_client, dispatcher, provider=fake_provider)


def stop_after(agent, calls):
    """Side effect helper: return values in order, then stop the agent."""
    iterator = iter(calls)

    def _next(*args, **kwargs):
        try:
            value = next(iterator)
        except StopIteration:
            agent.stop()
            return None
        if isinstance(value, Exception):
            raise value
        return value

    return _next


class TestRegistration:
    def test_initial_state(self, agent):
        assert agent.state == AgentState.UNREGISTERED
        assert agent.agent_id is None

    def test_registers_with_cluster_version(self, agent, mock_client):
        assert agent.register() is True

        mock_client.register.assert_called_once_with("test-cluster", "v1.29.2")
        assert agent.agent_id == "agent-42"
        assert agent.state == AgentState.POLLING

    def test_cluster_version_is_best_effort(self, agent, mock_client, fake_provider):
        fake_provider.version = None

        agent.register()

        mock_client.register.assert_called_once_with("test-cluster", None)

    def test_retries_until_success(self, agent, mock_client):
        mock_client.register.side_effect = [
            RegistrationError("Registration failed: 503 unavailable", status_code=503),
            TransportError("connection refused"),
            registration("agent-7"),
        ]

        with patch.object(agent._shutdown, "wait", wraps=agent._shutdown.wait) as wait:
            assert agent.register() is True

        assert mock_client.register.call_count == 3
        assert wait.call_count == 2
        wait.assert_called_with(agent.config.register_retry_delay)
        assert agent.agent_id == "agent-7"

    def test_shutdown_during_registration(self, agent, mock_client):
        def fail_and_stop(*args):
            agent.stop()
            raise TransportError("connection refused")

        mock_client.register.side_effect = fail_and_stop

        assert agent.register() is False
        assert agent.agent_id is None


class TestPollCycle:
    def test_no_command_does_not_back_off(self, agent, mock_client):
        agent.register()
        mock_client.poll.return_value = None

        with patch.object(agent._shutdown, "wait") as wait:
            agent.run_once()

        wait.assert_not_called()
        mock_client.poll.assert_called_once_with("agent-42")
        mock_client.submit_result.assert_not_called()

    def test_transport_error_backs_off(self, agent, mock_client):
        agent.register()
        mock_client.poll.side_effect = TransportError("Poll failed: 502")

        with patch.object(agent._shutdown, "wait") as wait:
            agent.run_once()

        wait.assert_called_once_with(agent.config.poll_error_backoff)
        mock_client.submit_result.assert_not_called()

    def test_command_is_executed_and_reported(self, agent, mock_client, fake_provider):
        agent.register()
        fake_provider.namespaces = [{"metadata": {"name": "default"}}]
        mock_client.poll.return_value = Command(id="cmd-1", type="list_namespaces")

        agent.run_once()

        mock_client.submit_result.assert_called_once()
        agent_id, command_id, result = mock_client.submit_result.call_args[0]
        assert (agent_id, command_id) == ("agent-42", "cmd-1")
        assert result.status == CommandStatus.COMPLETED
        assert result.result == ["default"]
        assert agent.state == AgentState.REPORTING

    def test_unknown_command_reported_as_failed(self, agent, mock_client):
        agent.register()
        mock_client.poll.return_value = Command(id="cmd-2", type="reboot")

        agent.run_once()

        result = mock_client.submit_result.call_args[0][2]
        assert result.status == CommandStatus.FAILED
        assert result.error == "Unknown command type: reboot"

    def test_malformed_payload_reported_as_failed(self, agent, mock_client):
        agent.register()
        mock_client.poll.return_value = Command(id="cmd-3", type="get_manifests", payload={})

        agent.run_once()

        result = mock_client.submit_result.call_args[0][2]
        assert result.status == CommandStatus.FAILED
        assert "namespace" in result.error

    def test_non_mapping_payload_gets_one_failed_result(self, agent_config, dispatcher):
        session = MagicMock(spec=requests.Session)
        poll_response = MagicMock(ok=True, status_code=200)
        poll_response.json.return_value = {
            "command": {"id": "cmd-1", "type": "list_resources", "payload": ["default"]}
        }
        session.request.side_effect = [poll_response, MagicMock(ok=True, status_code=200)]
        client = ControlPlaneClient(agent_config, session=session)
        agent = Agent(agent_config, client, dispatcher)
        agent._agent_id = "agent-42"

        agent.run_once()

        methods = [c[0][0] for c in session.request.call_args_list]
        assert methods == ["get", "post"]
        body = session.request.call_args_list[1][1]["json"]
        assert body["commandId"] == "cmd-1"
        assert body["status"] == "failed"
        assert body["error"]

    def test_report_failure_is_swallowed(self, agent, mock_client):
        agent.register()
        mock_client.poll.return_value = Command(id="cmd-4", type="list_namespaces")
        mock_client.submit_result.side_effect = TransportError("Failed to submit result: 500")

        agent.run_once()

        assert mock_client.submit_result.call_count == 1


class TestExecute:
    @pytest.mark.parametrize("error", [RuntimeError("boom"), KeyError("x"), ValueError()])
    def test_dispatch_exception_becomes_failed_result(self, agent_config, mock_client, error):
        dispatcher = MagicMock()
        dispatcher.dispatch.side_effect = error
        agent = Agent(agent_config, mock_client, dispatcher)

        result = agent.execute(Command(id="c", type="list_namespaces"))

        assert result.status == CommandStatus.FAILED
        assert result.error

    def test_every_command_yields_one_result(self, agent):
        for type_ in ["list_namespaces", "list_resources", "nope", "get_logs"]:
            result = agent.execute(Command(id="c", type=type_))
            assert isinstance(result, CommandResult)
            assert result.status in (CommandStatus.COMPLETED, CommandStatus.FAILED)


class TestRun:
    def test_run_loops_until_stopped(self, agent, mock_client):
        mock_client.poll.side_effect = stop_after(agent, [
            None,
            Command(id="cmd-1", type="list_namespaces"),
            TransportError("Poll failed: 503"),
            Command(id="cmd-2", type="reboot"),
        ])

        agent.run()

        assert mock_client.register.call_count == 1
        assert mock_client.poll.call_count == 5
        reported = [call.args[1] for call in mock_client.submit_result.call_args_list]
        assert reported == ["cmd-1", "cmd-2"]
        assert agent.state == AgentState.STOPPED

    def test_stop_before_run_skips_polling(self, agent, mock_client):
        agent.stop()

        agent.run()

        mock_client.register.assert_not_called()
        mock_client.poll.assert_not_called()
        assert agent.state == AgentState.STOPPED

    def test_stop_during_execution_still_reports(self, agent_config, mock_client):
        dispatcher = MagicMock()
        agent = Agent(agent_config, mock_client, dispatcher)
        mock_client.register.return_value = registration()
        mock_client.poll.return_value = Command(id="cmd-9", type="list_namespaces")

        def dispatch_and_stop(command):
            agent.stop()
            return CommandResult.completed([])

        dispatcher.dispatch.side_effect = dispatch_and_stop

        agent.run()

        assert mock_client.poll.call_count == 1
        mock_client.submit_result.assert_called_once()
        assert mock_client.submit_result.call_args[0][1] == "cmd-9"

    def test_no_reregistration_after_poll_errors(self, agent, mock_client):
        mock_client.poll.side_effect = stop_after(agent, [
            TransportError("Poll failed: 401"),
            TransportError("Poll failed: 401"),
        ])

        agent.run()

        assert mock_client.register.call_count == 1
