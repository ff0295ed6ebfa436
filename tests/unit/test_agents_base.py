import pytest
from pydantic import ValidationError

from agent_swarm.agents.base import Agent, AgentConfig
from agent_swarm.errors import AgentConfigurationError
from agent_swarm.tools.base import FunctionTool, HandoverTool, handover_to


def test_instructions_render_against_context():
    agent = Agent(name="greeter", instructions=lambda context: f"Greet {context['name']}.")
    assert agent.get_instructions({"name": "Ada"}) == "Greet Ada."
    assert Agent(name="plain", instructions="Be kind.").get_instructions({}) == "Be kind."


def test_config_overrides_are_validated():
    agent = Agent(name="a", config=AgentConfig(model="gpt-4o"), max_turns=2, tool_choice="required")
    assert agent.config.model == "gpt-4o"
    assert agent.config.max_turns == 2
    assert agent.config.tool_choice == "required"

    with pytest.raises(ValidationError):
        Agent(name="b", max_turns=0)


def test_handover_tool_without_executor_is_rejected():
    with pytest.raises(AgentConfigurationError):
        Agent(name="a", tools={"transfer": HandoverTool(description="Transfer", execute=None)})


def test_tool_of_unknown_type_is_rejected():
    agent = Agent(name="a")
    with pytest.raises(AgentConfigurationError):
        agent.register_tool("weird", object())


def test_handover_helper_targets_agent():
    target = Agent(name="target")
    agent = Agent(
        name="a",
        tools={
            "go": handover_to(target),
            "noop": FunctionTool(description="Nothing", execute=lambda args: None),
        },
    )
    assert agent.tools["go"].type == "handover"
    assert agent.tools["go"].execute({}).agent is target
    assert agent.ref.name == "a"
    assert agent.ref.id == agent.id
