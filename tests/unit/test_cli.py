import asyncio
import logging

from agent_swarm.agents.base import Agent
from agent_swarm.engine.scripted import ScriptedEngine, ScriptedStep, tool_call
from agent_swarm.entrypoints.cli import answer, build_swarm, interactive
from agent_swarm.tools.base import FunctionTool
from agent_swarm.utils.settings import AppConfig, LLMConfig, SwarmConfig
from agent_swarm.workflows.orchestrator import Swarm


def offline_config():
    return AppConfig(llm=LLMConfig(provider="scripted"), swarm=SwarmConfig(name="support", max_turns=5))


def test_build_swarm_from_config():
    swarm = build_swarm(offline_config(), customer="Ada")
    assert isinstance(swarm.engine, ScriptedEngine)
    assert swarm.queen.name == "triage"
    assert swarm.max_turns == 5
    assert swarm.get_context()["customer_name"] == "Ada"


def test_answer_prints_agent_and_text(capsys):
    swarm = build_swarm(offline_config())
    asyncio.run(answer(swarm, "hello", stream=False))
    assert "[triage]\nYou said: hello" in capsys.readouterr().out


def test_streamed_answer_prints_agent_and_text(capsys):
    swarm = build_swarm(offline_config())
    asyncio.run(answer(swarm, "hello", stream=True))
    out = capsys.readouterr().out
    assert "[triage]" in out
    assert "You said: hello" in out


def test_streamed_failure_is_logged_once(capsys, caplog):
    def explode(args):
        raise RuntimeError("backend down")

    agent = Agent(name="solo", tools={"explode": FunctionTool(description="Boom", execute=explode)})
    swarm = Swarm(queen=agent, engine=ScriptedEngine([ScriptedStep(tool_calls=[tool_call("explode")])]))

    with caplog.at_level(logging.ERROR):
        asyncio.run(answer(swarm, "hello", stream=True))

    assert [record.getMessage() for record in caplog.records] == ["Generation failed: backend down"]


def test_interactive_session_answers_until_exit(monkeypatch, capsys):
    replies = iter(["hello", "", "exit"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))
    swarm = build_swarm(offline_config())

    asyncio.run(interactive(swarm, stream=False))

    assert capsys.readouterr().out.count("You said: hello") == 1
    assert len(swarm.get_messages()) == 2
