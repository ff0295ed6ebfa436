from __future__ import annotations

import argparse
import asyncio
import logging

from agent_swarm.agents.support import build_support_agents
from agent_swarm.engine.factory import build_engine
from agent_swarm.telemetry.logging import setup_logging
from agent_swarm.utils.settings import AppConfig, load_config
from agent_swarm.workflows.orchestrator import Swarm

logger = logging.getLogger(__name__)


def build_swarm(config: AppConfig, customer: str | None = None) -> Swarm:
    agents = build_support_agents()
    context = {"customer_name": customer} if customer else {}
    return Swarm.from_config(
        config.swarm,
        queen=agents["triage"],
        engine=build_engine(config.llm),
        default_model=config.llm.model,
        initial_context=context,
    )


async def answer(swarm: Swarm, message: str, stream: bool) -> None:
    if not stream:
        result = await swarm.generate_text(message)
        print(f"\n[{result.active_agent.name}]\n{result.text}")
        return

    live = swarm.stream_text(message)
    current = None
    failed = False
    async for part in live.full_stream:
        if part.type == "text-delta":
            if part.agent.name != current:
                current = part.agent.name
                print(f"\n[{current}]")
            print(part.text_delta, end="", flush=True)
        elif part.type == "tool-result" and part.handed_over_to is not None:
            print(f"\n-- {part.agent.name} -> {part.handed_over_to.name}")
        elif part.type == "error":
            logger.error("Generation failed: %s", part.error)
            failed = True
    print()
    if not failed:
        await live.finish_reason


async def interactive(swarm: Swarm, stream: bool) -> None:
    while True:
        try:
            message = (await asyncio.to_thread(input, "\n> ")).strip()
        except EOFError:
            return
        if message in {"exit", "quit"}:
            return
        if message:
            await answer(swarm, message, stream)


def main() -> None:
    parser = argparse.ArgumentParser(description="Talk to a multi-agent support swarm.")
    parser.add_argument("message", nargs="?", help="Message to send; omit with --interactive.")
    parser.add_argument("--env", default="base", help="Config environment (base, dev, prod, ...).")
    parser.add_argument("--stream", action="store_true", help="Stream output as it is generated.")
    parser.add_argument("--interactive", action="store_true", help="Keep the conversation open.")
    parser.add_argument("--customer", help="Customer name placed in the swarm context.")
    args = parser.parse_args()
    if not args.message and not args.interactive:
        parser.error("a message is required unless --interactive is given")

    config = load_config(args.env)
    setup_logging(config.logging.level)
    swarm = build_swarm(config, customer=args.customer)

    if args.interactive:
        asyncio.run(interactive(swarm, args.stream))
    else:
        asyncio.run(answer(swarm, args.message, args.stream))


if __name__ == "__main__":
    main()
