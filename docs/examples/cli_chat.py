import asyncio
import sys
from typing import Set

from tool_relay import RelayConfig, ToolRelay, setup_logging
from tool_relay.relay_core import CONFIRM_REQUEST_TOPIC, TOOL_EVENT_TOPIC, ConfirmationRequest, ToolEvent


async def main() -> None:
    """
    Main function to run the CLI chat against the configured provider and MCP endpoint.
    """
    setup_logging()
    config = RelayConfig.from_env()
    if not config.api_key:
        print(f"Error: no API key found for provider '{config.provider}'.")
        return

    printed = 0

    def on_flush(text: str) -> None:
        nonlocal printed
        sys.stdout.write(text[printed:])
        sys.stdout.flush()
        printed = len(text)

    prompts: Set["asyncio.Task[None]"] = set()

    async with ToolRelay(config, on_flush=on_flush) as relay:

        async def ask(request: ConfirmationRequest) -> None:
            answer = await asyncio.to_thread(input, f"\nRun {request.name} {request.args}? [y/N] ")
            relay.respond(request.id, answer.strip().lower() in ("y", "yes"))

        def on_confirm(request: ConfirmationRequest) -> None:
            task = asyncio.get_running_loop().create_task(ask(request))
            prompts.add(task)
            task.add_done_callback(prompts.discard)

        def on_tool(event: ToolEvent) -> None:
            detail = event.output or event.error or ""
            print(f"\n[{event.name}: {event.phase}] {detail}")

        relay.bus.subscribe(CONFIRM_REQUEST_TOPIC, on_confirm)
        relay.bus.subscribe(TOOL_EVENT_TOPIC, on_tool)

        tools = await relay.load_tools()
        print(f"Using {config.provider} ({config.model}) with {len(tools)} tool(s) from {config.mcp_url}.")

        print("\nStart chatting! Type 'exit' or 'quit' to stop.")
        while True:
            user_input = (await asyncio.to_thread(input, "\nYou: ")).strip()
            if user_input.lower() in ["exit", "quit"]:
                print("Goodbye!")
                break

            if not user_input:
                continue

            printed = 0
            print("Assistant: ", end="")
            result = await relay.session.send(user_input)
            if result.error:
                print(f"\nAn error occurred: {result.error}")


if __name__ == "__main__":
    asyncio.run(main())
