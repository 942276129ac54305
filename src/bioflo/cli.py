"""
CLI entry point for BioFlo.

Provides a simple command-line chat session for trying the gateway.
"""

from __future__ import annotations

import asyncio

from bioflo.config import get_settings
from bioflo.gateway import build_gateway
from bioflo.logging import get_logger
from bioflo.providers import Turn

logger = get_logger(__name__)


async def interactive_session():
    """Run an interactive chat session against the gateway."""
    settings = get_settings()

    print("\n" + "=" * 60)
    print("BioFlo - your safety-first wellness coach")
    print("=" * 60)

    configured = [p for p in ("openai", "anthropic", "gemini") if settings.validate_api_key(p)]
    if not configured:
        print("\nNote: no provider API key configured.")
        print("   Set OPENAI_API_KEY or ANTHROPIC_API_KEY in .env for generated replies\n")

    gateway = build_gateway(settings)
    history: list[Turn] = []

    print("Type 'quit' or 'exit' to end the session.")
    print("-" * 60 + "\n")

    while True:
        try:
            user_input = input("You: ").strip()

            if not user_input:
                continue

            if user_input.lower() in ["quit", "exit", "bye"]:
                print("\nTake care!\n")
                break

            print("\nBioFlo: ", end="", flush=True)
            streamed: list[str] = []
            reply = None
            async for event in gateway.stream_events(user_input, history):
                if event.get("type") == "token":
                    streamed.append(event["value"])
                    print(event["value"], end="", flush=True)
                elif event.get("type") == "error":
                    print(event["error"])
                elif "reply" in event:
                    reply = event["reply"]

            if reply is not None:
                if not streamed:
                    print(reply)
                elif reply != "".join(streamed).strip():
                    print("\n\n[Revised for safety]\n" + reply)
                history.append(Turn(role="user", content=user_input))
                history.append(Turn(role="assistant", content=reply))
            print()

        except KeyboardInterrupt:
            print("\n\nTake care!\n")
            break
        except Exception as e:
            logger.error("session_error", error=str(e))
            print("\nSomething went wrong. Let's try again.\n")


def main():
    """Main entry point."""
    asyncio.run(interactive_session())


if __name__ == "__main__":
    main()
