#!/usr/bin/env python3
"""
Entry Point for the AI Tutor Orchestration Engine

Starts an interactive terminal chat against a tutor session.

Usage:
    python run.py

Commands inside the chat:
    /mode manual|router|collaborative|random
    /agent <name>          set the active agent (manual mode)
    /style parallel|sequential|debate|random
    /agents                list available agents
    /clear                 clear the conversation with the active agent
    /quit

Environment Variables:
    - TUTOR_USER_ID: Learner id for the session (default: 1)
    - OPENAI_API_KEY / ANTHROPIC_API_KEY: Completion provider credentials
"""

import asyncio
import os

from tutor_engine.config import settings
from tutor_engine.exceptions import TutorEngineError
from tutor_engine.logging_config import setup_logging
from tutor_engine.models.collaboration import CollaborativeSettings, CollaborativeStyle
from tutor_engine.models.session import TutorMode
from tutor_engine.agents.dispatcher import create_tutor_service


async def chat(user_id: int) -> None:
    service = create_tutor_service()
    overview = await service.get_or_create_session(user_id)
    collaborative = CollaborativeSettings()

    print(f"Session {overview.session.id} ({overview.session.mode.value} mode)")
    print("Agents: " + ", ".join(a.name for a in overview.agents))

    while True:
        try:
            line = input("\nyou> ").strip()
        except EOFError:
            break
        if not line:
            continue

        try:
            if line == "/quit":
                break
            elif line == "/agents":
                for agent in await service.get_available_agents():
                    print(f"  {agent.name:<16} {agent.display_name:<16} {agent.description or ''}")
            elif line.startswith("/mode "):
                session = await service.update_mode(user_id, TutorMode(line.split(maxsplit=1)[1]))
                print(f"Mode: {session.mode.value}")
            elif line.startswith("/style "):
                collaborative = CollaborativeSettings(
                    style=CollaborativeStyle(line.split(maxsplit=1)[1])
                )
                print(f"Style: {collaborative.style.value}")
            elif line.startswith("/agent "):
                agent = service.registry.get_by_name(line.split(maxsplit=1)[1])
                if agent is None:
                    print("Unknown agent")
                    continue
                await service.set_active_agent(user_id, agent.id)
                print(f"{agent.display_name}: {agent.welcome_message or 'Hi!'}")
            elif line == "/clear":
                session = (await service.get_or_create_session(user_id)).session
                if session.active_agent_id is not None:
                    await service.clear_conversation(user_id, session.active_agent_id)
                    print("Conversation cleared")
            else:
                result = await service.send_message(
                    user_id, None, line, collaborative_settings=collaborative
                )
                if result.routing_info is not None:
                    info = result.routing_info
                    print(f"[{info.selected_agent.display_name}: {info.reason} ({info.confidence:.2f})]")
                print(result.assistant_message.content)
        except (TutorEngineError, ValueError) as e:
            print(f"Error: {e}")

    await service.interaction_logger.close()


def main():
    """Run the interactive tutor chat."""
    setup_logging()

    user_id = int(os.environ.get("TUTOR_USER_ID", "1"))

    print(f"""
    ============================================================
      AI Tutor Orchestration Engine
      Environment: {settings.env}
      Provider: {settings.app_llm_provider}
      Routing: {settings.routing_strategy}
    ============================================================
    """)

    asyncio.run(chat(user_id))


if __name__ == "__main__":
    main()
