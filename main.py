"""
AI Car Navigator - Main Entry Point
A conversational used-car finder over the bundled catalog.
"""

import asyncio
import os

from dotenv import load_dotenv

from car_navigator.catalog import Catalog
from car_navigator.generative import ChatModelBackend
from car_navigator.logging_config import configure_logging
from car_navigator.models import ConversationTurn
from car_navigator.orchestrator import QueryResolver


def build_resolver() -> QueryResolver:
    catalog = Catalog.load(os.getenv("CATALOG_PATH") or None)
    backend = ChatModelBackend(
        api_key=os.getenv("LLM_API_KEY", ""),
        model=os.getenv("LLM_MODEL", "llama-3.3-70b-versatile"),
        base_url=os.getenv("LLM_BASE_URL", "https://api.groq.com/openai/v1"),
    )
    return QueryResolver(
        catalog=catalog,
        backend=backend,
        backend_timeout=float(os.getenv("BACKEND_TIMEOUT", "30")),
    )


async def chat_loop(resolver: QueryResolver) -> None:
    history: list[ConversationTurn] = []

    while True:
        user_input = input("\nUser: ")
        if user_input.lower() in ["exit", "quit", "bye"]:
            print("またのご利用をお待ちしています！")
            break

        if not user_input.strip():
            continue

        resolution = await resolver.resolve(user_input, history, session_id="cli")
        print(f"Navigator: {resolution.message}")
        for vehicle in resolution.vehicles:
            print(f"  🚗 {vehicle.name} | {vehicle.year}年 | {vehicle.mileage:,}km | {vehicle.price:g}万円")
        if resolution.suggested_replies:
            print("  → " + " / ".join(resolution.suggested_replies))

        history.append(ConversationTurn(role="user", text=user_input))
        history.append(ConversationTurn(role="model", text=resolution.message))


def main():
    """Main function to run the navigator."""
    load_dotenv()
    configure_logging(service_name="car-navigator-cli")

    print("AI Car Navigator\n" + "=" * 50)
    print("Type 'exit' to quit\n")

    asyncio.run(chat_loop(build_resolver()))


if __name__ == "__main__":
    main()
