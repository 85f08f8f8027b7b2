"""
Interactive CLI Demo
=====================
Try the gateway's tool routing in your terminal, with no LLM and no API key.

Every message goes through Orchestrator.handle_chat_message: the intent
classifier picks a catalog tool, the tool runs against the in-memory sample
store, and the formatted answer is printed.

Usage:
    python demo.py

Suggested messages:

  Products:
    "¿Tenés pizza disponible?"          → search_products {q: "pizza"}
    "qué productos tienen"              → get_products
    "cuánto cuesta el lomito"           → search_products {q: "lomito"}

  Customers:
    "buscá el cliente llamado Juan"     → search_customers {q: "Juan"}
    "listame los clientes"              → get_customers

  Orders:
    "pedidos pendientes"                → get_orders {status: "pendiente"}
    "pedidos desde 01/06/2025 hasta 15/06/2025"

  No tool:
    "hola"                              → clarification prompt

Type 'tools' to list the catalog, 'quit' to exit.
"""
import asyncio

from dotenv import load_dotenv

from gateway import GatewayError, build_gateway, configure_logging, get_settings


async def main():
    load_dotenv()
    settings = get_settings()
    configure_logging("WARNING")

    print("\n" + "=" * 60)
    print("  E-commerce Data Gateway")
    print("  Intent routing + MCP tool catalog demo")
    print("=" * 60)
    print("\nSample store: pizzas, empanadas, lomitos, bebidas")
    print("Customers:    Juan Pérez, María González, Carlos López")
    print("\nType 'tools' to list the catalog, 'quit' to exit.\n")

    gateway = build_gateway(settings)

    try:
        while True:
            try:
                user_input = input("Vos: ").strip()
            except (EOFError, KeyboardInterrupt):
                print("\n\n¡Hasta luego!")
                break

            if not user_input:
                continue

            if user_input.lower() == "quit":
                print("\nGateway: ¡Gracias por tu consulta! Hasta luego.")
                break

            if user_input.lower() == "tools":
                for tool in gateway.dispatcher.list_tools():
                    print(f"  {tool.name:<20} {tool.description}")
                print()
                continue

            try:
                result = await gateway.handle_chat_message(user_input)
            except GatewayError as e:
                print(f"\nGateway: [error] {e.message}\n")
                continue

            print("\nGateway:")
            for line in result["response"].split("\n"):
                print(f"  {line}")
            if result["tool_used"]:
                print(f"\n  [tool: {result['tool_used']} {result['parameters']}]")
            print()

    finally:
        await gateway.aclose()


if __name__ == "__main__":
    asyncio.run(main())
