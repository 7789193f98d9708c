from typing import Dict, List

from models import Language, OrderItem

LANGUAGE_NAMES: Dict[Language, str] = {
    Language.ES: "Spanish",
    Language.EN: "English",
}

PHRASES: Dict[Language, Dict[str, str]] = {
    Language.ES: {
        "opening": (
            "Hola, soy un asistente de IA y llamo en nombre de nuestro cliente para hacer un pedido. "
            "Necesitamos lo siguiente: {items}. ¿Podría confirmarnos el pedido?"
        ),
        "apology": "Disculpe, tenemos un problema técnico. Le volveremos a llamar más tarde. Gracias.",
        "closing": "Muchas gracias por su ayuda. ¡Adiós!",
        "no_response": "No hemos podido escucharle. Le volveremos a llamar más tarde. ¡Adiós!",
        "separator": ", ",
        "last_separator": " y ",
        "note": "nota",
    },
    Language.EN: {
        "opening": (
            "Hello, I am an AI assistant calling on behalf of our client to place an order. "
            "We need the following: {items}. Could you confirm the order?"
        ),
        "apology": "Sorry, we are having a technical problem. We will call you back later. Thank you.",
        "closing": "Thank you very much for your help. Goodbye!",
        "no_response": "We could not hear you. We will call you back later. Goodbye!",
        "separator": ", ",
        "last_separator": " and ",
        "note": "note",
    },
}

SYSTEM_INSTRUCTION = """
You are a purchasing agent on a live phone call with a supplier, placing an order on behalf of a client.
The order, in this exact sequence:
{item_lines}

Your goal is to get the order accepted and to obtain two things from the supplier:
a confirmation id for the order and an estimated delivery time.

Rules:
- Speak {language_name} unless the supplier switches language; then answer in their language.
- You are being converted to speech. Keep every reply to one or two short sentences, no lists, no markup.
- Answer questions about the items using the order above. Do not invent products, quantities or prices.
- When you have both the confirmation id and the delivery estimate, or the supplier clearly cannot take the order,
  end the call. Your final reply must start with the literal token {marker} followed immediately by a JSON object
  with the keys "confirmationId" and "deliveryEstimate" (use null for anything you did not get),
  followed by a short closing statement to say to the supplier.
  Example: {marker}{{"confirmationId": "AX789-B", "deliveryEstimate": "3-5 business days"}} Thank you, goodbye!
- Never use {marker} in any other reply.
"""

def phrase(language: Language, key: str) -> str:
    return PHRASES.get(language, PHRASES[Language.ES])[key]

def describe_item(item: OrderItem, language: Language) -> str:
    parts = []
    if item.quantity is not None:
        parts.append(str(item.quantity))
        if item.unit_of_measure:
            parts.append(item.unit_of_measure)
    parts.append(item.product_name)
    text = " ".join(parts)
    if item.notes:
        text += f" ({phrase(language, 'note')}: {item.notes})"
    return text

def join_items(items: List[OrderItem], language: Language) -> str:
    described = [describe_item(item, language) for item in items]
    if len(described) == 1:
        return described[0]
    head = phrase(language, "separator").join(described[:-1])
    return f"{head}{phrase(language, 'last_separator')}{described[-1]}"

def get_opening_utterance(items: List[OrderItem], language: Language) -> str:
    return phrase(language, "opening").format(items = join_items(items, language))

def get_instructions(items: List[OrderItem], language: Language, marker: str) -> str:
    item_lines = []
    for position, item in enumerate(items, start = 1):
        line = f"{position}. {item.product_name}"
        if item.quantity is not None:
            line += f", quantity {item.quantity}"
            if item.unit_of_measure:
                line += f" {item.unit_of_measure}"
        if item.description:
            line += f" ({item.description})"
        if item.notes:
            line += f", notes: {item.notes}"
        item_lines.append(line)
    return SYSTEM_INSTRUCTION.format(
        item_lines = "\n".join(item_lines),
        language_name = LANGUAGE_NAMES.get(language, "Spanish"),
        marker = marker,
    ).strip()
