from __future__ import annotations

from dialogue_instruct import get_instructions, get_opening_utterance, phrase
from models import Language, OrderItem, Product


def _items():
    return [
        OrderItem(
            product = Product(id = "P1", name = "Tomate saladette", unit_of_measure = "kg",
                              description_for_ai = "red, firm"),
            quantity = 20,
        ),
        OrderItem(product = "Cebolla blanca", notes = "sin tallo"),
    ]


def test_opening_lists_items_in_order() -> None:
    opening = get_opening_utterance(_items(), Language.ES)
    assert "20 kg Tomate saladette y Cebolla blanca (nota: sin tallo)" in opening


def test_english_opening() -> None:
    opening = get_opening_utterance([OrderItem(product = "Milk", quantity = 3)], Language.EN)
    assert opening.startswith("Hello")
    assert "3 Milk" in opening


def test_instructions_carry_items_marker_and_language() -> None:
    text = get_instructions(_items(), Language.EN, "[END_CALL]")
    assert "1. Tomate saladette, quantity 20 kg (red, firm)" in text
    assert "2. Cebolla blanca, notes: sin tallo" in text
    assert "Speak English" in text
    assert '[END_CALL]{"confirmationId"' in text


def test_unknown_language_falls_back_to_spanish() -> None:
    assert phrase("fr", "closing") == phrase(Language.ES, "closing")
