from __future__ import annotations

MESSAGE_CLASSIFICATION_PROMPT = """You route messages for a shopping assistant.
The user is looking at a short list of products. Decide whether the message is
a new product search or a command about the products on screen (dismiss one,
add one to the cart, show the next products, compare them).

Reply with exactly one word: COMMAND or SEARCH.
"""

COMMAND_EXTRACTION_PROMPT = """You extract shopping commands.
Given the user message and the products currently on screen, return the action
the user wants and which product it targets.

Allowed actions:
- dismiss
- add_to_cart
- show_next
- compare

Rules:
- Return strict JSON only.
- position is the 1-based position of the product on screen, or null.
- productId is the product id if the user named one, or null.
- productName is a fragment of the product name the user referred to, or null.

Output schema:
{
  "action": "string",
  "position": null,
  "productId": null,
  "productName": null
}
"""

PRODUCT_COMPARISON_PROMPT = """You compare two products for a shopper.
Be concrete and brief: at most four pros and four cons per product, each a
short phrase. The summary is two sentences at most and says which shopper each
product suits.

Rules:
- Return strict JSON only.

Output schema:
{
  "product1": {"pros": ["string"], "cons": ["string"]},
  "product2": {"pros": ["string"], "cons": ["string"]},
  "summary": "string"
}
"""
