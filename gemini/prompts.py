from __future__ import annotations

"""Prompt builders and response schemas for world, card and card-art generation.

Schemas use the Gemini OpenAPI subset (uppercase type names) and are passed as
`response_schema` so the text model answers with JSON of exactly this shape.
"""

import json
from typing import Any, Dict, Optional, Sequence

from cards.types import CARD_TYPES, KEYWORDS, MECHANICS

MIN_RESOURCE_TYPES = 3
MAX_RESOURCE_TYPES = 5

# Card art prompts only carry the head of the world description.
IMAGE_WORLD_CONTEXT_CHARS = 200

WORLD_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "worldName": {"type": "STRING"},
        "worldDescription": {"type": "STRING"},
        "resourceTypes": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["worldName", "worldDescription", "resourceTypes"],
}

_ABILITY_PARAMS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "target": {"type": "STRING"},
        "amount": {"type": "INTEGER"},
        "count": {"type": "INTEGER"},
        "power": {"type": "INTEGER"},
        "toughness": {"type": "INTEGER"},
        "keyword": {"type": "STRING", "enum": list(KEYWORDS)},
        "resource": {"type": "STRING"},
        "scope": {"type": "STRING"},
        "player": {"type": "STRING"},
    },
}

CARD_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING"},
        "cardType": {"type": "STRING", "enum": [t for t in CARD_TYPES if t != "land"]},
        "manaCost": {"type": "STRING"},
        "power": {"type": "INTEGER"},
        "toughness": {"type": "INTEGER"},
        "abilities": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "mechanicId": {"type": "STRING", "enum": list(MECHANICS)},
                    "params": _ABILITY_PARAMS_SCHEMA,
                    "flavoredText": {"type": "STRING"},
                },
                "required": ["mechanicId", "params", "flavoredText"],
            },
        },
        "flavorText": {"type": "STRING"},
        "imagePrompt": {"type": "STRING"},
    },
    "required": ["name", "cardType", "manaCost", "abilities", "flavorText", "imagePrompt"],
}


def build_world_prompt(player1_themes: Sequence[str], player2_themes: Sequence[str]) -> str:
    return (
        "You are a creative world-builder for a fantasy card game. Two players drafted the themes below. "
        "Create one unified, cohesive world that incorporates ALL of them.\n\n"
        f"Player 1's themes: {', '.join(player1_themes)}\n"
        f"Player 2's themes: {', '.join(player2_themes)}\n\n"
        "The world description should weave every theme into a single setting, give it a distinct aesthetic "
        "and atmosphere, and suggest the creatures, magic and conflicts that live there.\n"
        f"Also invent {MIN_RESOURCE_TYPES}-{MAX_RESOURCE_TYPES} unique resource (mana) types that fit this world "
        '(like "Magma Essence" or "Abyssal Coral").\n\n'
        "Return ONLY a JSON object with keys: worldName, worldDescription (2-3 vivid paragraphs), resourceTypes."
    )


def build_card_prompt(
    *,
    world_description: str,
    themes: Sequence[str],
    resource_types: Sequence[str],
    field_context: Optional[str] = None,
) -> str:
    example = {
        "name": "Card Name",
        "cardType": "creature",
        "manaCost": "2 Magma Essence, 1 Abyssal Coral",
        "power": 3,
        "toughness": 4,
        "abilities": [
            {
                "mechanicId": "DEAL_DAMAGE",
                "params": {"target": "creature", "amount": 2},
                "flavoredText": "Deal 2 damage to target creature",
            }
        ],
        "flavorText": "Evocative quote or description",
        "imagePrompt": "Detailed visual description for image generation",
    }
    lines = [
        "You are a card designer for a trading card game. Generate one balanced, interesting card "
        "that fits the world and the player's themes.",
        "",
        f"WORLD: {world_description}",
        "",
        f"PLAYER'S THEMES: {', '.join(themes)}",
        "",
        f"AVAILABLE RESOURCE TYPES: {', '.join(resource_types)}",
        "",
        f"AVAILABLE ABILITY MECHANICS (choose from these): {', '.join(MECHANICS)}",
        f"AVAILABLE KEYWORDS (for GRANT_KEYWORD): {', '.join(KEYWORDS)}",
    ]
    if field_context:
        lines += ["", f"CURRENT FIELD STATE: {field_context}"]
    lines += [
        "",
        "Rules:",
        "- Card types: creature, instant, sorcery, enchantment, artifact.",
        "- Creatures have power and toughness; omit them for every other type.",
        "- The mana cost uses the world's resource types.",
        "- Higher cost means stronger effects or stats.",
        "",
        "Return ONLY a JSON object shaped like this example:",
        json.dumps(example, ensure_ascii=False),
    ]
    return "\n".join(lines)


def build_image_prompt(image_prompt: str, world_description: str = "") -> str:
    return (
        "Fantasy trading card game art, high quality illustration:\n"
        f"{image_prompt}\n\n"
        "Style: epic fantasy card art, detailed, vibrant colors, dramatic lighting.\n"
        f"World context: {(world_description or '')[:IMAGE_WORLD_CONTEXT_CHARS]}"
    )
