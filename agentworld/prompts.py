"""Prompt templates for move decisions and memory generation."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Sequence

from agentworld.schemas import Memory, Observation


# Movement rules stated to the model. Enforcement lives in decision.check_move.
WORLD_RULES: tuple[str, ...] = (
    "You cannot pass through water or mountains",
    "You can only move to one of the 8 adjacent tiles (up, down, left, right, or diagonals)",
    "You must move exactly one tile at a time",
)


@dataclass
class PromptTemplate:
    """Represents a templated prompt with ``{{placeholder}}`` slots."""

    name: str
    system: str
    user: str
    description: str = ""


@dataclass
class RenderedPrompt:
    system: str
    user: str


class PromptLibrary:
    """Container for named prompt templates."""

    def __init__(self) -> None:
        self.templates: Dict[str, PromptTemplate] = {}

    def register(self, template: PromptTemplate) -> None:
        self.templates[template.name] = template

    def get(self, name: str) -> PromptTemplate:
        return self.templates[name]


def render_template(text: str, values: Mapping[str, str]) -> str:
    """Replace ``{{key}}`` placeholders. Double braces keep literal JSON braces intact."""
    for key, value in values.items():
        text = text.replace("{{" + key + "}}", value)
    return text


DEFAULT_PROMPTS = PromptLibrary()

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="decide_move",
        system=(
            "You are an explorer in a new world."
            "{{traits_section}}\n\n"
            "The world has these rules you must follow:\n"
            "{{rules_text}}"
        ),
        user=(
            "Decide where to move next. You can only move to one of the 8 adjacent tiles.\n\n"
            "Output your next move using JSON formatted like this:\n"
            '{"action": "move", "targetTile": {"x": 1, "y": 2}, '
            '"reason": "Brief explanation of why you chose this move."}\n\n'
            "Remember:\n"
            "- You can only move to one of the 8 adjacent tiles (horizontal, vertical, or diagonal)\n"
            "- You must move exactly one tile at a time\n"
            "- You cannot move to water or mountain tiles\n\n"
            "Include a clear reason field explaining your decision-making process based on "
            "your traits and the current surroundings.\n"
            "{{memories_section}}\n"
            "Current Observation:\n"
            "{{observation_json}}"
        ),
        description="Chooses the next move from the current observation.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="generate_memory",
        system=(
            "You take input from the user and generate a memory. Create a single short, "
            "one-sentence memory based on the reasoning provided."
        ),
        user=(
            "Generate a single short, one sentence memory, based on this reasoning:\n\n"
            "{{reasoning}}\n\n"
            "Respond as JSON in the following format:\n"
            '{"memories": ["I see water in the distance"]}\n\n'
            "Focus only on factual observations and genuine preferences/intentions."
        ),
        description="Condenses decision reasoning into one factual sentence.",
    )
)


def observation_json(observation: Observation) -> str:
    """Serialize an observation with sorted keys so identical input yields identical prompts."""
    return json.dumps(observation.to_wire_dict(), indent=2, sort_keys=True)


def build_system_prompt(
    traits: Sequence[str],
    rules: Iterable[str] = WORLD_RULES,
    *,
    library: PromptLibrary = DEFAULT_PROMPTS,
) -> str:
    traits_section = ""
    if traits:
        lines = "\n".join(f"- {trait}" for trait in traits)
        traits_section = f"\n\nYou are guided by these traits:\n{lines}"
    rules_text = "\n".join(f"- {rule}" for rule in rules)
    template = library.get("decide_move")
    return render_template(
        template.system,
        {"traits_section": traits_section, "rules_text": rules_text},
    )


def build_decision_prompt(
    observation: Observation,
    memories: Sequence[Memory] = (),
    *,
    library: PromptLibrary = DEFAULT_PROMPTS,
) -> str:
    memories_section = ""
    if memories:
        lines = "\n".join(f"- {memory.text_content}" for memory in memories)
        memories_section = f"\nThings you remember:\n{lines}\n"
    template = library.get("decide_move")
    return render_template(
        template.user,
        {
            "memories_section": memories_section,
            "observation_json": observation_json(observation),
        },
    )


def build_memory_prompt(reasoning: str, *, library: PromptLibrary = DEFAULT_PROMPTS) -> RenderedPrompt:
    template = library.get("generate_memory")
    return RenderedPrompt(
        system=template.system,
        user=render_template(template.user, {"reasoning": reasoning}),
    )


__all__ = [
    "WORLD_RULES",
    "PromptTemplate",
    "RenderedPrompt",
    "PromptLibrary",
    "DEFAULT_PROMPTS",
    "render_template",
    "observation_json",
    "build_system_prompt",
    "build_decision_prompt",
    "build_memory_prompt",
]
