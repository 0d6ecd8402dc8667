"""Prompt templates for collection story generation and the parenting coach."""

from typing import Dict, List

from app.services.ai.collections import CollectionDescriptor

COLLECTION_SYSTEM_PROMPT = """You are a children's story writer. {collection_prompt}
Return EXACTLY a JSON array (no extra text) with {count} objects. Each object must have keys:
"title" (string, max 50 chars), "description" (string, max 120 chars),
"content" (string, one paragraph, 200-300 words), "duration" (integer minutes between 5 and 12).
If JSON is not possible, provide lines formatted as "Title - Description - StoryText - X min".

{safety}"""

# Safety guidelines for all generated stories
SAFETY_GUIDELINES = """SAFETY REQUIREMENTS:
- No violence, scary content, or nightmare-inducing material
- No explicit or suggestive content
- No advertisements, product placements, or real celebrities
- For children under 7: avoid content about death, separation, or danger
- Keep a hopeful tone and focus on kindness, courage, curiosity and friendship"""

AGE_GROUP_NOTES: Dict[str, str] = {
    "2-5": "Use simple, repetitive language and a gentle, safe resolution.",
    "6-8": "Use descriptive language, mild suspense that resolves positively.",
    "9-12": "Use richer vocabulary and real challenges, ending on a calm, hopeful note.",
}

COACH_SYSTEM_PROMPT = "You are an empathetic, evidence-based parenting coach."

COACH_FALLBACK_RESPONSE = "Sorry—I couldn't reach the AI service. Try again later."


def _age_to_group(age: int) -> str:
    """Map a numeric age to an age group string."""
    if age <= 5:
        return "2-5"
    elif age <= 8:
        return "6-8"
    return "9-12"


def build_collection_system_prompt(collection: CollectionDescriptor, count: int) -> str:
    """
    Build the system prompt asking for ``count`` stories of a collection.

    Args:
        collection: Collection descriptor
        count: Number of stories requested

    Returns:
        System prompt with structured and line-format output instructions
    """
    return COLLECTION_SYSTEM_PROMPT.format(
        collection_prompt=collection.prompt,
        count=count,
        safety=SAFETY_GUIDELINES,
    )


def build_collection_user_prompt(
    collection: CollectionDescriptor,
    count: int,
    child_name: str,
    child_age: int,
) -> str:
    """Build the user turn naming the child and age."""
    return (
        f"Create {count} {collection.label} for {child_name}, age {child_age}. "
        f"{AGE_GROUP_NOTES[_age_to_group(child_age)]}"
    )


def build_collection_messages(
    collection: CollectionDescriptor,
    count: int,
    child_name: str,
    child_age: int,
) -> List[Dict[str, str]]:
    """Role-tagged chat messages for one collection generation call."""
    return [
        {"role": "system", "content": build_collection_system_prompt(collection, count)},
        {"role": "user", "content": build_collection_user_prompt(collection, count, child_name, child_age)},
    ]


def build_coach_messages(question: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": COACH_SYSTEM_PROMPT},
        {"role": "user", "content": question},
    ]
