"""Prompt templates for the child-friendly explanation call."""
from typing import Optional

from kiddoc.models import Attachment

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
}

READING_LEVEL_PROMPTS = {
    "very_simple": "Use very short sentences and very simple words for younger children.",
    "simple": "Use simple child-friendly language with clear examples.",
    "detailed": "Use child-friendly language with slightly more detail for older children.",
}

EMERGENCY_INSTRUCTION = "Start with a direct warning to seek emergency care immediately."
URGENT_CARE_INSTRUCTION = "If symptoms may need urgent care, clearly say so."

SYSTEM_PROMPT = """You are Dr. Buddy, a friendly doctor AI for children ages 4-14.
Keep your response warm, calm, and simple for {child_name} who is {child_age}.
Rules:
- Respond in {language_name}.
- {reading_instruction}
- Use short clear sentences with supportive tone.
- Avoid scary language and avoid medical jargon.
- Do not provide diagnosis certainty.
- Always remind the user this is educational and they should see a real doctor for concerning symptoms.
- {urgency_instruction}
- Keep response under 250 words.
- Return these sections:
1. What might be happening
2. What can help at home
3. Should you see a doctor?
4. Encouragement"""

USER_PROMPT = (
    "Hi Dr. Buddy. I am {child_name}, {child_age}. My symptoms: {symptoms}. "
    "Preferred language: {language}. Reading level: {reading_level}."
)
IMAGE_NOTE = " I uploaded a lab image. Please read and explain it simply for a child."
FILE_NOTE = " I uploaded a non-image file. Please provide advice from symptoms only."


def describe_child(name: str, age) -> tuple[str, str]:
    """Display name and age phrase used in prompts and the handoff record."""
    child_name = name or "little friend"
    age_text = str(age if age is not None else "").strip()
    child_age = f"{age_text} years old" if age_text else "a young child"
    return child_name, child_age


def build_system_prompt(
    child_name: str,
    child_age: str,
    language: str,
    reading_level: str,
    triage_level: str,
) -> str:
    """Build the provider-independent system instruction."""
    return SYSTEM_PROMPT.format(
        child_name=child_name,
        child_age=child_age,
        language_name=LANGUAGE_NAMES.get(language, LANGUAGE_NAMES["en"]),
        reading_instruction=READING_LEVEL_PROMPTS.get(reading_level, READING_LEVEL_PROMPTS["simple"]),
        urgency_instruction=EMERGENCY_INSTRUCTION if triage_level == "emergency" else URGENT_CARE_INSTRUCTION,
    )


def build_user_text(
    symptoms: str,
    child_name: str,
    child_age: str,
    language: str,
    reading_level: str,
    attachment: Optional[Attachment] = None,
) -> str:
    """First-person restatement of the request.

    Only a note about a non-image attachment is included; its content is never
    sent to a provider. Image bytes are attached by each provider adapter.
    """
    text = USER_PROMPT.format(
        child_name=child_name,
        child_age=child_age,
        symptoms=symptoms,
        language=language,
        reading_level=reading_level,
    )
    if attachment is not None and attachment.base64:
        text += IMAGE_NOTE if attachment.is_image else FILE_NOTE
    return text
