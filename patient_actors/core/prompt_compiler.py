"""
Prompt Compiler - structured patient profile <-> system prompt text

generate_prompt() turns the structured clinical profile of a patient actor
into the system prompt handed to the language model. The section order and
the conditional emission of every section are part of the contract: the
compiled text is everything the model is told about the patient, so
existing personas must keep producing byte-identical prompts.

parse_prompt() is the best-effort reverse direction, used only to migrate
legacy free-text personas into structured form. It is lossy, never raises,
and is NOT guaranteed to invert generate_prompt().
"""
import re
from enum import Enum
from typing import List

from pydantic import BaseModel


class RevelationLevel(str, Enum):
    """How readily the patient volunteers clinical information"""
    FORTHCOMING = "forthcoming"
    MODERATE = "moderate"
    RESERVED = "reserved"


class StructuredPrompt(BaseModel):
    """Decomposed clinical profile of a patient actor"""

    # Patient profile
    demographics: str = ""
    chief_complaint: str = ""
    medical_history: str = ""
    medications: str = ""
    social_history: str = ""
    personality: str = ""

    # Clinical findings
    physical_findings: str = ""
    additional_symptoms: str = ""

    # Behavior settings
    # Kept as a plain string: unrecognized values fall back to moderate
    revelation_level: str = RevelationLevel.MODERATE.value
    stay_in_character: bool = True
    avoid_medical_jargon: bool = True
    provide_feedback: bool = True
    custom_instructions: str = ""


STRUCTURED_FIELDS = tuple(StructuredPrompt.model_fields.keys())

TEXT_FIELDS = (
    "demographics",
    "chief_complaint",
    "medical_history",
    "medications",
    "social_history",
    "personality",
    "physical_findings",
    "additional_symptoms",
    "custom_instructions",
)


FORTHCOMING_INSTRUCTION = (
    "Provide detailed information readily when asked. "
    "Be open and communicative about symptoms and concerns."
)
RESERVED_INSTRUCTION = (
    "Only reveal information when directly asked specific questions. "
    "Provide brief, minimal responses initially. "
    "Require follow-up questions to elaborate on symptoms."
)
MODERATE_INSTRUCTION = (
    "Provide concise responses initially. "
    "Offer more details when asked follow-up questions. "
    "Balance between being helpful and realistic."
)

STAY_IN_CHARACTER_INSTRUCTIONS = (
    "Stay in character at all times throughout the encounter.",
    "Respond only as the patient would, not as a medical professional.",
)

AVOID_JARGON_INSTRUCTIONS = (
    "Avoid using medical jargon unless it's plausible the patient has been told it by a doctor.",
    "Express confusion if asked about technical medical terms you wouldn't know.",
    "Ask the student to explain or clarify medical terms you don't understand.",
)

CONSISTENCY_INSTRUCTIONS = (
    "Be consistent with your medical history and symptoms.",
    "If asked about symptoms not in your profile, politely indicate you don't have those symptoms.",
    "Keep responses conversational and natural (1-3 sentences typically).",
)

FEEDBACK_INSTRUCTIONS = (
    "\n**End of Encounter Feedback:**",
    "If the user indicates the encounter is over, provide constructive feedback on:",
    "- History taking",
    "- Communication and interpersonal skills",
    "- Clinical reasoning and decision making",
    "- Explanation and patient education",
    "- Professionalism",
    "- Overall rating out of 10",
)


def _revelation_instruction(level: str) -> str:
    if level == RevelationLevel.FORTHCOMING.value:
        return FORTHCOMING_INSTRUCTION
    if level == RevelationLevel.RESERVED.value:
        return RESERVED_INSTRUCTION
    return MODERATE_INSTRUCTION


def build_behavior_instructions(data: StructuredPrompt) -> List[str]:
    """
    Assemble the "Instructions for Interaction" items in their fixed order.

    Order: revelation paragraph, stay-in-character directives, jargon
    directives, consistency directives (always), end-of-encounter feedback.
    """
    instructions = [_revelation_instruction(data.revelation_level)]

    if data.stay_in_character:
        instructions.extend(STAY_IN_CHARACTER_INSTRUCTIONS)

    if data.avoid_medical_jargon:
        instructions.extend(AVOID_JARGON_INSTRUCTIONS)

    instructions.extend(CONSISTENCY_INSTRUCTIONS)

    if data.provide_feedback:
        instructions.extend(FEEDBACK_INSTRUCTIONS)

    return instructions


def generate_prompt(data: StructuredPrompt) -> str:
    """
    Compile a structured profile into the model's system prompt.

    Pure and deterministic. A profile section is emitted only when its
    source field is non-empty. Sections are joined with blank lines; the
    instruction list is single-newline separated and 1-indexed.

    Args:
        data: Structured profile

    Returns:
        System prompt text
    """
    sections: List[str] = []

    # Patient profile
    if data.demographics:
        sections.append(f"**Demographics:** {data.demographics}")
    if data.chief_complaint:
        sections.append(f'**Chief Complaint:** "{data.chief_complaint}"')
    if data.medical_history:
        sections.append(f"**Medical History:** {data.medical_history}")
    if data.medications:
        sections.append(f"**Current Medications:** {data.medications}")
    if data.social_history:
        sections.append(f"**Social History:** {data.social_history}")
    if data.personality:
        sections.append(f"**Personality:** {data.personality}")

    # Clinical findings
    if data.physical_findings:
        sections.append(f"\n**Physical/Neurological Findings:**\n{data.physical_findings}")
    if data.additional_symptoms:
        sections.append(f"**Additional Symptoms:**\n{data.additional_symptoms}")

    instructions = build_behavior_instructions(data)
    numbered = "\n".join(f"{idx}. {item}" for idx, item in enumerate(instructions, start=1))
    sections.append(f"\n**Instructions for Interaction:**\n{numbered}")

    if data.custom_instructions:
        sections.append(f"\n**Additional Instructions:**\n{data.custom_instructions}")

    return "\n\n".join(sections)


def _extract_after_label(prompt: str, label: str) -> str:
    """Value after **Label:** up to the next bold label or blank line"""
    pattern = r"\*\*" + re.escape(label) + r":\*\*\s*([\s\S]+?)(?=\n\*\*|\n\n|\Z)"
    match = re.search(pattern, prompt, re.IGNORECASE)
    if not match:
        return ""
    return re.sub(r"^[\"']|[\"']$", "", match.group(1).strip())


def _detect_revelation_level(lower_prompt: str) -> str:
    if ("brief" in lower_prompt and "minimal" in lower_prompt) or (
        "only reveal information when directly asked" in lower_prompt
    ):
        return RevelationLevel.RESERVED.value
    if "detailed information readily" in lower_prompt or "open and communicative" in lower_prompt:
        return RevelationLevel.FORTHCOMING.value
    return RevelationLevel.MODERATE.value


def parse_prompt(prompt: str) -> StructuredPrompt:
    """
    Best-effort extraction of a structured profile from prompt text.

    Each field looks for its bold label (two historical spellings for
    medications, findings and symptoms). Revelation level and behavior
    flags come from substring heuristics on the lowercased text. Fields
    without a match keep their defaults; this function never raises.

    Args:
        prompt: Free-text (legacy) or previously compiled prompt

    Returns:
        StructuredPrompt populated with whatever could be recognized
    """
    if not isinstance(prompt, str):
        prompt = "" if prompt is None else str(prompt)

    lower_prompt = prompt.lower()
    custom_match = re.search(
        r"\*\*Additional Instructions:\*\*\s*\n([\s\S]+)\Z", prompt, re.IGNORECASE
    )

    return StructuredPrompt(
        demographics=_extract_after_label(prompt, "Demographics"),
        chief_complaint=_extract_after_label(prompt, "Chief Complaint"),
        medical_history=_extract_after_label(prompt, "Medical History"),
        medications=(
            _extract_after_label(prompt, "Current Medications")
            or _extract_after_label(prompt, "Medications")
        ),
        social_history=_extract_after_label(prompt, "Social History"),
        personality=_extract_after_label(prompt, "Personality"),
        physical_findings=(
            _extract_after_label(prompt, "Physical/Neurological Findings")
            or _extract_after_label(prompt, "Neurological Findings")
        ),
        additional_symptoms=(
            _extract_after_label(prompt, "Additional Symptoms")
            or _extract_after_label(prompt, "Non-Motor Symptoms")
        ),
        revelation_level=_detect_revelation_level(lower_prompt),
        stay_in_character=(
            "stay in character" in lower_prompt or "maintain character" in lower_prompt
        ),
        avoid_medical_jargon="avoid" in lower_prompt and "jargon" in lower_prompt,
        provide_feedback="feedback" in lower_prompt or "rating" in lower_prompt,
        custom_instructions=custom_match.group(1).strip() if custom_match else "",
    )


def has_structured_content(data: StructuredPrompt) -> bool:
    """True when any free-text profile field is filled in"""
    return any(getattr(data, field) for field in TEXT_FIELDS)
