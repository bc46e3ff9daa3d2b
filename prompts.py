"""Prompt templates, roles and presets for the Prompt Customizer."""

import re

HELPFUL_ASSISTANT_ROLE = "Helpful Assistant"

OPTIMIZER_PROMPT_TEMPLATE = """You are an expert prompt engineer. Your task is to take a user's initial prompt idea and a specified AI role, and then refine the prompt idea into a well-structured body of text that an LLM (acting in the specified role) can effectively execute.

User's Initial Prompt Idea (this might be a simple instruction, a template with placeholders like {{variable}}, or a general concept):
"<<RAW_TEMPLATE>>"

Specified AI Role for the target LLM: "<<ROLE>>"

---
Your Goal:
Transform the 'User's Initial Prompt Idea' into a more effective prompt body. This refined prompt body will be given to an LLM that is ALREADY instructed to 'Act as a <<ROLE>>'.
Therefore, DO NOT include "Act as a <<ROLE>>" or similar role-setting instructions in your output.

Consider the following elements when refining the prompt idea:
1.  **Task Identification**: Clearly identify the primary task the target LLM (acting as '<<ROLE>>') needs to perform based on the 'User's Initial Prompt Idea'.
2.  **Implicit Requirements**: Infer and make explicit any requirements for the target LLM's output. This could include desired format, length, style, tone, constraints, or information to include/exclude.
3.  **Actionable Instructions**: Formulate clear instructions for the target LLM on how to approach the task. If the initial idea contains placeholders (e.g., {{variable_name}}), ensure they are preserved in your refined output.

---
Output Format:
Provide ONLY the refined prompt body. It should be ready to be directly processed by the target LLM.
Preserve any {{variable_name}} placeholders found in the 'User's Initial Prompt Idea' exactly as written. Do not rename, translate or remove them.

Example:
If User's Initial Prompt Idea is: "tell me about {{topic}}" and AI Role is "Teacher",
Your output (the refined prompt body) might be:
"Please explain the key concepts of {{topic}} in a way that is easy for a high school student to understand. Include a real-world example and a brief summary of its importance."
(Notice: No "Act as a Teacher" here, and {{topic}} is preserved.)

---
Now, generate the refined prompt body based on the provided 'User's Initial Prompt Idea' and 'Specified AI Role'."""

ROLES = [
    "Prompt Engineer",
    "Story Teller",
    "Code Assistant",
    "Marketing Copywriter",
    "Content Summarizer",
    HELPFUL_ASSISTANT_ROLE,
    "Technical Writer",
    "Travel Agent",
    "Chef",
]

# Preset name -> template and its default variables.
PRESETS = {
    "Creative Writing": {
        "template": "Write a short story about {{protagonist}} who discovers a {{magical_object}} in {{setting}}.",
        "variables": {
            "protagonist": "a curious explorer",
            "magical_object": "glowing orb",
            "setting": "an ancient forest",
        },
    },
    "Code Generation (Python)": {
        "template": "Generate a Python function that {{description}}.\n\n```python\n# Your code here\n```",
        "variables": {"description": "calculates the factorial of a number"},
    },
    "Summarization": {
        "template": "Summarize the following text concisely:\n\n{{text_to_summarize}}",
        "variables": {"text_to_summarize": "Enter long text here..."},
    },
    "Email Composer": {
        "template": "Draft a {{email_type}} email to {{recipient}} regarding {{subject}}. The tone should be {{tone}}.",
        "variables": {
            "email_type": "follow-up",
            "recipient": "a potential client",
            "subject": "our last meeting",
            "tone": "professional and courteous",
        },
    },
    "Recipe Generator": {
        "template": (
            "Create a recipe for {{dish_name}} that includes {{main_ingredient}} and is suitable "
            "for a {{dietary_restriction}} diet. The cooking time should be around {{cooking_time}}."
        ),
        "variables": {
            "dish_name": "a quick weekday dinner",
            "main_ingredient": "chicken breast",
            "dietary_restriction": "gluten-free",
            "cooking_time": "30 minutes",
        },
    },
    "Travel Itinerary": {
        "template": (
            "Plan a {{duration_days}}-day travel itinerary for a trip to {{destination}}, "
            "focusing on {{interest_points}} and suitable for {{traveler_type}}."
        ),
        "variables": {
            "duration_days": "7",
            "destination": "Kyoto, Japan",
            "interest_points": "historical temples and local cuisine",
            "traveler_type": "a solo traveler",
        },
    },
    "Marketing Slogan": {
        "template": (
            "Generate a catchy marketing slogan for a {{product_name}} that targets "
            "{{target_audience}} and highlights its {{key_benefit}}."
        ),
        "variables": {
            "product_name": "new eco-friendly water bottle",
            "target_audience": "environmentally conscious millennials",
            "key_benefit": "sustainability and style",
        },
    },
}

DEFAULT_PRESET = "Code Generation (Python)"

_MARKER_RE = re.compile(r"<<(ROLE|RAW_TEMPLATE)>>")


def build_optimizer_prompt(raw_template: str, role: str | None = None) -> str:
    """Build the instruction sent to the optimizer model.

    Note: the raw template is full of literal {{braces}}, so this fills <<MARKERS>>
    instead of using .format(). Both markers are filled in one pass, so marker text
    inside the role or the template is inserted literally and never rewritten.
    """
    values = {
        "ROLE": (role or "").strip() or HELPFUL_ASSISTANT_ROLE,
        "RAW_TEMPLATE": raw_template,
    }
    return _MARKER_RE.sub(lambda match: values[match.group(1)], OPTIMIZER_PROMPT_TEMPLATE)


def build_execution_prompt(filled_body: str, role: str | None = None) -> str:
    """Prefix the filled body with the role instruction, if a role was given."""
    role = (role or "").strip()
    if not role:
        return filled_body
    return f"Act as a {role}.\n\n{filled_body}"
