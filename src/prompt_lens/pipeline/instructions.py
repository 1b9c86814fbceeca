"""Stage 1: build model-ready instructions from validated requests.

Every builder is a pure function of its inputs: role framing, task rules, the
caller's values and the exact JSON schema the model must answer with.
"""

from __future__ import annotations

from ..departments_registry import DepartmentsRegistry
from .requests import EvaluationRequest, Technique, UseCaseRequest
from .results import MAX_USECASES, UseCaseFormat

TECHNIQUE_RULES = {
    Technique.ONE_SHOT: "Contains exactly one example to guide the model",
    Technique.FEW_SHOT: "Contains multiple (2+) examples to guide the model",
    Technique.CHAIN_OF_THOUGHT: "Shows step-by-step reasoning or asks for reasoning steps",
}

EVALUATION_ROLE = (
    "You are an expert in prompt engineering and AI prompting techniques. Your task is to "
    "evaluate whether a given prompt matches the selected prompting technique."
)

EVALUATION_CRITERIA = """Evaluation Criteria:
- Count the number of examples in the prompt
- Check if examples are relevant and consistent with the task
- Determine if the style matches the selected technique
- For Chain-of-Thought: Look for step-by-step reasoning or requests for reasoning"""

EVALUATION_SCHEMA = """{
  "match": "Yes" or "No",
  "reason": "Detailed explanation mentioning number of examples, their relevance, and logic used",
  "rating": "X/10 with brief explanation"
}"""

SHORT_USECASE_SCHEMA = """{
  "usecases": [
    {
      "prompt": "Action-oriented AI use case prompt for %(department)s"
    }
  ]
}"""

LONG_USECASE_SCHEMA = """{
  "usecases": [
    {
      "title": "Short name of the AI use case",
      "description": "What the solution does for %(department)s",
      "benefits": "Expected business benefits",
      "implementation": "High-level implementation approach"
    }
  ]
}"""

RESPONSE_ONLY = "Return ONLY the JSON, no other text."


def _technique_catalog() -> str:
    lines = []
    for index, technique in enumerate(Technique, start=1):
        lines.append(f"{index}. {technique.label}: {TECHNIQUE_RULES[technique]}")
    return "\n".join(lines)


def build_evaluation_instruction(request: EvaluationRequest) -> str:
    """Instruction asking the model to judge a prompt against one technique."""

    technique = request.technique
    return "\n\n".join(
        [
            EVALUATION_ROLE,
            "Prompting Techniques:\n" + _technique_catalog(),
            EVALUATION_CRITERIA,
            f'Evaluate this prompt for the "{technique.value}" technique:',
            f'PROMPT TO EVALUATE:\n"""\n{request.prompt_text}\n"""',
            f"SELECTED TECHNIQUE: {technique.value} ({TECHNIQUE_RULES[technique]})",
            "RESPONSE FORMAT (JSON only, no other text):\n" + EVALUATION_SCHEMA,
            RESPONSE_ONLY,
        ]
    )


def build_usecase_instruction(
    request: UseCaseRequest,
    departments: DepartmentsRegistry,
    usecase_format: UseCaseFormat = UseCaseFormat.SHORT,
) -> str:
    """Instruction asking the model for 3-5 AI use cases for a department."""

    department = request.department
    context = departments.context_for(department)
    if usecase_format == UseCaseFormat.LONG:
        rules = [
            "- A concise, descriptive title",
            f"- A description of how AI solves part of the challenge for {department}",
            "- Concrete business benefits",
            "- A realistic, high-level implementation approach",
        ]
        schema = LONG_USECASE_SCHEMA % {"department": department}
        role = (
            "You are an AI strategy consultant specializing in practical AI solutions "
            "for business departments."
        )
    else:
        rules = [
            "- A single, clear action statement (10-15 words maximum)",
            '- Start with action verbs like "Create", "Build", "Develop", "Implement", "Design"',
            f"- Specific to {department} workflows and challenges",
            "- Immediately understandable and actionable",
            "- Professional and business-appropriate",
        ]
        schema = SHORT_USECASE_SCHEMA % {"department": department}
        role = (
            "You are an AI prompt generator specializing in creating concise, actionable "
            "AI use case prompts for different departments."
        )

    sections = [
        role,
        f"DEPARTMENT CONTEXT: {department}\n{context}",
        f"SPECIFIC CHALLENGE: {request.task}",
        (
            f"INSTRUCTIONS:\nGenerate 3-{MAX_USECASES} AI use cases that directly address "
            f"the challenge for {department}. Each use case should have:\n" + "\n".join(rules)
        ),
    ]
    if usecase_format == UseCaseFormat.SHORT:
        sections.append(
            "Examples of good prompts:\n"
            '- "Create an AI chatbot to automate customer support inquiries"\n'
            '- "Build a predictive analytics system for inventory management"\n'
            '- "Develop automated email response templates using NLP"'
        )
    sections.append("RESPONSE FORMAT (JSON only, no other text):\n" + schema)
    sections.append(RESPONSE_ONLY)
    return "\n\n".join(sections)
