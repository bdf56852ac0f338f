"""Prompt composition for finance action analysis.

The instruction states "today" explicitly because the model cannot be
trusted to know it, and spells out every closed value set so the model
picks single values instead of inventing or combining them.
"""

from __future__ import annotations

import json
from datetime import datetime

from finops.schemas.customer import CustomerSummary

from .catalog import ActionCatalog, ActionTypeDefinition
from .dates import DEFAULT_RELATIVE_DAYS

ANALYSIS_SYSTEM_PROMPT = (
    "You are a finance operations assistant for a retail bank. "
    "Read the customer's request, explain briefly what will be done, "
    "and select the finance actions that fulfil it from the catalog below. "
    "Use only action codes from the catalog."
)

PARAMETER_RULES = """PARAMETER RULES:
- Fields whose template lists values separated by | (e.g. "in|out"):
  * choose exactly ONE of the listed values, or use null
  * never combine them (no "in,out", no "in|out"), never invent others (no "both")
- Fields whose template is ? are free-form:
  * use any value supported by the customer request
  * use null when the request does not specify one"""

DATE_RULES = """DATE RULES:
- The current year is {year}; every date must use it unless the customer names another year.
- Today's date is {today}.
- If no date range is mentioned, use the last {default_days} days.
- endDate is always today: {today}T23:59:59
- Dates use ISO format YYYY-MM-DDThh:mm:ss"""


def _template_json(definition: ActionTypeDefinition) -> str:
    return json.dumps(definition.template_dict(), ensure_ascii=False)


def _enumeration_rules(definition: ActionTypeDefinition) -> list[str]:
    lines = []
    for name, alternatives in definition.enumerations.items():
        lines.append(f"- {name}: allowed values {' | '.join(alternatives)}")
        lines.append("  * choose exactly one of these values, or use null; never combine them, never invent others")
    return lines


def _output_shape(catalog: ActionCatalog, now: datetime) -> str:
    definitions = catalog.definitions()
    example = {
        "selectedActions": [d.code for d in definitions[:2]],
        "parameters": {d.code: d.template_dict() for d in definitions[:2]},
        "dateRange": {
            "startDate": f"{now.year}-MM-DDT00:00:00",
            "endDate": f"{now:%Y-%m-%d}T23:59:59",
            "isRelative": True,
            "relativeDays": DEFAULT_RELATIVE_DAYS,
        },
    }
    return (
        "Return your answer with a short explanation followed by ONE ```json fenced block in this shape "
        "(selectedActions: list of action codes; parameters: object keyed by action code; "
        "dateRange: optional hint):\n"
        f"```json\n{json.dumps(example, ensure_ascii=False, indent=2)}\n```"
    )


def build_analysis_prompt(catalog: ActionCatalog, now: datetime, special_prompt: str | None = None) -> str:
    """Build the instruction for *catalog* as of *now*. Pure function."""
    sections = [
        ANALYSIS_SYSTEM_PROMPT,
        f"IMPORTANT: The current year is {now.year}. Today's date is {now:%Y-%m-%d}.",
        PARAMETER_RULES,
        "ACTION TEMPLATES:",
    ]

    for definition in catalog.definitions():
        block = [f"{definition.code} template:", _template_json(definition)]
        block.extend(_enumeration_rules(definition))
        sections.append("\n".join(block))

    sections.append(
        DATE_RULES.format(year=now.year, today=f"{now:%Y-%m-%d}", default_days=DEFAULT_RELATIVE_DAYS)
    )
    sections.append(_output_shape(catalog, now))

    if special_prompt and special_prompt.strip():
        sections.append(f"ADDITIONAL INSTRUCTIONS:\n{special_prompt.strip()}")

    return "\n\n".join(sections)


def describe_actions(catalog: ActionCatalog) -> str:
    return "\n".join(f"{d.code}: {d.description or 'No description'}" for d in catalog.definitions())


def build_user_content(content: str, customer: CustomerSummary, catalog: ActionCatalog) -> str:
    """Wrap the customer's request with their record and the action list."""
    customer_json = customer.model_dump_json(by_alias=True)
    return (
        f"Analyse the request below for customer {customer.id} using this information.\n\n"
        f"Customer (JSON):\n{customer_json}\n\n"
        f"Finance actions:\n{describe_actions(catalog)}\n\n"
        f"Customer request:\n{content}"
    )
