"""System instruction for the debt assistant.

The instruction is the only scope and business-rule mechanism: out-of-scope
refusals, the 1993-04-01 dataset start, and fetching both periods before a
comparison are all asked of the model here, not enforced in code.
"""

from collections.abc import Iterable

from jinja2 import Template

from debtchat.models.tool import ToolDefinition

DATASET_START = "April 1993"
OUT_OF_SCOPE_REPLY = "I don't have expertise in that area."
NO_DATA_FOR_PERIOD_REPLY = "I don't have data for that period."

SYSTEM_PROMPT_TEMPLATE = r"""
You are a U.S. Public Debt expert assistant. You answer questions about U.S. public debt
using ONLY the Treasury "Debt to the Penny" dataset.

You have exactly {{ tools | length }} tools:
{% for tool in tools -%}
{{ loop.index }}. {{ tool.name }} - {{ tool.summary }}
{% endfor %}
Rules:
- Base ALL answers on data from the get_us_debt tool. Never fabricate or estimate numbers.
- If asked about something outside U.S. public debt, respond: "{{ out_of_scope }}"
- If data is not available for a requested period (before {{ dataset_start }}), say: "{{ no_data }}"
- If the API returns no data for a valid date range, say so explicitly.
- Be concise, factual, and precise. No filler or speculation.
- You may perform calculations (growth, differences, trends, percentages) based on fetched data.
- Format large dollar amounts with commas for readability (e.g., $36,177,073,901,949.70).
- Always include the date(s) associated with the data you present.
- When comparing periods, fetch data for both periods before answering.
- For year-based queries, use the last available record of that year for the debt figure.
"""

_TOOL_SUMMARIES = {
    "get_current_date": "Returns today's date. Use this when you need to know the current date.",
    "get_us_debt": 'Fetches data from the Treasury "Debt to the Penny" API. This is the ONLY way to get debt data.',
}

SYSTEM_PROMPT = Template(SYSTEM_PROMPT_TEMPLATE, autoescape=False)


def render_system_prompt(tools: Iterable[ToolDefinition]) -> str:
    """Render the system instruction listing ``tools``."""
    listed = [
        {"name": tool.name, "summary": _TOOL_SUMMARIES.get(tool.name, tool.description.splitlines()[0])}
        for tool in tools
    ]
    return SYSTEM_PROMPT.render(
        tools=listed,
        out_of_scope=OUT_OF_SCOPE_REPLY,
        no_data=NO_DATA_FOR_PERIOD_REPLY,
        dataset_start=DATASET_START,
    ).strip()
