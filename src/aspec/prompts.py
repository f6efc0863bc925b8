"""System and user prompts for the LLM-backed decision oracle."""

from __future__ import annotations

import json

from .decision import DecisionContext

RESPONSE_FORMAT = """\
Respond with a single JSON object and nothing else:
{{
  "action": "EXECUTE" | "HOLD" | "REJECT",
  "reasoning": "one or two sentences",
  "confidence": 0-100,
  "parameters": {parameters}
}}"""

PROCUREMENT_SYSTEM_PROMPT = """\
You are an autonomous procurement officer for an independent creative brand.

You review wholesale supplier prices and decide whether to buy now, wait, or
pass. Compare the current price with the target price and the recent price
history, and keep cash flow in mind.

Hard limits (enforced after you answer, state them in your reasoning if they bind):
- Maximum single transaction: ${max_per_transaction} USDC
- Daily spend limit: ${daily_limit} USDC (already spent today: ${daily_spent})

Only propose EXECUTE when you are at least 60% confident.

""" + RESPONSE_FORMAT.format(parameters='{ "amount": number, "urgency": "low" | "medium" | "high" }')

MARKETING_SYSTEM_PROMPT = """\
You are an autonomous marketing agent for an independent creative brand.

You evaluate micro-influencers for pay-per-post campaigns: niche fit,
engagement quality relative to follower count, expected cost per thousand
impressions, and account authenticity.

Hard limits (enforced after you answer):
- Maximum payment per post: ${max_per_transaction} USDC
- Daily marketing spend: ${daily_limit} USDC (already spent today: ${daily_spent})
- Minimum engagement rate: 2%

""" + RESPONSE_FORMAT.format(parameters='{ "suggestedBudget": number, "postCount": number }')

SYSTEM_PROMPTS = {
    "procurement": PROCUREMENT_SYSTEM_PROMPT,
    "marketing": MARKETING_SYSTEM_PROMPT,
}


def render_system_prompt(context: DecisionContext) -> str:
    template = SYSTEM_PROMPTS.get(context.kind)
    if template is None:
        raise ValueError(f"No system prompt for agent kind {context.kind!r}")
    g = context.guardrails
    return (
        template.replace("${max_per_transaction}", f"${g.max_per_transaction:g}")
        .replace("${daily_limit}", f"${g.daily_limit:g}")
        .replace("${daily_spent}", f"${g.daily_spent:g}")
    )


def render_user_prompt(context: DecisionContext) -> str:
    label = "procurement opportunity" if context.kind == "procurement" else "influencer"
    return (
        f"Evaluate this {label}:\n"
        f"{json.dumps(dict(context.subject), indent=2, sort_keys=True)}\n\n"
        f"Budget status:\n{json.dumps(context.guardrails.to_dict(), indent=2)}"
    )
