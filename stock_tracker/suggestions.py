import logging

from .errors import ExternalCallError
from .resilient_caller import CallResult, FailureKind, ResilientCaller
from .schemas import ExpirationCheck, StockItem, UrgencyReport
from .urgency import format_urgent_list

logger = logging.getLogger(__name__)

USAGE_SYSTEM_PROMPT = (
    "Act as a household meal and usage planner. Give a concise usage suggestion, "
    "recipe or consumption plan (50 words maximum) for the following item, "
    "prioritizing that it is consumed or used soon because it is close to its "
    "expiration date."
)

ACTION_PLAN_SYSTEM_PROMPT = (
    "Act as an inventory manager. Analyze the following list of expired or "
    "alarming items and give a concise executive summary (80 words maximum) "
    "with a prioritized action plan to consume or discard the stock."
)


def build_payload(system_prompt: str, user_query: str, grounding: bool = True) -> dict:
    """Request body for the generateContent endpoint."""
    payload = {
        "contents": [{"parts": [{"text": user_query}]}],
        "systemInstruction": {"parts": [{"text": system_prompt}]},
    }
    if grounding:
        payload["tools"] = [{"google_search": {}}]
    return payload


def usage_suggestion_prompts(item: StockItem, check: ExpirationCheck) -> tuple[str, str]:
    user_query = (
        f'Item: "{item.name}" (Category: {item.category}). '
        f"Its current status is: {check.message}. Give me a quick usage suggestion."
    )
    return USAGE_SYSTEM_PROMPT, user_query


def action_plan_prompts(report: UrgencyReport) -> tuple[str, str]:
    user_query = f"Analyze and prioritize the following urgent inventory:\n\n{format_urgent_list(report)}"
    return ACTION_PLAN_SYSTEM_PROMPT, user_query


def result_text(result: CallResult) -> str:
    """The text shown to the user for a finished call, success or not."""
    if result.ok:
        return result.text
    if result.failure == FailureKind.SERVER_ERROR:
        return f"Error: {result.message}"
    if result.failure == FailureKind.RATE_LIMITED:
        return "The AI service is rate limiting requests. Please try again in a moment."
    if result.failure == FailureKind.BUSY:
        return "A suggestion is already being generated."
    return "Connection error with the AI service."


def generate_text(caller: ResilientCaller, system_prompt: str, user_query: str) -> str:
    """Runs one generation. Raises ExternalCallError carrying the user-facing message."""
    result = caller.call(build_payload(system_prompt, user_query))
    if not result.ok:
        logger.error(f"❌ Suggestion generation failed ({result.failure.value}) after {result.attempts} attempt(s).")
        raise ExternalCallError(result_text(result))
    return result.text
