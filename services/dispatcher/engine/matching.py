"""Trigger matching: decides whether an inbound event fires a trigger.

Runs once per inbound event per active workflow, so it stays pure and
does no work beyond normalizing the strings it compares.
"""

from shared.types import InboundEvent, MatchType, TriggerData, TriggerType


def matches(trigger: TriggerData, event: InboundEvent) -> bool:
    if event.kind != trigger.trigger_type:
        return False

    if trigger.trigger_type == TriggerType.POST_COMMENT and trigger.post_ids:
        if event.post_id not in trigger.post_ids:
            return False

    if not trigger.keywords:
        return False

    return matches_keywords(event.text, trigger.keywords, trigger.match_type, trigger.case_sensitive)


def matches_keywords(text: str, keywords, match_type: MatchType, case_sensitive: bool) -> bool:
    """OR across keywords; blank keywords never match.

    A blank keyword is skipped rather than compared as the empty string, which
    would make every message match under contains and starts_with. The editor
    rejects blank keywords on input, so one only reaches here from hand-written
    or legacy records.
    """
    text = text or ""
    normalized_text = text if case_sensitive else text.lower()
    if match_type == MatchType.EXACT:
        normalized_text = normalized_text.strip()

    for keyword in keywords:
        if not keyword or not keyword.strip():
            continue
        normalized_keyword = keyword if case_sensitive else keyword.lower()

        if match_type == MatchType.EXACT:
            if normalized_text == normalized_keyword.strip():
                return True
        elif match_type == MatchType.STARTS_WITH:
            if normalized_text.startswith(normalized_keyword):
                return True
        elif match_type == MatchType.CONTAINS:
            if normalized_keyword in normalized_text:
                return True
        else:
            raise ValueError(f"Unknown match type: {match_type}")

    return False
