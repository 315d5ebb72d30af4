"""Gmail search query construction for a flow."""

from __future__ import annotations

from gmail_drive_flow.core.models import FlowConfig


def build_search_query(
    flow: FlowConfig, user_email: str | None = None, window: str = "7d"
) -> str:
    """Build the Gmail search query for a flow.

    An explicit ``flow.email_filter`` is returned verbatim. Otherwise the
    query restricts to the flow's comma-separated senders (or to
    ``user_email`` when there are none) and to recent mail with attachments.

    Examples:
        senders="a@x.com"            -> "from:a@x.com has:attachment newer_than:7d"
        senders="a@x.com, b@y.com"   -> "(from:a@x.com OR from:b@y.com) has:attachment ..."
    """
    if flow.email_filter and flow.email_filter.strip():
        return flow.email_filter.strip()

    query = ""
    senders = [s.strip() for s in flow.senders.split(",") if s.strip()]

    if len(senders) == 1:
        query = f"from:{senders[0]}"
    elif len(senders) > 1:
        query = "(" + " OR ".join(f"from:{s}" for s in senders) + ")"
    elif user_email:
        query = f"from:{user_email}"

    suffix = f"has:attachment newer_than:{window}"
    return f"{query} {suffix}" if query else suffix
