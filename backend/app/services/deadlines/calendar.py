"""
Deadline Calendar Export

Renders deadlines as an RFC 5545 iCalendar file so they can be imported into
Outlook, Google Calendar or Apple Calendar. Each deadline becomes an all-day
VEVENT with a reminder the day before.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from app.models.claim import ClaimState, Deadline, DeadlinePriority, DeadlineStatus
from app.services.letter_generation.formatting import format_money

logger = logging.getLogger(__name__)


PRODID = "-//ClaimCraft UK//Debt Recovery Assistant//EN"
CALENDAR_NAME = "ClaimCraft Deadlines"
CALENDAR_TIMEZONE = "Europe/London"
UID_DOMAIN = "claimcraft.uk"

# RFC 5545 PRIORITY: 1 highest, 9 lowest
ICAL_PRIORITY: Dict[DeadlinePriority, int] = {
    DeadlinePriority.CRITICAL: 1,
    DeadlinePriority.HIGH: 3,
    DeadlinePriority.MEDIUM: 5,
    DeadlinePriority.LOW: 9,
}

ICAL_STATUS: Dict[DeadlineStatus, str] = {
    DeadlineStatus.PENDING: "NEEDS-ACTION",
    DeadlineStatus.DONE: "COMPLETED",
    DeadlineStatus.DISMISSED: "CANCELLED",
}

MAX_LINE_OCTETS = 75


def escape_text(text: str) -> str:
    """Escape a TEXT value: backslash, semicolon, comma and newlines."""
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r", "")
        .replace("\n", "\\n")
    )


def fold_line(line: str) -> str:
    """Fold a content line at 75 octets; continuation lines start with a space."""
    if len(line.encode("utf-8")) <= MAX_LINE_OCTETS:
        return line

    parts: List[str] = []
    current = ""
    limit = MAX_LINE_OCTETS
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            parts.append(current)
            current = char
            limit = MAX_LINE_OCTETS - 1
        else:
            current += char
    parts.append(current)
    return "\r\n ".join(parts)


def _date_value(value) -> str:
    return value.strftime("%Y%m%d")


def _describe(deadline: Deadline, claim: Optional[ClaimState]) -> str:
    text = deadline.description
    if claim is not None:
        text += f"\n\nClaim: {claim.defendant.name}\nAmount: {format_money(claim.invoice.amount)}"
    if deadline.legal_reference:
        text += f"\n\nLegal Reference: {deadline.legal_reference}"
    return text


def deadline_to_event(
    deadline: Deadline,
    claim: Optional[ClaimState] = None,
    stamp: Optional[datetime] = None,
) -> List[str]:
    """Unfolded content lines of one VEVENT."""
    stamp = stamp or datetime.now(timezone.utc)
    return [
        "BEGIN:VEVENT",
        f"UID:{deadline.id}@{UID_DOMAIN}",
        f"DTSTAMP:{stamp.astimezone(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}",
        f"DTSTART;VALUE=DATE:{_date_value(deadline.due_date)}",
        f"DTEND;VALUE=DATE:{_date_value(deadline.due_date + timedelta(days=1))}",
        f"SUMMARY:{escape_text(deadline.title)}",
        f"DESCRIPTION:{escape_text(_describe(deadline, claim))}",
        f"CATEGORIES:ClaimCraft,{deadline.type.value}",
        f"PRIORITY:{ICAL_PRIORITY[deadline.priority]}",
        f"STATUS:{ICAL_STATUS[deadline.status]}",
        "BEGIN:VALARM",
        "ACTION:DISPLAY",
        "DESCRIPTION:Deadline reminder",
        "TRIGGER:-P1D",
        "END:VALARM",
        "END:VEVENT",
    ]


def build_calendar(
    deadlines: Iterable[Deadline],
    claims: Optional[Dict[str, ClaimState]] = None,
    stamp: Optional[datetime] = None,
) -> str:
    """
    Build a complete .ics file.

    Dismissed deadlines are left out. `claims` maps claim_id to a snapshot
    whose defendant and amount are added to each event description.
    """
    claims = claims or {}
    stamp = stamp or datetime.now(timezone.utc)

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{CALENDAR_NAME}",
        f"X-WR-TIMEZONE:{CALENDAR_TIMEZONE}",
    ]
    count = 0
    for deadline in sorted(deadlines, key=lambda d: (d.due_date, d.id)):
        if not deadline.is_active:
            continue
        lines.extend(deadline_to_event(deadline, claims.get(deadline.claim_id), stamp))
        count += 1
    lines.append("END:VCALENDAR")

    logger.info(f"Calendar built with {count} events")
    return "\r\n".join(fold_line(line) for line in lines) + "\r\n"
