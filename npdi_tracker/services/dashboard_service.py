"""Dashboard Service - ticket pipeline statistics"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..domain.enums import TERMINAL_STATUSES, HistoryAction, Priority, TicketStatus
from ..repositories.ticket_repo import TicketRepository
from ..utils.time import coerce_datetime, days_ago, hours_between, utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

STATUS_COUNT_KEYS = {
    TicketStatus.DRAFT.value: "draft",
    TicketStatus.SUBMITTED.value: "submitted",
    TicketStatus.IN_PROCESS.value: "inProcess",
    TicketStatus.NPDI_INITIATED.value: "npdiInitiated",
    TicketStatus.COMPLETED.value: "completed",
    TicketStatus.CANCELED.value: "canceled",
}

STATS_PROJECTION = {
    "ticketId": 1, "ticketNumber": 1, "status": 1, "priority": 1, "sbu": 1,
    "createdAt": 1, "updatedAt": 1, "statusHistory": 1,
}

WEEKS_PER_MONTH = 4.33
LONGEST_WAITING_LIMIT = 10
URGENT_WAITING_LIMIT = 5


def _first_entry(history: Iterable[Dict[str, Any]], status: str) -> Optional[Dict[str, Any]]:
    return next((entry for entry in history if entry.get("status") == status), None)


def submitted_at(ticket: Dict[str, Any]) -> Optional[datetime]:
    """
    When the ticket entered the pipeline

    The first SUBMITTED entry, so time spent as a draft is not counted; then
    the TICKET_CREATED entry; then the creation time.
    """
    history = ticket.get("statusHistory") or []
    entry = _first_entry(history, TicketStatus.SUBMITTED.value) or next(
        (e for e in history if e.get("action") == HistoryAction.TICKET_CREATED.value), None
    )
    if entry and entry.get("changedAt"):
        return coerce_datetime(entry["changedAt"])
    return coerce_datetime(ticket.get("createdAt"))


def _average(values: List[float]) -> Dict[str, float]:
    avg = sum(values) / len(values) if values else 0.0
    return {"hours": round(avg, 1), "days": round(avg / 24, 1)}


class DashboardService:
    """Aggregates counts, cycle times, aging and throughput over all tickets"""

    def __init__(self, repo: Optional[TicketRepository] = None):
        self.repo = repo or TicketRepository()

    def get_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utc_now()
        one_week_ago = days_ago(now, 7)
        one_month_ago = days_ago(now, 30)

        status_counts = {key: 0 for key in STATUS_COUNT_KEYS.values()}
        status_counts["urgent"] = 0
        priority_counts = {p.value: 0 for p in Priority}
        sbu_counts: Dict[str, int] = {}

        durations: Dict[str, List[float]] = {
            TicketStatus.IN_PROCESS.value: [],
            TicketStatus.NPDI_INITIATED.value: [],
            TicketStatus.COMPLETED.value: [],
        }
        aging: List[Dict[str, Any]] = []
        completed_this_week = 0
        completed_this_month = 0

        for ticket in self.repo.iter_all(STATS_PROJECTION):
            status = ticket.get("status")
            if status in STATUS_COUNT_KEYS:
                status_counts[STATUS_COUNT_KEYS[status]] += 1

            priority = ticket.get("priority")
            if priority in priority_counts:
                priority_counts[priority] += 1
                if priority == Priority.URGENT.value:
                    status_counts["urgent"] += 1

            if ticket.get("sbu"):
                sbu_counts[ticket["sbu"]] = sbu_counts.get(ticket["sbu"], 0) + 1

            history = ticket.get("statusHistory") or []
            start = submitted_at(ticket)
            if start is None:
                continue

            for target in durations:
                entry = _first_entry(history, target)
                if entry and entry.get("changedAt"):
                    durations[target].append(hours_between(start, coerce_datetime(entry["changedAt"])))

            # Throughput counts history timestamps; updatedAt moves on later edits
            completed = _first_entry(history, TicketStatus.COMPLETED.value)
            if status == TicketStatus.COMPLETED.value and completed and completed.get("changedAt"):
                completed_at = coerce_datetime(completed["changedAt"])
                if one_week_ago <= completed_at <= now:
                    completed_this_week += 1
                if one_month_ago <= completed_at <= now:
                    completed_this_month += 1

            if status not in [s.value for s in TERMINAL_STATUSES]:
                waiting_hours = hours_between(start, now)
                aging.append({
                    "ticketId": ticket.get("ticketId"),
                    "ticketNumber": ticket.get("ticketNumber"),
                    "status": status,
                    "priority": priority,
                    "sbu": ticket.get("sbu"),
                    "submittedDate": start,
                    "waitingDays": int(waiting_hours // 24),
                    "waitingHours": round(waiting_hours),
                })

        aging.sort(key=lambda item: item["waitingHours"], reverse=True)
        urgent_waiting = [
            item for item in aging
            if item["priority"] == Priority.URGENT.value
            and item["status"] in (TicketStatus.SUBMITTED.value, TicketStatus.IN_PROCESS.value)
        ]

        closed = status_counts["completed"] + status_counts["canceled"]
        return {
            "statusCounts": status_counts,
            "priorityCounts": priority_counts,
            "sbuBreakdown": [{"_id": sbu, "count": count} for sbu, count in sbu_counts.items()],
            "averageTimes": {
                "submittedToInProcess": _average(durations[TicketStatus.IN_PROCESS.value]),
                "submittedToNPDI": _average(durations[TicketStatus.NPDI_INITIATED.value]),
                "submittedToCompleted": _average(durations[TicketStatus.COMPLETED.value]),
            },
            "agingAnalysis": {
                "totalAging": len(aging),
                "longestWaiting": aging[:LONGEST_WAITING_LIMIT],
                "urgentWaiting": urgent_waiting[:URGENT_WAITING_LIMIT],
            },
            "throughput": {
                "completedThisWeek": completed_this_week,
                "completedThisMonth": completed_this_month,
                "estimatedMonthlyRate": round(completed_this_week * WEEKS_PER_MONTH),
            },
            "performance": {
                "backlogSize": status_counts["submitted"] + status_counts["inProcess"],
                "activeTickets": status_counts["submitted"] + status_counts["inProcess"] + status_counts["npdiInitiated"],
                "completionRate": round(status_counts["completed"] / closed * 100) if closed else 0,
            },
        }
