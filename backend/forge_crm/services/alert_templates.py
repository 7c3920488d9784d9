"""Alert email content per family and severity.

Each compose_* function returns an EmailContent with a subject and matching
HTML and plain-text bodies. The runner decides which one to call and what
data to pass; nothing here touches the database or the mail transport.
"""
from dataclasses import dataclass
from html import escape

from forge_crm.core.config import settings
from forge_crm.rules.severity import MARKETING_TYPE_LABELS, Severity

SEVERITY_COLORS = {
    Severity.RED: {"bg": "#FEE2E2", "border": "#EF4444", "text": "#991B1B"},
    Severity.YELLOW: {"bg": "#FEF3C7", "border": "#F59E0B", "text": "#92400E"},
    Severity.GREEN: {"bg": "#D1FAE5", "border": "#10B981", "text": "#065F46"},
}


@dataclass(frozen=True)
class EmailContent:
    subject: str
    html: str
    text: str


# ─── Formatting ───

def format_currency(amount: float | None) -> str:
    return f"${float(amount or 0):,.0f}"


def format_percentage(value: float | None) -> str:
    return f"{round(float(value or 0))}%"


# ─── Layout ───

def _render(
    user_name: str,
    severity: Severity,
    title: str,
    paragraphs: list[str],
    rows: list[tuple[str, str]] | None = None,
    action_items: list[str] | None = None,
    footer_note: str | None = None,
) -> tuple[str, str]:
    """Build (html, text) bodies from plain strings; all values are escaped here."""
    colors = SEVERITY_COLORS[Severity(severity)]
    rows = rows or []
    action_items = action_items or []

    body_html = "".join(f'<p style="color:#374151;">{escape(p)}</p>' for p in paragraphs)
    if rows:
        body_html += '<table style="width:100%; border-collapse:collapse; margin:16px 0;">' + "".join(
            f'<tr><td style="padding:6px 0; color:#6b7280;">{escape(label)}</td>'
            f'<td style="padding:6px 0; text-align:right; font-weight:600;">{escape(value)}</td></tr>'
            for label, value in rows
        ) + "</table>"
    if action_items:
        body_html += (
            f'<div style="margin:24px 0; padding:16px; background:#f9fafb; border-left:4px solid {colors["border"]};">'
            '<h3 style="margin:0 0 12px; font-size:14px; text-transform:uppercase;">Required Actions:</h3><ul>'
            + "".join(f"<li>{escape(item)}</li>" for item in action_items)
            + "</ul></div>"
        )
    footer_html = (
        f'<p style="margin-top:24px; color:#6b7280; font-size:13px;">{escape(footer_note)}</p>'
        if footer_note else ""
    )

    html = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{escape(title)}</title></head>
<body style="font-family:-apple-system, 'Segoe UI', Roboto, sans-serif; margin:0; padding:20px; background:#f3f4f6;">
  <div style="max-width:600px; margin:0 auto; background:white; border-radius:8px; overflow:hidden;">
    <div style="background:{colors["bg"]}; border-bottom:3px solid {colors["border"]}; padding:20px;">
      <h1 style="margin:0; color:{colors["text"]}; font-size:20px;">{escape(title)}</h1>
    </div>
    <div style="padding:24px;">
      <p style="color:#374151;">{escape(user_name)},</p>
      {body_html}
      <a href="{escape(settings.DASHBOARD_URL)}" style="display:inline-block; margin-top:16px; padding:12px 24px; background:#0891b2; color:white; text-decoration:none; border-radius:6px;">View Dashboard</a>
      {footer_html}
    </div>
  </div>
</body>
</html>
"""

    lines = [title, "=" * len(title), "", f"{user_name},", ""]
    lines.extend(paragraphs)
    if rows:
        lines.append("")
        lines.extend(f"{label}: {value}" for label, value in rows)
    if action_items:
        lines.extend(["", "REQUIRED ACTIONS:"])
        lines.extend(f"- {item}" for item in action_items)
    lines.extend(["", f"View Dashboard: {settings.DASHBOARD_URL}"])
    if footer_note:
        lines.extend(["", footer_note])
    return html, "\n".join(lines)


# ─── Quota ───

def compose_quota(user_name: str, severity: Severity, metrics: dict) -> EmailContent:
    target = metrics["target"]
    actual = metrics["actual"]
    pct = metrics["ratio"]
    days_remaining = metrics["days_remaining"]

    if severity == Severity.RED:
        prefix, title = "Performance Alert", "Quota At Risk"
        paragraphs = [
            f"You are at {format_percentage(pct)} of your monthly quota with "
            f"{days_remaining} days remaining in the month."
        ]
        actions = [
            "Review your open pipeline and prioritise deals closest to closing",
            "Schedule a pipeline review with your manager this week",
        ]
        footer = "This alert has been copied to HR and leadership."
    elif severity == Severity.GREEN:
        prefix, title = "Congratulations", "Quota Achieved"
        paragraphs = ["You have hit your monthly quota. Outstanding work!"]
        actions = []
        footer = "This recognition has been copied to HR for your personnel file."
    else:
        prefix, title = "Progress Update", "Close To Quota"
        paragraphs = [
            f"You are at {format_percentage(pct)} of your monthly quota. "
            f"A final push over the next {days_remaining} days gets you there."
        ]
        actions = ["Focus on deals in negotiation"]
        footer = None

    rows = [
        ("Monthly target", format_currency(target)),
        ("Closed won", format_currency(actual)),
        ("Attainment", format_percentage(pct)),
        ("Days remaining", str(days_remaining)),
    ]
    subject = f"{prefix}: {user_name} - {format_percentage(pct)} to Monthly Quota"
    html, text = _render(user_name, severity, title, paragraphs, rows, actions, footer)
    return EmailContent(subject, html, text)


# ─── Monthly sales review ───

_MONTHLY_REVIEW = {
    Severity.RED: (
        "Below Expectations",
        "Your {month} performance requires immediate attention.",
        "This review has been shared with HR and leadership.",
        [
            "Performance improvement meeting with your manager this week",
            "Clean up stale deals within 3 days",
            "Tighten lead qualification",
        ],
    ),
    Severity.YELLOW: (
        "On Target",
        "You came close to quota in {month}. Solid performance.",
        "This review has been shared with HR and your manager.",
        ["Review your pipeline for chances to exceed quota", "Keep activity levels consistent"],
    ),
    Severity.GREEN: (
        "Excellent",
        "Outstanding {month} performance. Congratulations on hitting your quota!",
        "This recognition has been copied to HR for your personnel file.",
        ["Share your best practices with the team", "Set ambitious goals for next month"],
    ),
}


def compose_monthly_review(user_name: str, severity: Severity, metrics: dict) -> EmailContent:
    month_name = metrics["month_name"]
    verdict, intro, footer, actions = _MONTHLY_REVIEW[Severity(severity)]
    paragraphs = [
        intro.format(month=month_name),
        f"Quota attainment: {format_percentage(metrics['ratio'])} "
        f"({format_currency(metrics['actual'])} of {format_currency(metrics['target'])}), "
        f"rank {metrics['team_rank']} of {metrics['team_size']}.",
    ]
    rows = [
        ("Deals closed", f"{metrics['deals_won']} won / {metrics['deals_closed']} total"),
        ("Win rate", format_percentage(metrics["win_rate"])),
        ("Average deal size", format_currency(metrics["average_deal_size"])),
        ("Total activities", str(metrics["activities"])),
        ("Stale deals", str(metrics["stale_deals"])),
        ("Task completion", format_percentage(metrics["task_completion_rate"])),
    ]
    title = f"{month_name} Performance: {verdict}"
    html, text = _render(user_name, severity, title, paragraphs, rows, actions, footer)
    return EmailContent(f"{title} - {user_name}", html, text)


# ─── Activity ───

def compose_activity(user_name: str, severity: Severity, metrics: dict) -> EmailContent:
    breakdown = metrics["breakdown"]
    rows = [
        ("Activities this week", str(metrics["actual"])),
        ("Expected", str(metrics["expected"])),
        ("Team average", str(metrics.get("team_average", 0))),
        ("Calls", str(breakdown.get("calls", 0))),
        ("Emails", str(breakdown.get("emails", 0))),
        ("Meetings", str(breakdown.get("meetings", 0))),
        ("Notes", str(breakdown.get("notes", 0))),
    ]
    if severity == Severity.RED:
        subject = f"Performance Alert: Low Activity - {user_name}"
        title = "Low Activity This Week"
        paragraphs = [
            f"You logged {metrics['actual']} activities this week against an "
            f"expectation of {metrics['expected']}."
        ]
        actions = ["Block time for outreach calls", "Log every client touchpoint in the CRM"]
        footer = "This alert has been copied to HR and leadership."
    else:
        subject = f"Recognition: Outstanding Activity - {user_name}"
        title = "Outstanding Activity"
        paragraphs = ["Your engagement with prospects and clients this week is commendable. Keep it up!"]
        actions = []
        footer = "This recognition has been copied to HR for your personnel file."
    html, text = _render(user_name, severity, title, paragraphs, rows, actions, footer)
    return EmailContent(subject, html, text)


# ─── Tasks ───

def compose_tasks(user_name: str, severity: Severity, metrics: dict) -> EmailContent:
    tasks = metrics["overdue_tasks"]
    rows = [(t["title"], f"{t['days_overdue']} days overdue") for t in tasks[:10]]
    if severity == Severity.RED:
        subject = f"Performance Alert: {user_name} - {len(tasks)} Tasks Overdue"
        title = "Multiple Overdue Tasks"
        actions = ["Complete or reschedule every overdue task today"]
        footer = "This has been copied to HR for documentation."
    else:
        first = tasks[0]["title"] if tasks else "Task"
        subject = f"Task Reminder: {first} Overdue"
        title = "Overdue Task Reminder"
        actions = ["Complete or reschedule the task"]
        footer = None
    paragraphs = [f"You have {len(tasks)} overdue task(s)."]
    html, text = _render(user_name, severity, title, paragraphs, rows, actions, footer)
    return EmailContent(subject, html, text)


# ─── Stale pipeline ───

def compose_stale(user_name: str, severity: Severity, metrics: dict) -> EmailContent:
    deals = metrics["deals"]
    leads = metrics["leads"]
    rows = [(f"Deal: {d['name']}", f"{d['days_idle']} days idle") for d in deals]
    rows += [(f"Lead: {ld['name']}", f"{ld['days_idle']} days idle") for ld in leads]
    total = len(deals) + len(leads)
    if severity == Severity.RED:
        subject = f"URGENT: {user_name} - {total} Stale Items Need Attention"
        title = "Stale Pipeline"
        footer = "This alert has been copied to HR. Continued neglect will result in performance review."
    else:
        subject = f"Reminder: {user_name} - Follow-Up Needed"
        title = "Follow-Up Needed"
        footer = None
    paragraphs = [f"{total} deal(s) and lead(s) have had no update recently."]
    actions = ["Update each item or move it to the correct stage"]
    html, text = _render(user_name, severity, title, paragraphs, rows, actions, footer)
    return EmailContent(subject, html, text)


# ─── Marketing ───

_MARKETING_WEEKLY_PREFIX = {
    Severity.RED: "Marketing Performance: Below Expectations",
    Severity.YELLOW: "Marketing Performance: On Track",
    Severity.GREEN: "Marketing Performance: Excellent",
}


def _marketing_rows(metrics: dict) -> list[tuple[str, str]]:
    rows = [
        ("Tasks completed", str(metrics["tasks_completed"])),
        ("Tasks with outcome", str(metrics["with_outcome"])),
        ("Success rate", format_percentage(metrics["ratio"])),
        ("Leads generated", str(metrics["leads_generated"])),
    ]
    for entry in metrics["by_type"]:
        rows.append((
            entry["display_name"],
            f"{entry['count']} tasks, {format_percentage(entry['success_rate'])} success",
        ))
    return rows


def _label(task_type: str | None) -> str | None:
    if task_type is None:
        return None
    return MARKETING_TYPE_LABELS.get(task_type, task_type)


def compose_marketing_weekly(user_name: str, severity: Severity, metrics: dict) -> EmailContent:
    subject = f"{_MARKETING_WEEKLY_PREFIX[Severity(severity)]} - {user_name}"
    paragraphs = [f"Your marketing success rate over the last 7 days was {format_percentage(metrics['ratio'])}."]
    best = _label(metrics.get("best_performing"))
    worst = _label(metrics.get("worst_performing"))
    if best:
        paragraphs.append(f"Best performing channel: {best}.")
    if worst:
        paragraphs.append(f"Needs improvement: {worst}.")
    for tpl in metrics.get("top_templates", []):
        paragraphs.append(f"Top template: {tpl['template_name']} ({format_percentage(tpl['success_rate'])}).")
    for tpl in metrics.get("bottom_templates", []):
        paragraphs.append(f"Weak template: {tpl['template_name']} ({format_percentage(tpl['success_rate'])}).")

    actions = []
    if metrics.get("missing_outcomes"):
        actions.append(f"Record outcomes for {metrics['missing_outcomes']} task(s) completed 3+ days ago")
    if severity == Severity.RED:
        actions.append("Review the approach for your lowest performing channel")

    html, text = _render(user_name, severity, "Weekly Marketing Performance", paragraphs,
                         _marketing_rows(metrics), actions)
    return EmailContent(subject, html, text)


def compose_marketing_monthly(user_name: str, severity: Severity, metrics: dict) -> EmailContent:
    month_name = metrics["month_name"]
    subject = f"Monthly Marketing Review: {month_name} - {user_name}"
    paragraphs = [
        f"Your success rate for {month_name} was {format_percentage(metrics['ratio'])}, "
        f"ranking #{metrics['team_rank']} of {metrics['team_size']} on the team "
        f"(team rate {format_percentage(metrics.get('team_success_rate'))})."
    ]
    best = _label(metrics.get("best_performing"))
    worst = _label(metrics.get("worst_performing"))
    if best:
        paragraphs.append(f"Best performing channel: {best}.")
    if worst:
        paragraphs.append(f"Needs improvement: {worst}.")
    footer = "This review has been copied to HR and leadership." if severity == Severity.RED else None
    html, text = _render(user_name, severity, f"Marketing Review: {month_name}", paragraphs,
                         _marketing_rows(metrics), footer_note=footer)
    return EmailContent(subject, html, text)
