"""Notification templates for admin-facing fraud and intake alerts."""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Sequence


@dataclass
class RenderedTemplate:
    subject: str
    text_body: str
    html_body: str


_SUBJECT_PREFIX = "[UniPivot Admin]"


def _wrap_html(title: str, paragraphs: Sequence[str]) -> str:
    rendered = "\n".join(
        f'    <p style="white-space: pre-wrap;">{html.escape(paragraph)}</p>' for paragraph in paragraphs
    )
    return f"""<html>
  <body>
    <h2>{html.escape(title)}</h2>
{rendered}
  </body>
</html>"""


def render_flagged_claim(
    *,
    survey_title: str,
    risk_score: int,
    reasons: Sequence[str],
    real_name: str,
    phone_number: str,
) -> RenderedTemplate:
    title = "Suspicious reward claim"
    lines = [
        f'A reward claim for survey "{survey_title}" raised fraud signals.',
        "",
        f"Risk score: {risk_score}",
        f"Reasons: {', '.join(reasons)}",
        "",
        f"Claimant: {real_name} ({phone_number})",
    ]
    return RenderedTemplate(
        subject=f"{_SUBJECT_PREFIX} {title}",
        text_body="\n".join(lines),
        html_body=_wrap_html(title, ["\n".join(lines[:1]), "\n".join(lines[2:4]), lines[5]]),
    )


def render_alert_application(
    *,
    alert_level: str,
    applicant_name: str,
    program_title: str,
    alert_message: str | None,
) -> RenderedTemplate:
    label = "Blocked" if alert_level == "BLOCKED" else "Warning"
    title = f"{label} member application"
    lines = [f"{applicant_name} applied to {program_title}."]
    if alert_message:
        lines.append(alert_message)
    return RenderedTemplate(
        subject=f"{_SUBJECT_PREFIX} {title}",
        text_body="\n".join(lines),
        html_body=_wrap_html(title, lines),
    )
