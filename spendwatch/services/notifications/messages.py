"""Alert message rendering (Jinja2 templates under spendwatch/templates).

A message is "exceeded" rather than "at threshold" only for the 100% threshold
once the unclamped percentage has reached 100.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from spendwatch.models import Threshold
from spendwatch.services.money import format_currency
from spendwatch.services.spend import AlertSnapshot

TEMPLATES_DIR = Path(__file__).resolve().parent.parent.parent / "templates"


@dataclass(frozen=True)
class AlertMessage:
    subject: str
    text: str
    html: str
    sms: str


def is_exceeded(threshold: int, snapshot: AlertSnapshot) -> bool:
    return int(threshold) == Threshold.HUNDRED and snapshot.percentage_used >= 100


class MessageRenderer:
    def __init__(self, currency_symbol: str = "$", templates_dir: Optional[Path] = None):
        self.currency_symbol = currency_symbol
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir or TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def _context(
        self, budget_name: str, recipient_name: str, threshold: int, snapshot: AlertSnapshot
    ) -> Dict[str, Any]:
        money = lambda minor: format_currency(minor, self.currency_symbol)  # noqa: E731
        return {
            "budget_name": budget_name,
            "recipient_name": recipient_name or "there",
            "threshold_text": f"{int(threshold)}%",
            "exceeded": is_exceeded(threshold, snapshot),
            "limit": money(snapshot.limit),
            "spent": money(snapshot.spent),
            "remaining": money(snapshot.remaining),
            "percentage": f"{snapshot.percentage_used:.2f}",
        }

    def render(
        self, budget_name: str, recipient_name: str, threshold: int, snapshot: AlertSnapshot
    ) -> AlertMessage:
        ctx = self._context(budget_name, recipient_name, threshold, snapshot)
        if ctx["exceeded"]:
            subject = f"Budget Exceeded: {budget_name}"
        else:
            subject = f"Budget Alert: {budget_name} - {ctx['threshold_text']} Used"
        return AlertMessage(
            subject=subject,
            text=self._env.get_template("alert_email.txt").render(ctx).strip() + "\n",
            html=self._env.get_template("alert_email.html").render(ctx),
            sms=" ".join(self._env.get_template("alert_sms.txt").render(ctx).split()),
        )
