"""Channel-specific rendering of notification templates.

Email HTML is table-based with inline styles for compatibility with major clients; the
layout lives on disk and the per-type body is substituted into it with escaped values.
"""

from __future__ import annotations

import html
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from app.notifications.catalog import NotificationTemplate, get_template
from app.notifications.contracts import RenderedMessage
from app.notifications.models import Channel

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")
_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


def render_message(*, notification_type: str, channel: Channel, payload: dict[str, Any]) -> RenderedMessage:
  """Render the message for one channel of a notification."""
  template = get_template(notification_type)
  subject = _render_text(template.subject, placeholders=payload, escape_html=False)

  if channel == "email":
    return RenderedMessage(subject=subject, text=_render_text(template.text_body, placeholders=payload, escape_html=False), html=_render_email_html(template, subject=subject, payload=payload))
  if channel == "sms":
    return RenderedMessage(subject=subject, text=_render_text(template.sms, placeholders=payload, escape_html=False))
  if channel == "whatsapp":
    return RenderedMessage(subject=subject, text=_render_text(template.whatsapp, placeholders=payload, escape_html=False))
  if channel == "in_app":
    title, message = render_in_app(notification_type=notification_type, payload=payload)
    return RenderedMessage(subject=title, text=message)
  raise ValueError(f"Unknown channel: {channel}")


def render_in_app(*, notification_type: str, payload: dict[str, Any]) -> tuple[str, str]:
  """Render the in-app title and message shown in the notification feed."""
  template = get_template(notification_type)
  title = _render_text(template.in_app_title, placeholders=payload, escape_html=False)
  message = _render_text(template.in_app_message, placeholders=payload, escape_html=False)
  return title, message


def _render_email_html(template: NotificationTemplate, *, subject: str, payload: dict[str, Any]) -> str:
  # Body values are escaped here; the layout only receives already-safe HTML.
  content = _render_text(template.email_body, placeholders=payload, escape_html=True)
  layout = _load_template_file("email_layout.html")
  return _render_text(layout, placeholders={"subject": html.escape(subject, quote=True), "content": content}, escape_html=False)


def _render_text(raw_template: str, *, placeholders: dict[str, Any], escape_html: bool) -> str:
  """Replace {{placeholders}} with values, escaping for HTML when needed."""

  def _replace(match: re.Match[str]) -> str:
    key = match.group(1)
    value = placeholders.get(key, "")
    rendered = str(value) if value is not None else ""
    if escape_html:
      return html.escape(rendered, quote=True)
    return rendered

  return _PLACEHOLDER_RE.sub(_replace, raw_template)


@lru_cache(maxsize=4)
def _load_template_file(filename: str) -> str:
  path = _TEMPLATE_DIR / filename
  return path.read_text(encoding="utf-8")
