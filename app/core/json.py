"""JSON responses that understand Decimal amounts, UUIDs and datetimes."""

from __future__ import annotations

import datetime
import json
import uuid
from decimal import Decimal
from typing import Any

from fastapi.responses import JSONResponse


class NotificationJSONEncoder(json.JSONEncoder):
  """Encode payment amounts stored as Decimal without losing cents."""

  def default(self, obj: Any) -> Any:
    if isinstance(obj, Decimal):
      return int(obj) if obj % 1 == 0 else float(obj)
    if isinstance(obj, uuid.UUID):
      return str(obj)
    if isinstance(obj, datetime.datetime | datetime.date):
      return obj.isoformat()
    return super().default(obj)


class DecimalJSONResponse(JSONResponse):
  """JSONResponse rendered with NotificationJSONEncoder."""

  def render(self, content: Any) -> bytes:
    return json.dumps(content, ensure_ascii=False, allow_nan=False, indent=None, separators=(",", ":"), cls=NotificationJSONEncoder).encode("utf-8")
